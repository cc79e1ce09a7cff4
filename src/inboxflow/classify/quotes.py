"""Quoted and forwarded content detection for message bodies.

Provides helpers for:
- Finding quoted/forwarded regions in an HTML body, by structural markers
  (mail-client quote containers) and by textual markers (forward headers
  and ``On ... wrote:`` lines)
- Tagging those regions so a presentation layer can collapse them
- A cheap raw-string check that decides whether to offer a toggle at all
- Splitting a plain-text body into the latest reply and the quoted history
"""

from __future__ import annotations

import re
from enum import StrEnum

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString
from mailparser_reply import EmailReplyParser  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict

from inboxflow.domain.models import Message

QUOTE_ATTR = "data-inboxflow-quoted"

QUOTE_CONTAINER_SELECTORS: tuple[str, ...] = (
    ".gmail_quote",
    "blockquote[type=cite]",
    ".yahoo_quoted",
    ".moz-cite-prefix",
    "#divRplyFwdMsg",
    "#appendonsend",
    ".protonmail_quote",
    '[data-marker="__QUOTED_TEXT__"]',
)

FORWARD_MARKER = re.compile(r"^-----+\s*(Forwarded|Original) message\s*-----+", re.IGNORECASE)
REPLY_HEADER = re.compile(r"^On .+ wrote:$")

_RAW_MARKERS: tuple[re.Pattern[str], ...] = (
    re.compile(r"gmail_quote"),
    re.compile(r"<blockquote[^>]*type=[\"']?cite", re.IGNORECASE),
    re.compile(r"-----+\s*(Forwarded|Original) message\s*-----+", re.IGNORECASE),
    re.compile(r"On\s.+?\swrote:"),
)

_WHITESPACE = re.compile(r"\s+")
_INVISIBLE = frozenset({"script", "style", "head", "title"})
_ROOTS = frozenset({"html", "body", "[document]"})
_BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "dd", "div", "dl", "dt",
        "fieldset", "figcaption", "figure", "footer", "form", "h1", "h2", "h3",
        "h4", "h5", "h6", "header", "hr", "li", "main", "nav", "ol", "p", "pre",
        "section", "table", "tbody", "td", "tfoot", "th", "thead", "tr", "ul",
    }
)


class QuoteReason(StrEnum):
    """Why a region was judged to be quoted content."""

    CONTAINER = "container"
    FORWARDED = "forwarded"
    REPLY_HEADER = "reply_header"


class QuoteRegion(BaseModel):
    """One quoted region, addressed by its element-index path from the root."""

    model_config = ConfigDict(frozen=True)

    path: tuple[int, ...]
    tag: str
    reason: QuoteReason


class QuotedBody(BaseModel):
    """An HTML body with its quoted regions tagged."""

    model_config = ConfigDict(frozen=True)

    html: str
    regions: tuple[QuoteRegion, ...]
    collapsed: bool


def _element_path(el: Tag) -> tuple[int, ...]:
    path: list[int] = []
    node = el
    while node.parent is not None:
        siblings = [c for c in node.parent.children if isinstance(c, Tag)]
        path.append(next(i for i, c in enumerate(siblings) if c is node))
        node = node.parent
    return tuple(reversed(path))


def _collect_text(node: Tag, parts: list[str]) -> None:
    for child in node.children:
        if isinstance(child, Tag):
            if child.name in _INVISIBLE:
                continue
            if child.name == "br":
                parts.append("\n")
                continue
            block = child.name in _BLOCK_TAGS
            if block:
                parts.append("\n")
            _collect_text(child, parts)
            if block:
                parts.append("\n")
        elif isinstance(child, NavigableString) and not isinstance(child, PreformattedString):
            parts.append(_WHITESPACE.sub(" ", str(child)))


def visible_text(el: Tag) -> str:
    """Return the rendered text of *el*.

    Whitespace runs collapse to one space and inline markup (links, bold
    names) stays on the line it sits in; only ``<br>`` and block-level
    elements start a new line.
    """
    parts: list[str] = []
    _collect_text(el, parts)
    return "".join(parts)


def _text_marker(el: Tag) -> QuoteReason | None:
    text = visible_text(el)
    if FORWARD_MARKER.match(text.strip()):
        return QuoteReason.FORWARDED
    if any(REPLY_HEADER.match(line.strip()) for line in text.splitlines()):
        return QuoteReason.REPLY_HEADER
    return None


def _visible_elements(soup: BeautifulSoup) -> list[Tag]:
    return [
        el
        for el in soup.find_all(True)
        if el.name not in _INVISIBLE and not any(p.name in _INVISIBLE for p in el.parents)
    ]


def _find_regions(soup: BeautifulSoup) -> list[tuple[Tag, QuoteReason]]:
    candidates: dict[int, tuple[Tag, QuoteReason]] = {}

    for selector in QUOTE_CONTAINER_SELECTORS:
        for el in soup.select(selector):
            candidates.setdefault(id(el), (el, QuoteReason.CONTAINER))

    matched = [(el, reason) for el in _visible_elements(soup) if (reason := _text_marker(el))]
    # Only the deepest matching element carries the marker itself.
    ancestors = {id(p) for el, _ in matched for p in el.parents}
    for el, reason in matched:
        if id(el) in ancestors or el.name in _ROOTS:
            continue
        parent = el.parent
        target = el if parent is None or parent.name in _ROOTS else parent
        candidates.setdefault(id(target), (target, reason))

    # Regions tagged by an earlier pass keep the reason found by the markers above.
    for el in soup.select(f"[{QUOTE_ATTR}]"):
        candidates.setdefault(id(el), (el, QuoteReason.CONTAINER))

    regions = [
        (el, reason)
        for el, reason in candidates.values()
        if not any(id(p) in candidates for p in el.parents)
    ]
    order = {id(el): i for i, el in enumerate(soup.find_all(True))}
    regions.sort(key=lambda item: order[id(item[0])])
    return regions


def detect_quote_boundaries(html: str) -> tuple[QuoteRegion, ...]:
    """Return the quoted regions of an HTML body in document order.

    Regions nested inside another region are folded into the outer one.
    The result is deterministic: running it again on the same body, or on
    the output of ``tag_quoted_regions``, yields the same regions.

    Args:
        html: The structured message body.

    Returns:
        A tuple of ``QuoteRegion``; empty when nothing quoted was found.
    """
    if not html.strip():
        return ()
    soup = BeautifulSoup(html, "html.parser")
    return tuple(
        QuoteRegion(path=_element_path(el), tag=el.name, reason=reason)
        for el, reason in _find_regions(soup)
    )


def tag_quoted_regions(html: str, collapsed: bool) -> QuotedBody:
    """Tag quoted regions in *html* and optionally hide them.

    Every region gets ``data-inboxflow-quoted="true"``; collapsed regions
    also get the ``hidden`` attribute, expanded ones lose it.

    Args:
        html: The structured message body.
        collapsed: Whether quoted regions should be hidden.

    Returns:
        A ``QuotedBody`` with the rewritten HTML and the region set.
    """
    if not html.strip():
        return QuotedBody(html=html, regions=(), collapsed=collapsed)

    soup = BeautifulSoup(html, "html.parser")
    found = _find_regions(soup)
    regions = tuple(
        QuoteRegion(path=_element_path(el), tag=el.name, reason=reason)
        for el, reason in found
    )
    for el, _ in found:
        el[QUOTE_ATTR] = "true"
        if collapsed:
            el["hidden"] = ""
        elif el.has_attr("hidden"):
            del el["hidden"]
    return QuotedBody(html=str(soup), regions=regions, collapsed=collapsed)


def has_quoted_content(raw: str) -> bool:
    """Cheap check for quote markers directly on the raw body string."""
    return any(p.search(raw) for p in _RAW_MARKERS)


def message_has_quoted_content(message: Message) -> bool:
    """Return True if either body of *message* carries a quote marker."""
    return has_quoted_content(message.body_html) or has_quoted_content(message.body_text)


def split_plain_reply(text: str) -> tuple[str, str]:
    """Split a plain-text body into the latest reply and the quoted remainder.

    Uses ``mail-parser-reply`` to find the newest reply.  When the parser
    finds nothing to strip, the whole text is the reply and the remainder
    is empty.

    Args:
        text: The plain-text body.

    Returns:
        ``(latest_reply, quoted_history)``.
    """
    if not text.strip():
        return text, ""
    latest: str = EmailReplyParser(languages=["en"]).parse_reply(text=text)
    latest = (latest or "").strip()
    if not latest:
        return text, ""
    index = text.find(latest)
    if index < 0:
        return latest, ""
    return latest, text[index + len(latest):].strip()
