"""Calendar invitation detection and event-id extraction.

Provides helpers for:
- Deciding whether a message is a calendar invitation (attachment, sender,
  and keyword signals, any one of which is sufficient)
- Extracting the calendar event id from the ``eid`` parameter of an event
  link embedded in the body
- A best-effort summary and time window used for invite previews

Everything here is pure and synchronous; it runs on every render.
"""

from __future__ import annotations

import base64
import binascii
import re
from collections.abc import Iterable
from datetime import UTC, datetime

from inboxflow.domain.models import InviteClassification, Message

DEFAULT_CALENDAR_SENDERS: tuple[str, ...] = (
    "calendar-notification@google.com",
    "calendar@google.com",
)

CALENDAR_MIME_TYPES: frozenset[str] = frozenset({"text/calendar", "application/ics"})

_EID_LINK = re.compile(r"calendar\.google\.com/calendar/event\?.*?eid=([A-Za-z0-9_-]+)")
_SUBJECT_KEYWORDS = ("invitation:", "updated invitation:")
_BODY_KEYWORDS = ("VCALENDAR", "BEGIN:VEVENT")

_SUMMARY = re.compile(r"(?:Updated )?Invitation:\s*(.+?)(?:\s*@\s*|$)", re.IGNORECASE)
_TIME = r"\d{1,2}(?::\d{2})?\s*(?:am|pm)"
_WHEN = re.compile(
    r"When[:\s]+\w+[.,]?\s+(\w+\s+\d{1,2}[,.]?\s+\d{4})\s*[·•,]?\s*"
    rf"({_TIME})\s*[–—\-]\s*({_TIME})",
    re.IGNORECASE,
)
_SUBJECT_WHEN = re.compile(
    rf"@\s*\w+\s+(\w+\s+\d{{1,2}},?\s+\d{{4}})\s+({_TIME})\s*[–—\-]\s*({_TIME})",
    re.IGNORECASE,
)
_DTSTART = re.compile(r"DTSTART[^:]*:(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})Z?")
_DTEND = re.compile(r"DTEND[^:]*:(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})Z?")
_TITLE_WHEN = re.compile(
    r"(\w+day,?\s+\w+\s+\d{1,2},?\s+\d{4}),?\s+(\d{1,2}:\d{2}\s*(?:AM|PM))"
    r"\s+to\s+(\d{1,2}:\d{2}\s*(?:AM|PM))",
    re.IGNORECASE,
)

_DATE_FORMATS = ("%b %d %Y", "%B %d %Y")
_TIME_FORMATS = ("%I:%M%p", "%I%p")


def combined_body(message: Message) -> str:
    """Return the structured and plain-text bodies joined by a space."""
    return f"{message.body_html} {message.body_text}"


def has_calendar_attachment(message: Message) -> bool:
    """Return True if any attachment is an ``.ics`` file or calendar MIME type."""
    return any(
        a.filename.lower().endswith(".ics") or a.mime_type.lower() in CALENDAR_MIME_TYPES
        for a in message.attachments
    )


def is_calendar_sender(
    message: Message, senders: Iterable[str] = DEFAULT_CALENDAR_SENDERS
) -> bool:
    """Return True if the sender address contains a calendar-notification address."""
    address = message.sender.email.lower()
    return any(s.lower() in address for s in senders)


def has_invite_keywords(message: Message) -> bool:
    """Return True if the subject or body carries invitation keywords."""
    subject = message.subject.lower()
    if any(k in subject for k in _SUBJECT_KEYWORDS):
        return True
    body = combined_body(message)
    return any(k in body for k in _BODY_KEYWORDS)


def is_invite(message: Message, senders: Iterable[str] = DEFAULT_CALENDAR_SENDERS) -> bool:
    """Return True if any of the three invite signals fires for *message*."""
    return (
        has_calendar_attachment(message)
        or is_calendar_sender(message, senders)
        or has_invite_keywords(message)
    )


def decode_event_reference(reference: str) -> str | None:
    """Decode a URL-safe base64 ``eid`` value into its event id.

    The decoded payload is ``"<event id> <email>"``; only the first field is
    returned.  Malformed input yields ``None`` instead of raising.

    Args:
        reference: The raw ``eid`` query value.

    Returns:
        The event id, or ``None`` when the value cannot be decoded.
    """
    standard = reference.replace("-", "+").replace("_", "/")
    if len(standard) % 4 == 1:
        return None
    standard += "=" * (-len(standard) % 4)
    try:
        decoded = base64.b64decode(standard, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return None
    event_id = decoded.split(" ")[0]
    return event_id or None


def extract_event_id(body: str) -> str | None:
    """Return the event id from the first calendar event link in *body*.

    Only the first link is considered; messages carrying several invites
    are not supported.
    """
    match = _EID_LINK.search(body)
    if match is None:
        return None
    return decode_event_reference(match.group(1))


def invite_summary(subject: str) -> str | None:
    """Extract the event title from an ``Invitation: <title> @ ...`` subject."""
    match = _SUMMARY.search(subject)
    if match is None:
        return None
    summary = match.group(1).strip()
    return summary or None


def _parse_date(value: str) -> datetime | None:
    tokens = value.replace(",", " ").replace(".", " ").split()
    if tokens and tokens[0].lower().endswith("day"):
        tokens = tokens[1:]
    cleaned = " ".join(tokens)
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
    return None


def _parse_time(value: str) -> tuple[int, int] | None:
    cleaned = value.replace(" ", "").upper()
    for fmt in _TIME_FORMATS:
        try:
            parsed = datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
        return parsed.hour, parsed.minute
    return None


def _combine(date_str: str, start: str, end: str) -> tuple[datetime, datetime] | None:
    day = _parse_date(date_str)
    start_t = _parse_time(start)
    end_t = _parse_time(end)
    if day is None or start_t is None or end_t is None:
        return None
    return (
        day.replace(hour=start_t[0], minute=start_t[1]),
        day.replace(hour=end_t[0], minute=end_t[1]),
    )


def _ical_stamp(match: re.Match[str]) -> datetime | None:
    year, month, day, hour, minute, second = (int(g) for g in match.groups())
    try:
        return datetime(year, month, day, hour, minute, second, tzinfo=UTC)
    except ValueError:
        return None


def invite_window(body: str, subject: str = "") -> tuple[datetime, datetime] | None:
    """Best-effort extraction of an invite's start and end time.

    Tries, in order: a ``When:`` line in the body, the ``@ <date> <time> -
    <time>`` tail of the subject, ``DTSTART``/``DTEND`` lines (read as UTC),
    and a ``<Weekday>, <Month> <d>, <yyyy>, <time> to <time>`` title.
    Wall-clock results are naive datetimes.

    Args:
        body: Concatenated message body.
        subject: Message subject.

    Returns:
        ``(start, end)`` or ``None`` if no pattern parses.
    """
    match = _WHEN.search(body)
    if match:
        window = _combine(*match.groups())
        if window:
            return window

    if subject:
        match = _SUBJECT_WHEN.search(subject)
        if match:
            window = _combine(*match.groups())
            if window:
                return window

    start_match = _DTSTART.search(body)
    end_match = _DTEND.search(body)
    if start_match and end_match:
        start = _ical_stamp(start_match)
        end = _ical_stamp(end_match)
        if start and end:
            return start, end

    match = _TITLE_WHEN.search(body)
    if match:
        window = _combine(*match.groups())
        if window:
            return window

    return None


def classify_invite(
    message: Message, senders: Iterable[str] = DEFAULT_CALENDAR_SENDERS
) -> InviteClassification:
    """Classify *message* as a calendar invitation.

    Event id, summary, and time window are only computed for invite
    candidates.

    Args:
        message: The message to classify.
        senders: Calendar-notification addresses to match against the sender.

    Returns:
        A fresh ``InviteClassification``; never cached.
    """
    if not is_invite(message, senders):
        return InviteClassification(is_invite=False)

    body = combined_body(message)
    window = invite_window(body, message.subject)
    return InviteClassification(
        is_invite=True,
        event_id=extract_event_id(body),
        summary=invite_summary(message.subject),
        starts_at=window[0] if window else None,
        ends_at=window[1] if window else None,
    )
