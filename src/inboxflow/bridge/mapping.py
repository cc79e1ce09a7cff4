"""Mapping from Gmail API v1 JSON resources to inboxflow domain models.

Provides helpers for:
- Parsing ``From``/``To``/``Cc`` headers into ``EmailAddress`` lists
- Walking a message payload for the text and HTML bodies and attachments
- Converting a ``format="full"`` thread resource into a ``Thread``

Gmail reports labels by id; callers pass an id -> name map so the domain
only ever sees label names (system label ids and names coincide).
"""

from __future__ import annotations

import base64
from collections.abc import Mapping
from datetime import UTC, datetime
from email.utils import getaddresses
from typing import Any

from inboxflow.domain.models import Attachment, EmailAddress, Message, Thread
from inboxflow.domain.types import SystemLabel


def decode_body(data: str) -> str:
    """Decode a base64url ``body.data`` value to text."""
    if not data:
        return ""
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")


def parse_addresses(value: str) -> list[EmailAddress]:
    """Parse an address header into ``EmailAddress`` models."""
    return [
        EmailAddress(email=addr, name=name or None)
        for name, addr in getaddresses([value])
        if addr
    ]


def _headers(payload: Mapping[str, Any]) -> dict[str, str]:
    return {h["name"].lower(): h.get("value", "") for h in payload.get("headers", [])}


def _walk_parts(payload: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    parts: list[Mapping[str, Any]] = [payload]
    for part in payload.get("parts", []) or []:
        parts.extend(_walk_parts(part))
    return parts


def extract_content(payload: Mapping[str, Any]) -> tuple[str, str, list[Attachment]]:
    """Return ``(body_text, body_html, attachments)`` for a message payload.

    The first ``text/plain`` and first ``text/html`` inline parts win; any
    part with a filename is an attachment.
    """
    body_text = ""
    body_html = ""
    attachments: list[Attachment] = []

    for part in _walk_parts(payload):
        mime_type = part.get("mimeType", "")
        body = part.get("body", {}) or {}
        filename = part.get("filename", "")

        if filename:
            attachments.append(
                Attachment(
                    id=body.get("attachmentId", ""),
                    filename=filename,
                    mime_type=mime_type or "application/octet-stream",
                    size=int(body.get("size", 0)),
                )
            )
        elif mime_type == "text/plain" and not body_text:
            body_text = decode_body(body.get("data", ""))
        elif mime_type == "text/html" and not body_html:
            body_html = decode_body(body.get("data", ""))

    return body_text, body_html, attachments


def label_names(label_ids: list[str], names_by_id: Mapping[str, str]) -> list[str]:
    """Translate Gmail label ids to names, keeping unknown ids as-is."""
    return [names_by_id.get(label_id, label_id) for label_id in label_ids]


def to_message(raw: Mapping[str, Any], names_by_id: Mapping[str, str]) -> Message:
    """Convert one Gmail message resource into a ``Message``."""
    payload = raw.get("payload", {}) or {}
    headers = _headers(payload)
    body_text, body_html, attachments = extract_content(payload)
    labels = label_names(raw.get("labelIds", []) or [], names_by_id)

    senders = parse_addresses(headers.get("from", ""))
    internal_ms = int(raw.get("internalDate", "0") or 0)

    return Message(
        id=raw["id"],
        thread_id=raw.get("threadId", ""),
        sender=senders[0] if senders else EmailAddress(email=""),
        to=parse_addresses(headers.get("to", "")),
        cc=parse_addresses(headers.get("cc", "")),
        subject=headers.get("subject", ""),
        snippet=raw.get("snippet", ""),
        body_text=body_text,
        body_html=body_html,
        attachments=attachments,
        labels=labels,
        date=datetime.fromtimestamp(internal_ms / 1000, tz=UTC) if internal_ms else None,
        is_unread=SystemLabel.UNREAD in labels,
    )


def to_thread(raw: Mapping[str, Any], names_by_id: Mapping[str, str]) -> Thread:
    """Convert a ``format="full"`` Gmail thread resource into a ``Thread``.

    Thread labels are the ordered union of the message labels; participants
    are the distinct senders in order of first appearance.
    """
    messages = [to_message(m, names_by_id) for m in raw.get("messages", []) or []]

    labels: list[str] = []
    participants: list[EmailAddress] = []
    seen: set[str] = set()
    for msg in messages:
        for label in msg.labels:
            if label not in labels:
                labels.append(label)
        address = msg.sender.email.lower()
        if address and address not in seen:
            seen.add(address)
            participants.append(msg.sender)

    first = messages[0] if messages else None
    latest = messages[-1] if messages else None
    return Thread(
        id=raw["id"],
        subject=first.subject if first else "",
        snippet=latest.snippet if latest else raw.get("snippet", ""),
        messages=messages,
        labels=labels,
        participants=participants,
    )
