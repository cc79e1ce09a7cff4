"""Pure content classification: calendar invites and quoted content."""

from inboxflow.classify.invites import (
    DEFAULT_CALENDAR_SENDERS,
    classify_invite,
    decode_event_reference,
    extract_event_id,
    invite_summary,
    invite_window,
    is_invite,
)
from inboxflow.classify.quotes import (
    QUOTE_ATTR,
    QuotedBody,
    QuoteReason,
    QuoteRegion,
    detect_quote_boundaries,
    has_quoted_content,
    message_has_quoted_content,
    split_plain_reply,
    tag_quoted_regions,
)

__all__ = [
    "DEFAULT_CALENDAR_SENDERS",
    "QUOTE_ATTR",
    "QuoteReason",
    "QuoteRegion",
    "QuotedBody",
    "classify_invite",
    "decode_event_reference",
    "detect_quote_boundaries",
    "extract_event_id",
    "has_quoted_content",
    "invite_summary",
    "invite_window",
    "is_invite",
    "message_has_quoted_content",
    "split_plain_reply",
    "tag_quoted_regions",
]
