"""Domain enumerations and label constants for the inboxflow core."""

from enum import StrEnum


class SystemLabel(StrEnum):
    """Gmail system labels the core reads or writes directly."""

    INBOX = "INBOX"
    UNREAD = "UNREAD"
    STARRED = "STARRED"


class RsvpResponse(StrEnum):
    """Responses that can be sent to a calendar invitation."""

    ACCEPTED = "accepted"
    TENTATIVE = "tentative"
    DECLINED = "declined"


class RsvpState(StrEnum):
    """States of a single message's RSVP interaction."""

    NONE = "none"
    LOADING = "loading"
    ACCEPTED = "accepted"
    TENTATIVE = "tentative"
    DECLINED = "declined"


class MoveAction(StrEnum):
    """What a view-reconciler action did to the target label."""

    ADDED = "added"
    REMOVED = "removed"
    CLEARED = "cleared"
    RESTORED = "restored"


# Labels the keyboard shortcuts move threads into.
PENDING_LABEL = "PENDING"
TODO_LABEL = "TODO"

# Views that never contribute to the badge / view-count poll.
UNCOUNTED_VIEW_IDS: frozenset[str] = frozenset({"all", "sent", "drafts"})
