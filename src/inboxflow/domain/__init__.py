"""Domain types, models, and errors for the inboxflow core."""

from inboxflow.domain.errors import (
    BridgeError,
    InboxflowError,
    InvalidTransitionError,
    MissingEventIdError,
    RsvpFailedError,
    ViewNotFoundError,
)
from inboxflow.domain.models import (
    DEFAULT_VIEWS,
    AppConfig,
    Attachment,
    EmailAddress,
    InviteClassification,
    Label,
    Message,
    Thread,
    View,
)
from inboxflow.domain.types import (
    PENDING_LABEL,
    TODO_LABEL,
    UNCOUNTED_VIEW_IDS,
    MoveAction,
    RsvpResponse,
    RsvpState,
    SystemLabel,
)

__all__ = [
    "DEFAULT_VIEWS",
    "PENDING_LABEL",
    "TODO_LABEL",
    "UNCOUNTED_VIEW_IDS",
    "AppConfig",
    "Attachment",
    "BridgeError",
    "EmailAddress",
    "InboxflowError",
    "InvalidTransitionError",
    "InviteClassification",
    "Label",
    "Message",
    "MissingEventIdError",
    "MoveAction",
    "RsvpFailedError",
    "RsvpResponse",
    "RsvpState",
    "SystemLabel",
    "Thread",
    "View",
    "ViewNotFoundError",
]
