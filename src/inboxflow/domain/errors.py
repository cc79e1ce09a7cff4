"""Domain-specific exception classes for the inboxflow core."""

from __future__ import annotations


class InboxflowError(Exception):
    """Base class for all domain errors in inboxflow."""


class InvalidTransitionError(InboxflowError):
    """Raised when an invalid state transition is attempted.

    Attributes:
        current_state: The state the machine was in when the transition was attempted.
        event: The event that was rejected.
    """

    def __init__(self, current_state: str, event: str) -> None:
        self.current_state = current_state
        self.event = event
        super().__init__(
            f"Cannot apply event '{event}' in state '{current_state}'"
        )


class MissingEventIdError(InboxflowError):
    """Raised when an RSVP is requested for an invite with no extractable event id."""

    def __init__(self, message_id: str) -> None:
        self.message_id = message_id
        super().__init__(
            "This invitation has no calendar event id; respond from your calendar instead."
        )


class RsvpFailedError(InboxflowError):
    """Raised when the remote calendar rejects or fails an RSVP call.

    Attributes:
        event_id: The calendar event the RSVP targeted.
        response: The response that was being sent.
    """

    def __init__(self, event_id: str, response: str, reason: str) -> None:
        self.event_id = event_id
        self.response = response
        super().__init__(f"Could not RSVP '{response}': {reason}")


class BridgeError(InboxflowError):
    """Raised by a bridge implementation when a remote call cannot be made."""


class ViewNotFoundError(InboxflowError):
    """Raised when a view id is not part of the configured view list."""

    def __init__(self, view_id: str) -> None:
        self.view_id = view_id
        super().__init__(f"Unknown view: {view_id}")
