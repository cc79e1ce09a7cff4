"""Per-message RSVP controller.

Binds an ``RsvpStateMachine`` to one message: classifies the message once,
performs the effects returned by each transition (the remote calendar call
and the follow-up archive), and keeps the error message shown to the user.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable

import structlog

from inboxflow.bridge.protocol import Bridge
from inboxflow.classify.invites import DEFAULT_CALENDAR_SENDERS, classify_invite
from inboxflow.domain.errors import MissingEventIdError, RsvpFailedError
from inboxflow.domain.models import InviteClassification, Message
from inboxflow.domain.types import RsvpResponse, RsvpState
from inboxflow.rsvp.machine import RsvpStateMachine
from inboxflow.rsvp.transitions import RESPONSE_EVENTS, RsvpEffect, RsvpEvent

logger = structlog.get_logger()

ArchiveCallback = Callable[[], Awaitable[None]]

IN_FLIGHT_MESSAGE = "A response to this invitation is already being sent."


class RsvpController:
    """RSVP interaction for a single presented message.

    State lives only as long as the controller; a freshly opened thread
    starts again at ``none``.

    Args:
        message: The message being presented.
        bridge: Used for the remote ``calendar_rsvp`` call.
        on_archive: Called once after a successful response, or ``None`` to
            skip archiving (``archive_on_rsvp`` disabled).
        senders: Calendar-notification addresses used by invite detection.
    """

    def __init__(
        self,
        message: Message,
        bridge: Bridge,
        on_archive: ArchiveCallback | None = None,
        senders: Iterable[str] = DEFAULT_CALENDAR_SENDERS,
    ) -> None:
        self._message = message
        self._bridge = bridge
        self._on_archive = on_archive
        self._machine = RsvpStateMachine()
        self.classification: InviteClassification = classify_invite(message, senders)

    @property
    def is_invite(self) -> bool:
        """Return True if the message was classified as an invitation."""
        return self.classification.is_invite

    @property
    def event_id(self) -> str | None:
        """Return the extracted calendar event id, if any."""
        return self.classification.event_id

    @property
    def can_respond(self) -> bool:
        """Return True if the RSVP buttons should be enabled."""
        return self.is_invite and self.event_id is not None

    @property
    def state(self) -> RsvpState:
        """Return the current RSVP state."""
        return self._machine.state

    @property
    def error(self) -> str | None:
        """Return the error message from the last attempt, if any."""
        return self._machine.error

    @property
    def history(self) -> list[tuple[RsvpState, str, RsvpState]]:
        """Return the transition history of this interaction."""
        return self._machine.history

    async def respond(self, response: RsvpResponse) -> RsvpState:
        """Send *response* to the invitation and archive the thread on success.

        A missing event id is rejected without any remote call.  A remote
        failure returns the state to ``none`` with the error set.  Archive
        failures are logged; the recorded response stands.

        A call while a request is in flight, or after a response was
        recorded (without ``change()``), makes no remote call; the error is
        set and the current state returned.

        Args:
            response: ``accepted``, ``tentative``, or ``declined``.

        Returns:
            The state after the attempt.
        """
        if not self.is_invite:
            return self.state
        if self.state is RsvpState.LOADING:
            self._machine.error = IN_FLIGHT_MESSAGE
            logger.info("rsvp_already_in_flight", message_id=self._message.id)
            return self.state
        if self.state is not RsvpState.NONE:
            self._machine.error = (
                f"Already responded '{self.state}'; change the response first."
            )
            logger.info(
                "rsvp_already_recorded", message_id=self._message.id, state=str(self.state)
            )
            return self.state
        self._machine.error = None

        event_id = self.event_id
        if event_id is None:
            self._machine.error = str(MissingEventIdError(self._message.id))
            logger.info("rsvp_rejected_missing_event_id", message_id=self._message.id)
            return self.state

        effects = self._machine.trigger(RsvpEvent.REQUEST)
        if RsvpEffect.CALL_REMOTE in effects:
            try:
                await self._bridge.calendar_rsvp(event_id, response)
            except Exception as exc:
                failure = RsvpFailedError(event_id, response, str(exc))
                self._machine.trigger(RsvpEvent.FAIL)
                self._machine.error = str(failure)
                logger.warning(
                    "rsvp_failed",
                    message_id=self._message.id,
                    event_id=event_id,
                    response=str(response),
                    error=str(exc),
                )
                return self.state

        effects = self._machine.trigger(RESPONSE_EVENTS[response])
        self._machine.error = None
        logger.info(
            "rsvp_recorded",
            message_id=self._message.id,
            event_id=event_id,
            response=str(response),
        )
        if RsvpEffect.ARCHIVE_THREAD in effects and self._on_archive is not None:
            try:
                await self._on_archive()
            except Exception:
                logger.exception("rsvp_archive_failed", message_id=self._message.id)
        return self.state

    def change(self) -> RsvpState:
        """Return to ``none`` so a different response can be sent.

        Raises:
            InvalidTransitionError: If no response has been recorded.
        """
        self._machine.trigger(RsvpEvent.CHANGE)
        self._machine.error = None
        return self.state
