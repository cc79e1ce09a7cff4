"""RsvpStateMachine class with trigger, history, error slot, and valid_events."""

from __future__ import annotations

from inboxflow.domain.types import RsvpState
from inboxflow.rsvp.transitions import TERMINAL_STATES, TRANSITIONS, RsvpEffect, transition


class RsvpStateMachine:
    """Finite state machine for one message's RSVP interaction.

    Holds the current state, an optional error message shown to the user,
    and the history of applied transitions.  Effects are returned to the
    caller, never performed here.

    Usage::

        sm = RsvpStateMachine()
        sm.trigger("request")    # -> LOADING, (CALL_REMOTE,)
        sm.trigger("accepted")   # -> ACCEPTED, (ARCHIVE_THREAD,)
        sm.trigger("change")     # -> NONE
    """

    def __init__(self, initial_state: RsvpState = RsvpState.NONE) -> None:
        self._state: RsvpState = initial_state
        self._history: list[tuple[RsvpState, str, RsvpState]] = []
        self.error: str | None = None

    @property
    def state(self) -> RsvpState:
        """Return the current RSVP state."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        """Return True once a response has been recorded."""
        return self._state in TERMINAL_STATES

    @property
    def history(self) -> list[tuple[RsvpState, str, RsvpState]]:
        """Return a copy of the ``(from_state, event, to_state)`` history."""
        return list(self._history)

    def trigger(self, event: str) -> tuple[RsvpEffect, ...]:
        """Apply *event* to the current state.

        Args:
            event: The event string (e.g. ``"request"``).

        Returns:
            The effects the caller must now perform.

        Raises:
            InvalidTransitionError: If the transition is not allowed.
        """
        new_state, effects = transition(self._state, event)
        self._history.append((self._state, event, new_state))
        self._state = new_state
        return effects

    def get_valid_events(self) -> list[str]:
        """Return a sorted list of events valid from the current state."""
        return sorted(event for state, event in TRANSITIONS if state == self._state)
