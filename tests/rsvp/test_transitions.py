"""Tests for the RSVP transition table."""

import pytest

from inboxflow.domain.errors import InvalidTransitionError
from inboxflow.domain.types import RsvpResponse, RsvpState
from inboxflow.rsvp.transitions import (
    RESPONSE_EVENTS,
    TERMINAL_STATES,
    TRANSITIONS,
    RsvpEffect,
    RsvpEvent,
    transition,
)

# ---------------------------------------------------------------------------
# All 8 valid transitions
# ---------------------------------------------------------------------------
VALID_TRANSITIONS: list[tuple[RsvpState, str, RsvpState, tuple[RsvpEffect, ...]]] = [
    (RsvpState.NONE, "request", RsvpState.LOADING, (RsvpEffect.CALL_REMOTE,)),
    (RsvpState.LOADING, "accepted", RsvpState.ACCEPTED, (RsvpEffect.ARCHIVE_THREAD,)),
    (RsvpState.LOADING, "tentative", RsvpState.TENTATIVE, (RsvpEffect.ARCHIVE_THREAD,)),
    (RsvpState.LOADING, "declined", RsvpState.DECLINED, (RsvpEffect.ARCHIVE_THREAD,)),
    (RsvpState.LOADING, "fail", RsvpState.NONE, ()),
    (RsvpState.ACCEPTED, "change", RsvpState.NONE, ()),
    (RsvpState.TENTATIVE, "change", RsvpState.NONE, ()),
    (RsvpState.DECLINED, "change", RsvpState.NONE, ()),
]

_VALID_PAIRS = {(s, e) for s, e, _, _ in VALID_TRANSITIONS}

INVALID_TRANSITIONS: list[tuple[RsvpState, str]] = [
    (state, event.value)
    for state in RsvpState
    for event in RsvpEvent
    if (state, event.value) not in _VALID_PAIRS
]


class TestTransitionTable:
    def test_table_has_exactly_the_valid_pairs(self) -> None:
        assert len(TRANSITIONS) == len(VALID_TRANSITIONS)
        assert set(TRANSITIONS) == _VALID_PAIRS

    @pytest.mark.parametrize(("state", "event", "to_state", "effects"), VALID_TRANSITIONS)
    def test_valid_transition(
        self,
        state: RsvpState,
        event: str,
        to_state: RsvpState,
        effects: tuple[RsvpEffect, ...],
    ) -> None:
        assert transition(state, event) == (to_state, effects)

    @pytest.mark.parametrize(("state", "event"), INVALID_TRANSITIONS)
    def test_invalid_transition_raises(self, state: RsvpState, event: str) -> None:
        with pytest.raises(InvalidTransitionError) as exc_info:
            transition(state, event)
        assert exc_info.value.current_state == state
        assert exc_info.value.event == event

    def test_unknown_event_raises(self) -> None:
        with pytest.raises(InvalidTransitionError):
            transition(RsvpState.NONE, "maybe")


class TestConstants:
    def test_terminal_states_are_the_responses(self) -> None:
        assert {s.value for s in TERMINAL_STATES} == {r.value for r in RsvpResponse}

    def test_every_response_has_a_success_event(self) -> None:
        for response in RsvpResponse:
            assert RESPONSE_EVENTS[response].value == response.value

    def test_terminal_states_only_leave_on_change(self) -> None:
        for state in TERMINAL_STATES:
            events = {e for s, e in TRANSITIONS if s == state}
            assert events == {RsvpEvent.CHANGE}
