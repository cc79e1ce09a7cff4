"""Transition map defining all valid (state, event) -> (state, effects) mappings."""

from __future__ import annotations

from enum import StrEnum

from inboxflow.domain.errors import InvalidTransitionError
from inboxflow.domain.types import RsvpResponse, RsvpState


class RsvpEvent(StrEnum):
    """Events that drive a single message's RSVP interaction."""

    REQUEST = "request"
    ACCEPTED = "accepted"
    TENTATIVE = "tentative"
    DECLINED = "declined"
    FAIL = "fail"
    CHANGE = "change"


class RsvpEffect(StrEnum):
    """Side effects the controller must perform after a transition."""

    CALL_REMOTE = "call_remote"
    ARCHIVE_THREAD = "archive_thread"


Outcome = tuple[RsvpState, tuple[RsvpEffect, ...]]

# All valid (current_state, event) -> (next_state, effects) mappings.
# Any pair not in this dict is an invalid transition.
TRANSITIONS: dict[tuple[RsvpState, str], Outcome] = {
    # From NONE
    (RsvpState.NONE, RsvpEvent.REQUEST): (RsvpState.LOADING, (RsvpEffect.CALL_REMOTE,)),
    # From LOADING
    (RsvpState.LOADING, RsvpEvent.ACCEPTED): (RsvpState.ACCEPTED, (RsvpEffect.ARCHIVE_THREAD,)),
    (RsvpState.LOADING, RsvpEvent.TENTATIVE): (
        RsvpState.TENTATIVE,
        (RsvpEffect.ARCHIVE_THREAD,),
    ),
    (RsvpState.LOADING, RsvpEvent.DECLINED): (RsvpState.DECLINED, (RsvpEffect.ARCHIVE_THREAD,)),
    (RsvpState.LOADING, RsvpEvent.FAIL): (RsvpState.NONE, ()),
    # From a recorded response
    (RsvpState.ACCEPTED, RsvpEvent.CHANGE): (RsvpState.NONE, ()),
    (RsvpState.TENTATIVE, RsvpEvent.CHANGE): (RsvpState.NONE, ()),
    (RsvpState.DECLINED, RsvpEvent.CHANGE): (RsvpState.NONE, ()),
}

# States reached by a successful response; only CHANGE leaves them.
TERMINAL_STATES: frozenset[RsvpState] = frozenset(
    {RsvpState.ACCEPTED, RsvpState.TENTATIVE, RsvpState.DECLINED}
)

# The success event for each response the user can send.
RESPONSE_EVENTS: dict[RsvpResponse, RsvpEvent] = {
    RsvpResponse.ACCEPTED: RsvpEvent.ACCEPTED,
    RsvpResponse.TENTATIVE: RsvpEvent.TENTATIVE,
    RsvpResponse.DECLINED: RsvpEvent.DECLINED,
}


def transition(state: RsvpState, event: str) -> Outcome:
    """Return the next state and the effects for applying *event* in *state*.

    Pure: nothing is performed, the caller executes the returned effects.

    Raises:
        InvalidTransitionError: If the pair is not in ``TRANSITIONS``.
    """
    key = (state, event)
    if key not in TRANSITIONS:
        raise InvalidTransitionError(state, event)
    return TRANSITIONS[key]
