"""RSVP state machine and per-message controller."""

from inboxflow.rsvp.controller import RsvpController
from inboxflow.rsvp.machine import RsvpStateMachine
from inboxflow.rsvp.transitions import (
    RESPONSE_EVENTS,
    TERMINAL_STATES,
    TRANSITIONS,
    RsvpEffect,
    RsvpEvent,
    transition,
)

__all__ = [
    "RESPONSE_EVENTS",
    "TERMINAL_STATES",
    "TRANSITIONS",
    "RsvpController",
    "RsvpEffect",
    "RsvpEvent",
    "RsvpStateMachine",
    "transition",
]
