"""Keyboard focus reclamation."""

from inboxflow.focus.guardian import FocusGuardian, FocusHost

__all__ = [
    "FocusGuardian",
    "FocusHost",
]
