"""Keyboard shortcut resolution and dispatch.

==================  ===========================================
Key                 Action
==================  ===========================================
``e`` / ``d``       Done: clear managed labels and archive
``p``               Move to Pending
``t``               Move to Todo
``s``               Toggle star
Cmd/Ctrl+Shift+R    Refresh the active view
==================  ===========================================

Keys pressed while focus is in an editable target are ignored.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from inboxflow.domain.types import PENDING_LABEL, TODO_LABEL
from inboxflow.threads.views import MoveOutcome, ViewReconciler


class ShortcutAction(StrEnum):
    DONE = "done"
    PENDING = "pending"
    TODO = "todo"
    STAR = "star"
    REFRESH = "refresh"


class KeyPress(BaseModel):
    """One key event as reported by the UI shell."""

    model_config = ConfigDict(frozen=True)

    key: str
    meta: bool = False
    ctrl: bool = False
    shift: bool = False
    alt: bool = False
    in_editable: bool = False


_PLAIN_KEYS: dict[str, ShortcutAction] = {
    "e": ShortcutAction.DONE,
    "d": ShortcutAction.DONE,
    "p": ShortcutAction.PENDING,
    "t": ShortcutAction.TODO,
    "s": ShortcutAction.STAR,
}


def resolve_shortcut(press: KeyPress) -> ShortcutAction | None:
    """Map a key press to an action, or ``None`` when it is not a shortcut."""
    if press.in_editable:
        return None
    if (press.meta or press.ctrl) and press.shift and press.key.lower() == "r":
        return ShortcutAction.REFRESH
    if press.meta or press.ctrl or press.alt or press.shift:
        return None
    return _PLAIN_KEYS.get(press.key)


async def dispatch_shortcut(
    press: KeyPress,
    reconciler: ViewReconciler,
    thread_id: str | None,
    refresh: Callable[[], Awaitable[object]],
) -> MoveOutcome | ShortcutAction | None:
    """Resolve *press* and perform it.

    Args:
        press: The key event.
        reconciler: The active view reconciler.
        thread_id: The selected thread, if any.
        refresh: Refreshes the active view.

    Returns:
        The ``MoveOutcome`` of a thread action, ``REFRESH`` after a refresh,
        or ``None`` when nothing happened.
    """
    action = resolve_shortcut(press)
    if action is None:
        return None
    if action is ShortcutAction.REFRESH:
        await refresh()
        return action
    if thread_id is None:
        return None

    if action is ShortcutAction.DONE:
        return await reconciler.done(thread_id)
    if action is ShortcutAction.STAR:
        return await reconciler.toggle_star(thread_id)
    label = PENDING_LABEL if action is ShortcutAction.PENDING else TODO_LABEL
    return await reconciler.move_to_label(thread_id, label)
