"""Managed-label view reconciliation.

A view whose whole query is ``label:<NAME>`` makes NAME a *managed label*.
Managed-label views are mutually exclusive: moving a thread into one view
removes it from every other.  Each action is a best-effort, non-atomic
sequence of label mutations against the store, followed by a delayed
reconciliation fetch.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

import structlog
from pydantic import BaseModel, ConfigDict

from inboxflow.domain.models import View
from inboxflow.domain.types import MoveAction, SystemLabel
from inboxflow.threads.reconcile import PendingReconciliation
from inboxflow.threads.store import ThreadListStore

logger = structlog.get_logger()


def managed_labels(views: Iterable[View]) -> list[str]:
    """Return the managed labels of *views*, de-duplicated, in view order."""
    labels: list[str] = []
    for view in views:
        label = view.managed_label
        if label and label not in labels:
            labels.append(label)
    return labels


class MoveOutcome(BaseModel):
    """Result of one view-reconciler action."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    thread_id: str
    label: str | None
    action: MoveAction
    labels: list[str]
    reconciliation: PendingReconciliation | None = None


class ViewReconciler:
    """Moves threads between managed-label views of one store.

    Args:
        store: The active thread list store.
        views: The configured views; the managed label set derives from them.
        move_refresh_delay: Seconds before the reconciliation fetch after a move.
        archive_refresh_delay: Seconds before the reconciliation fetch after
            done or restore.
    """

    def __init__(
        self,
        store: ThreadListStore,
        views: Iterable[View],
        move_refresh_delay: float = 2.0,
        archive_refresh_delay: float = 0.5,
    ) -> None:
        self.store = store
        self.move_refresh_delay = move_refresh_delay
        self.archive_refresh_delay = archive_refresh_delay
        self._views: list[View] = []
        self.managed: list[str] = []
        self.set_views(views)

    def set_views(self, views: Iterable[View]) -> None:
        """Replace the view list and recompute the managed label set."""
        self._views = list(views)
        self.managed = managed_labels(self._views)

    def _labels_of(self, thread_id: str) -> list[str]:
        thread = self.store.get(thread_id)
        return list(thread.labels) if thread else []

    def _outcome(
        self,
        thread_id: str,
        label: str | None,
        action: MoveAction,
        pending: PendingReconciliation,
        fallback: list[str],
    ) -> MoveOutcome:
        thread = self.store.get(thread_id)
        return MoveOutcome(
            thread_id=thread_id,
            label=label,
            action=action,
            labels=list(thread.labels) if thread else fallback,
            reconciliation=pending,
        )

    async def move_to_label(
        self, thread_id: str, label: str, leaves_list: bool = True
    ) -> MoveOutcome:
        """Move the thread into the view backed by *label*.

        If the thread already carries *label* the move toggles it off instead
        and the thread stays in the list.  Otherwise every other managed label
        is removed (concurrently), *label* is added, and the thread leaves the
        list when *leaves_list* is set.  A reconciliation fetch follows after
        ``move_refresh_delay``.

        Args:
            thread_id: Target thread.
            label: Managed (or any) label to move into.
            leaves_list: Archive the thread so it leaves the current list.

        Returns:
            A ``MoveOutcome`` with the thread's labels as the store sees them.
        """
        before = self._labels_of(thread_id)
        if label in before:
            await self.store.modify_labels(thread_id, remove=label)
            pending = self.store.schedule_refresh(self.move_refresh_delay)
            logger.info("thread_label_toggled_off", thread_id=thread_id, label=label)
            expected = [lbl for lbl in before if lbl != label]
            return self._outcome(thread_id, label, MoveAction.REMOVED, pending, expected)

        others = [m for m in self.managed if m != label]
        await asyncio.gather(*(self.store.modify_labels(thread_id, remove=m) for m in others))
        await self.store.modify_labels(thread_id, add=label)
        if leaves_list:
            await self.store.archive(thread_id)
        pending = self.store.schedule_refresh(self.move_refresh_delay)
        logger.info("thread_moved", thread_id=thread_id, label=label, leaves_list=leaves_list)

        expected = [lbl for lbl in before if lbl not in others]
        if label not in expected:
            expected.append(label)
        if leaves_list:
            expected = [lbl for lbl in expected if lbl != SystemLabel.INBOX]
        return self._outcome(thread_id, label, MoveAction.ADDED, pending, expected)

    async def done(self, thread_id: str) -> MoveOutcome:
        """Remove every managed label, archive, and reconcile shortly after."""
        before = self._labels_of(thread_id)
        for label in self.managed:
            await self.store.modify_labels(thread_id, remove=label)
        await self.store.archive(thread_id)
        pending = self.store.schedule_refresh(self.archive_refresh_delay)
        logger.info("thread_done", thread_id=thread_id)

        expected = [
            lbl for lbl in before if lbl not in self.managed and lbl != SystemLabel.INBOX
        ]
        return self._outcome(thread_id, None, MoveAction.CLEARED, pending, expected)

    async def restore(self, thread_id: str, view: View | None = None) -> MoveOutcome:
        """Undo ``done``: put the thread back in the inbox and *view*."""
        add = [SystemLabel.INBOX.value]
        if view is not None and view.managed_label:
            add.append(view.managed_label)
        await self.store.modify_labels(thread_id, add=add)
        pending = self.store.schedule_refresh(self.archive_refresh_delay)
        logger.info("thread_restored", thread_id=thread_id, view=view.id if view else None)
        return self._outcome(thread_id, None, MoveAction.RESTORED, pending, add)

    async def toggle_star(self, thread_id: str) -> MoveOutcome:
        """Add ``STARRED`` if missing, remove it otherwise."""
        starred = SystemLabel.STARRED.value
        before = self._labels_of(thread_id)
        if starred in before:
            await self.store.modify_labels(thread_id, remove=starred)
            action = MoveAction.REMOVED
            expected = [lbl for lbl in before if lbl != starred]
        else:
            await self.store.modify_labels(thread_id, add=starred)
            action = MoveAction.ADDED
            expected = [*before, starred]
        pending = self.store.schedule_refresh(self.move_refresh_delay)
        return self._outcome(thread_id, starred, action, pending, expected)
