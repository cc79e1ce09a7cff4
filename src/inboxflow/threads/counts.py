"""Periodic view counts, dock badge, and new-mail notifications.

Every ``interval`` seconds the poller fetches each counted view, sets the
badge to the inbox count, notifies about inbox threads that became unread
since the previous poll, and refreshes the active view when its count moved.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable

import structlog

from inboxflow.bridge.protocol import Bridge
from inboxflow.domain.models import Thread, View
from inboxflow.domain.types import UNCOUNTED_VIEW_IDS
from inboxflow.observability.metrics import REMOTE_FAILURES

logger = structlog.get_logger()

INBOX_VIEW_ID = "inbox"
DEFAULT_COUNT_QUERY = "in:inbox"
MAX_NOTIFICATIONS_PER_POLL = 3

RefreshCallback = Callable[[], Awaitable[object]]


def _notification_for(thread: Thread) -> tuple[str, str]:
    sender = thread.participants[0] if thread.participants else None
    title = sender.display if sender else "New email"
    body = thread.subject or thread.snippet or "New email"
    return title, body


class ViewCountPoller:
    """Polls view counts for one view generation.

    Args:
        bridge: The remote mail store and host.
        views: All configured views; ``all``, ``sent`` and ``drafts`` are skipped.
        active_view_id: The view currently shown.
        on_active_changed: Refreshes the active store when its count changed.
        generation: The generation this poller belongs to.
        current_generation: Returns the live generation.
        interval: Seconds between polls.
        limit: Fetch limit per view (counts saturate at this value).
        user_email: Threads whose latest message is from this address never notify.
    """

    def __init__(
        self,
        bridge: Bridge,
        views: Iterable[View],
        active_view_id: str,
        on_active_changed: RefreshCallback,
        generation: int = 0,
        current_generation: Callable[[], int] | None = None,
        interval: float = 30.0,
        limit: int = 50,
        user_email: str = "",
    ) -> None:
        self._bridge = bridge
        self._views = [v for v in views if v.id not in UNCOUNTED_VIEW_IDS]
        self.active_view_id = active_view_id
        self._on_active_changed = on_active_changed
        self.generation = generation
        self._current_generation = current_generation or (lambda: self.generation)
        self.interval = interval
        self.limit = limit
        self.user_email = user_email.lower()
        self.counts: dict[str, int] = {}
        self._seen_unread: set[str] | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        """True while the polling loop is active."""
        return self._task is not None and not self._task.done()

    async def _count(self, view: View) -> tuple[int, list[Thread]]:
        try:
            query = view.query or DEFAULT_COUNT_QUERY
            threads = await self._bridge.fetch_threads(query, self.limit)
        except Exception as exc:
            REMOTE_FAILURES.labels(operation="view_count").inc()
            logger.warning("view_count_failed", view=view.id, error=str(exc))
            return 0, []
        return len(threads), threads

    async def _notify_new_unread(self, inbox: list[Thread]) -> int:
        unread = [t for t in inbox if t.is_unread]
        current = {t.id for t in unread}
        previous = self._seen_unread
        self._seen_unread = current
        if previous is None:
            return 0

        sent = 0
        for thread in (t for t in unread if t.id not in previous):
            if sent >= MAX_NOTIFICATIONS_PER_POLL:
                break
            latest = thread.latest
            if latest and self.user_email and latest.sender.email.lower() == self.user_email:
                continue
            title, body = _notification_for(thread)
            await self._bridge.notify(title, body)
            sent += 1
        return sent

    async def poll_once(self) -> dict[str, int] | None:
        """Run one poll.

        Returns:
            The new counts, or ``None`` when the poller is stale.
        """
        if self._current_generation() != self.generation:
            return None

        results = await asyncio.gather(*(self._count(v) for v in self._views))
        if self._current_generation() != self.generation:
            return None

        counts = {view.id: count for view, (count, _) in zip(self._views, results, strict=True)}
        inbox_threads = next(
            (threads for view, (_, threads) in zip(self._views, results, strict=True)
             if view.id == INBOX_VIEW_ID),
            [],
        )

        await self._bridge.set_badge(counts.get(INBOX_VIEW_ID, 0))
        await self._notify_new_unread(inbox_threads)

        previous = self.counts.get(self.active_view_id)
        current = counts.get(self.active_view_id)
        self.counts = counts
        if previous is not None and current is not None and previous != current:
            logger.info(
                "active_view_count_changed",
                view=self.active_view_id,
                previous=previous,
                current=current,
            )
            await self._on_active_changed()
        return counts

    async def _loop(self) -> None:
        while True:
            try:
                if await self.poll_once() is None:
                    return
            except Exception:
                logger.exception("view_count_poll_failed")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start polling now and every ``interval`` seconds after."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop())

    async def stop(self) -> None:
        """Stop polling and wait for the loop to exit."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
