"""Per-view thread cache with optimistic mutations.

``ThreadListStore`` holds the threads of the one query currently shown.
Every mutation updates the cache first, synchronously, and then issues the
remote call.  Remote failures are logged and counted but never rolled back;
the next reconciliation fetch brings the cache back in line with the server.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

import structlog

from inboxflow.bridge.protocol import Bridge
from inboxflow.domain.models import Message, Thread
from inboxflow.domain.types import SystemLabel
from inboxflow.observability.metrics import CACHED_THREADS, REMOTE_FAILURES
from inboxflow.threads.reconcile import PendingReconciliation, ReconciliationScheduler

logger = structlog.get_logger()


def apply_label_change(
    labels: Iterable[str], add: Iterable[str] = (), remove: Iterable[str] = ()
) -> list[str]:
    """Return *labels* with *remove* dropped, then *add* appended, de-duplicated.

    Order of the surviving labels is preserved.
    """
    removed = set(remove)
    result: list[str] = []
    for label in [*(lbl for lbl in labels if lbl not in removed), *add]:
        if label not in result:
            result.append(label)
    return result


def _relabel_message(message: Message, add: list[str], remove: list[str]) -> Message:
    labels = apply_label_change(message.labels, add, remove)
    return message.model_copy(
        update={"labels": labels, "is_unread": SystemLabel.UNREAD in labels}
    )


def relabel_thread(thread: Thread, add: list[str], remove: list[str]) -> Thread:
    """Apply a label change to *thread* and every one of its messages."""
    return thread.model_copy(
        update={
            "labels": apply_label_change(thread.labels, add, remove),
            "messages": [_relabel_message(m, add, remove) for m in thread.messages],
        }
    )


class ThreadListStore:
    """Cache of the threads matching one query.

    Args:
        bridge: The remote mail store.
        query: The query this store shows.
        limit: Maximum number of threads fetched.
        generation: The view generation this store belongs to.
        current_generation: Returns the live generation.  Defaults to this
            store's own generation, which only changes on ``close()``.
    """

    def __init__(
        self,
        bridge: Bridge,
        query: str,
        limit: int = 50,
        generation: int = 0,
        current_generation: Callable[[], int] | None = None,
    ) -> None:
        self._bridge = bridge
        self.query = query
        self.limit = limit
        self.generation = generation
        self._closed = False
        self._threads: list[Thread] = []
        self.loaded = False
        self._current_generation = current_generation or self._own_generation
        self._scheduler = ReconciliationScheduler(
            self._reconcile, generation, self._current_generation
        )

    def _own_generation(self) -> int:
        return -1 if self._closed else self.generation

    # -- Cache access ------------------------------------------------------------

    @property
    def threads(self) -> list[Thread]:
        """Return a copy of the cached threads, in server order."""
        return list(self._threads)

    @property
    def closed(self) -> bool:
        """True once the store has been discarded."""
        return self._closed

    @property
    def is_current(self) -> bool:
        """True while this store still belongs to the live generation."""
        return not self._closed and self._current_generation() == self.generation

    @property
    def pending_reconciliations(self) -> list[PendingReconciliation]:
        """Reconciliations scheduled but not yet finished."""
        return self._scheduler.pending

    def get(self, thread_id: str) -> Thread | None:
        """Return the cached thread with *thread_id*, if present."""
        return next((t for t in self._threads if t.id == thread_id), None)

    def _replace(self, thread_id: str, update: Callable[[Thread], Thread]) -> Thread | None:
        if not self.is_current:
            return None
        for index, thread in enumerate(self._threads):
            if thread.id == thread_id:
                updated = update(thread)
                self._threads[index] = updated
                return updated
        return None

    def _set_threads(self, threads: list[Thread]) -> None:
        self._threads = threads
        CACHED_THREADS.set(len(threads))

    # -- Remote operations -------------------------------------------------------

    async def fetch(self, query: str | None = None, limit: int | None = None) -> bool:
        """Replace the cache with a fresh server result.

        Concurrent fetches are not coalesced; the last one to complete wins.
        A result arriving after the store was closed or superseded is dropped.

        Args:
            query: Query to fetch; switches this store's query when given.
            limit: Overrides the fetch limit for this call.

        Returns:
            True if the cache was replaced.
        """
        if query is not None:
            self.query = query
        requested = self.query
        try:
            threads = await self._bridge.fetch_threads(requested, limit or self.limit)
        except Exception as exc:
            REMOTE_FAILURES.labels(operation="fetch").inc()
            logger.warning("thread_fetch_failed", query=requested, error=str(exc))
            return False

        if not self.is_current:
            logger.debug("thread_fetch_dropped", query=requested, generation=self.generation)
            return False
        self._set_threads(threads)
        self.loaded = True
        logger.debug("thread_fetch_completed", query=requested, count=len(threads))
        return True

    async def _reconcile(self) -> bool:
        return await self.fetch()

    async def archive(self, thread_id: str) -> bool:
        """Drop the thread from the list, then archive it remotely.

        Returns:
            True if the remote call succeeded.
        """
        if self.is_current:
            self._set_threads([t for t in self._threads if t.id != thread_id])
        try:
            await self._bridge.archive_thread(thread_id)
        except Exception as exc:
            REMOTE_FAILURES.labels(operation="archive").inc()
            logger.warning("thread_archive_failed", thread_id=thread_id, error=str(exc))
            return False
        return True

    async def modify_labels(
        self,
        thread_id: str,
        add: str | list[str] | None = None,
        remove: str | list[str] | None = None,
    ) -> bool:
        """Change labels locally on the thread and its messages, then remotely.

        Local order is remove, then add, then de-duplicate.

        Returns:
            True if the remote call succeeded.
        """
        add_list = [str(a) for a in ([add] if isinstance(add, str) else add or [])]
        remove_list = [str(r) for r in ([remove] if isinstance(remove, str) else remove or [])]
        self._replace(thread_id, lambda t: relabel_thread(t, add_list, remove_list))
        try:
            await self._bridge.modify_labels(thread_id, add_list or None, remove_list or None)
        except Exception as exc:
            REMOTE_FAILURES.labels(operation="modify_labels").inc()
            logger.warning(
                "thread_label_change_failed",
                thread_id=thread_id,
                add=add_list,
                remove=remove_list,
                error=str(exc),
            )
            return False
        return True

    async def mark_read(self, thread_id: str) -> bool:
        """Clear the unread flag locally, then remotely.

        Returns:
            True if the remote call succeeded.
        """
        self._replace(thread_id, lambda t: relabel_thread(t, [], [SystemLabel.UNREAD.value]))
        try:
            await self._bridge.mark_as_read(thread_id)
        except Exception as exc:
            REMOTE_FAILURES.labels(operation="mark_read").inc()
            logger.warning("thread_mark_read_failed", thread_id=thread_id, error=str(exc))
            return False
        return True

    def schedule_refresh(self, delay: float) -> PendingReconciliation:
        """Schedule a reconciliation fetch after *delay* seconds."""
        return self._scheduler.schedule(delay)

    def close(self) -> None:
        """Discard the store: cancel timers and stop accepting results."""
        self._closed = True
        self._scheduler.cancel_all()
