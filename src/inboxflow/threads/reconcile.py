"""Delayed reconciliation fetches keyed by a view generation counter.

After an optimistic mutation the store schedules a fetch a little later so
its cache converges with the eventually consistent server.  Each scheduled
fetch is a ``PendingReconciliation`` that moves through::

    scheduled -> in_flight -> settled
    scheduled -> cancelled          (view torn down, or generation changed)

A timer that fires after the generation it was scheduled under has been
superseded does nothing.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import StrEnum

import structlog

from inboxflow.observability.metrics import RECONCILIATIONS

logger = structlog.get_logger()

FetchCallback = Callable[[], Awaitable[bool]]


class ReconcileStatus(StrEnum):
    """Lifecycle of one delayed reconciliation fetch."""

    SCHEDULED = "scheduled"
    IN_FLIGHT = "in_flight"
    SETTLED = "settled"
    CANCELLED = "cancelled"


class PendingReconciliation:
    """Handle on one scheduled reconciliation fetch."""

    def __init__(self, generation: int, delay: float) -> None:
        self.generation = generation
        self.delay = delay
        self.status: ReconcileStatus = ReconcileStatus.SCHEDULED
        self.succeeded: bool | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def done(self) -> bool:
        """True once the fetch settled or was cancelled."""
        return self.status in (ReconcileStatus.SETTLED, ReconcileStatus.CANCELLED)

    def cancel(self) -> None:
        """Cancel the timer; a fetch already in flight is left to finish."""
        if self.status is ReconcileStatus.SCHEDULED:
            self.status = ReconcileStatus.CANCELLED
            RECONCILIATIONS.labels(outcome="cancelled").inc()
            if self._task is not None:
                self._task.cancel()

    async def wait(self) -> ReconcileStatus:
        """Wait until the reconciliation is done and return its final status."""
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                if not self._task.cancelled():
                    raise
        return self.status


class ReconciliationScheduler:
    """Schedules delayed fetches for one thread list store.

    Args:
        fetch: Coroutine function performing the reconciliation fetch.
        generation: The generation this scheduler's store belongs to.
        current_generation: Returns the live generation; a timer whose
            generation no longer matches is a no-op.
    """

    def __init__(
        self,
        fetch: FetchCallback,
        generation: int,
        current_generation: Callable[[], int],
    ) -> None:
        self._fetch = fetch
        self._generation = generation
        self._current_generation = current_generation
        self._pending: set[PendingReconciliation] = set()

    @property
    def pending(self) -> list[PendingReconciliation]:
        """Reconciliations that have not finished yet."""
        return [p for p in self._pending if not p.done]

    def schedule(self, delay: float) -> PendingReconciliation:
        """Schedule a reconciliation fetch after *delay* seconds.

        Must be called from within a running event loop.
        """
        pending = PendingReconciliation(self._generation, delay)
        pending._task = asyncio.get_running_loop().create_task(self._run(pending))
        self._pending.add(pending)
        logger.debug("reconciliation_scheduled", generation=self._generation, delay=delay)
        return pending

    async def _run(self, pending: PendingReconciliation) -> None:
        try:
            await asyncio.sleep(pending.delay)
            if pending.status is not ReconcileStatus.SCHEDULED:
                return
            if pending.generation != self._current_generation():
                pending.status = ReconcileStatus.CANCELLED
                RECONCILIATIONS.labels(outcome="stale").inc()
                logger.debug("reconciliation_stale", generation=pending.generation)
                return
            pending.status = ReconcileStatus.IN_FLIGHT
            pending.succeeded = await self._fetch()
            pending.status = ReconcileStatus.SETTLED
            RECONCILIATIONS.labels(outcome="settled" if pending.succeeded else "failed").inc()
        finally:
            self._pending.discard(pending)

    def cancel_all(self) -> None:
        """Cancel every reconciliation that has not started fetching."""
        for pending in list(self._pending):
            pending.cancel()
            if pending.done:
                self._pending.discard(pending)
