"""Keyboard focus reclamation from the embedded rendering surface.

Message bodies render inside an embedded, partially untrusted surface that
can capture keyboard focus and swallow every shortcut.  ``FocusGuardian``
restores keyboard control: whenever the focused element is that surface it
is blurred.  The check runs on a periodic poll and whenever the window
loses focus (immediately, then once more shortly after, because the surface
takes focus a moment after the blur event).
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any, Protocol

import structlog

from inboxflow.observability.metrics import FOCUS_CORRECTIONS

logger = structlog.get_logger()


class FocusHost(Protocol):
    """The UI host's view of keyboard focus."""

    def focused_element(self) -> Any | None:
        """Return the element that holds keyboard focus, if any."""
        ...

    def is_embedded_surface(self, element: Any) -> bool:
        """Return True if *element* is the embedded rendering surface."""
        ...

    def blur(self, element: Any) -> None:
        """Remove keyboard focus from *element*."""
        ...


class ReportedFocusHost:
    """Focus host driven by the UI shell over the local API.

    The shell reports the id of the element holding focus.  Blurs the
    guardian asks for are queued as commands the shell drains and performs.

    Args:
        surface_ids: Element ids of the embedded rendering surface.
    """

    def __init__(self, surface_ids: Iterable[str] = ("message-frame",)) -> None:
        self.surface_ids = frozenset(surface_ids)
        self._focused: str | None = None
        self._pending: list[str] = []

    def report(self, element: str | None) -> None:
        """Record the element the shell says holds focus."""
        self._focused = element or None

    def focused_element(self) -> str | None:
        return self._focused

    def is_embedded_surface(self, element: Any) -> bool:
        return element in self.surface_ids

    def blur(self, element: Any) -> None:
        if element not in self._pending:
            self._pending.append(element)
        self._focused = None

    def drain(self) -> list[str]:
        """Return and clear the queued blur commands."""
        pending, self._pending = self._pending, []
        return pending


class FocusGuardian:
    """Injectable service that keeps keyboard focus out of the embedded surface.

    Args:
        host: Access to the focused element.
        poll_interval: Seconds between periodic checks.
        blur_recheck_delay: Seconds after a window blur before the re-check.
    """

    def __init__(
        self,
        host: FocusHost,
        poll_interval: float = 2.0,
        blur_recheck_delay: float = 0.1,
    ) -> None:
        self._host = host
        self.poll_interval = poll_interval
        self.blur_recheck_delay = blur_recheck_delay
        self.corrections = 0
        self._poll_task: asyncio.Task[None] | None = None
        self._rechecks: set[asyncio.Task[None]] = set()

    @property
    def running(self) -> bool:
        """True between ``start()`` and ``stop()``."""
        return self._poll_task is not None and not self._poll_task.done()

    def check(self) -> bool:
        """Blur the focused element if it is the embedded surface.

        Returns:
            True if focus was reclaimed.
        """
        element = self._host.focused_element()
        if element is None or not self._host.is_embedded_surface(element):
            return False
        self._host.blur(element)
        self.corrections += 1
        FOCUS_CORRECTIONS.inc()
        logger.debug("focus_reclaimed", corrections=self.corrections)
        return True

    async def _recheck(self) -> None:
        await asyncio.sleep(self.blur_recheck_delay)
        self.check()

    def on_window_blur(self) -> asyncio.Task[None]:
        """Check now and schedule one re-check after ``blur_recheck_delay``.

        Must be called from within a running event loop.

        Returns:
            The re-check task.
        """
        self.check()
        task = asyncio.get_running_loop().create_task(self._recheck())
        self._rechecks.add(task)
        task.add_done_callback(self._rechecks.discard)
        return task

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                self.check()
            except Exception:
                logger.exception("focus_check_failed")

    def start(self) -> None:
        """Install the periodic poll; a second call is a no-op."""
        if self.running:
            return
        self._poll_task = asyncio.get_running_loop().create_task(self._poll())
        logger.info("focus_guardian_started", poll_interval=self.poll_interval)

    async def stop(self) -> None:
        """Cancel the poll and every pending re-check."""
        tasks = [*self._rechecks]
        if self._poll_task is not None:
            tasks.append(self._poll_task)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._poll_task = None
        self._rechecks.clear()
        logger.info("focus_guardian_stopped", corrections=self.corrections)
