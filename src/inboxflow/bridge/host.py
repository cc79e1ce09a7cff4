"""Host-side signals: the dock badge and queued desktop notifications.

The local UI shell polls ``GET /api/host/signals`` and drains the queue; the
core only records what should be shown.
"""

from __future__ import annotations

from collections import deque
from datetime import UTC, datetime

import structlog
from pydantic import BaseModel, ConfigDict

logger = structlog.get_logger()

MAX_PENDING_NOTIFICATIONS = 50


class Notification(BaseModel):
    """One desktop notification waiting to be shown."""

    model_config = ConfigDict(frozen=True)

    title: str
    body: str
    created_at: datetime


class HostSignals:
    """Badge count and notification queue shared by the bridge and the API."""

    def __init__(self, max_pending: int = MAX_PENDING_NOTIFICATIONS) -> None:
        self.badge: int = 0
        self._pending: deque[Notification] = deque(maxlen=max_pending)

    def push(self, title: str, body: str) -> None:
        """Queue a notification; the oldest is dropped when the queue is full."""
        self._pending.append(Notification(title=title, body=body, created_at=datetime.now(UTC)))
        logger.debug("notification_queued", title=title)

    def set_badge(self, count: int) -> None:
        """Record the badge count; negative values are clamped to 0."""
        self.badge = max(count, 0)

    def drain(self) -> list[Notification]:
        """Return and clear all queued notifications, oldest first."""
        items = list(self._pending)
        self._pending.clear()
        return items

    @property
    def pending_count(self) -> int:
        """Number of notifications not yet drained."""
        return len(self._pending)
