"""Bridge interface between the presentation core and its host.

Everything the core needs from the outside world (the mail store, the
calendar, the local shell) goes through this contract.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from inboxflow.domain.models import AppConfig, Label, Thread, View
from inboxflow.domain.types import RsvpResponse


class Bridge(Protocol):
    """Interface for the remote mail store and host services."""

    async def fetch_threads(self, query: str, limit: int) -> list[Thread]:
        """Return up to *limit* threads matching *query*, newest first."""
        ...

    async def archive_thread(self, thread_id: str) -> None:
        """Remove the thread from the inbox."""
        ...

    async def modify_labels(
        self,
        thread_id: str,
        add: list[str] | None = None,
        remove: list[str] | None = None,
    ) -> None:
        """Add and remove labels (by name) on every message of the thread."""
        ...

    async def mark_as_read(self, thread_id: str) -> None:
        """Clear the unread flag on every message of the thread."""
        ...

    async def list_labels(self) -> list[Label]:
        """Return all labels of the account."""
        ...

    async def calendar_rsvp(self, event_id: str, response: RsvpResponse) -> None:
        """Send *response* for the calendar event *event_id*."""
        ...

    async def download_attachment(
        self, message_id: str, attachment_id: str, filename: str
    ) -> Path:
        """Save an attachment locally and return its path."""
        ...

    async def notify(self, title: str, body: str) -> None:
        """Show a desktop notification."""
        ...

    async def set_badge(self, count: int) -> None:
        """Set the dock badge; 0 clears it."""
        ...

    async def get_user_email(self) -> str:
        """Return the address of the signed-in account."""
        ...

    async def get_config(self) -> AppConfig:
        """Return the client configuration."""
        ...

    async def list_views(self) -> list[View]:
        """Return the configured views in display order."""
        ...
