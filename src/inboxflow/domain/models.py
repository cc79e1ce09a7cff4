"""Pydantic v2 models for messages, threads, views, and classification results.

Messages and threads are frozen.  The thread list store "mutates" them by
replacing the cached instance with ``model_copy(update=...)``, so a model
handed to a caller never changes underneath it.
"""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

_LABEL_QUERY = re.compile(r"^label:(\S+)$")


class EmailAddress(BaseModel):
    """An email address with an optional display name."""

    model_config = ConfigDict(frozen=True)

    email: str
    name: str | None = None

    @property
    def display(self) -> str:
        """Return the display name, falling back to the address."""
        return self.name or self.email


class Attachment(BaseModel):
    """Metadata for one attachment on a message."""

    model_config = ConfigDict(frozen=True)

    id: str
    filename: str
    mime_type: str = "application/octet-stream"
    size: int = 0


class Message(BaseModel):
    """One email within a thread.

    ``body_html`` is the structured (markup) body and ``body_text`` the plain
    text projection.  Either may be empty.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    thread_id: str = ""
    sender: EmailAddress
    to: list[EmailAddress] = Field(default_factory=list)
    cc: list[EmailAddress] = Field(default_factory=list)
    subject: str = ""
    snippet: str = ""
    body_text: str = ""
    body_html: str = ""
    attachments: list[Attachment] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)
    date: datetime | None = None
    is_unread: bool = False


class Thread(BaseModel):
    """An ordered conversation of messages, oldest first."""

    model_config = ConfigDict(frozen=True)

    id: str
    subject: str = ""
    snippet: str = ""
    messages: list[Message] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)
    participants: list[EmailAddress] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_unread(self) -> bool:
        """True if any message in the thread is unread."""
        return any(m.is_unread for m in self.messages)

    @property
    def latest(self) -> Message | None:
        """Return the newest message, or ``None`` for an empty thread."""
        return self.messages[-1] if self.messages else None

    def has_label(self, label: str) -> bool:
        """Return True if the thread carries *label*."""
        return label in self.labels


class View(BaseModel):
    """A named, query-defined subset of threads."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    query: str = ""
    icon: str | None = None
    shortcut: str | None = None

    @field_validator("id")
    @classmethod
    def id_must_not_be_empty(cls, v: str) -> str:
        """Ensure the view id is not empty or whitespace-only."""
        if not v.strip():
            raise ValueError("view id must not be empty")
        return v

    @property
    def managed_label(self) -> str | None:
        """Return NAME when the whole query is ``label:<NAME>``."""
        match = _LABEL_QUERY.match(self.query.strip())
        return match.group(1) if match else None


class AppConfig(BaseModel):
    """Client configuration the core reads through the bridge."""

    model_config = ConfigDict(frozen=True)

    default_view: str = "inbox"
    archive_on_rsvp: bool = True


class Label(BaseModel):
    """A Gmail label as returned by ``list_labels``."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str


class InviteClassification(BaseModel):
    """Result of classifying one message as a calendar invitation."""

    model_config = ConfigDict(frozen=True)

    is_invite: bool
    event_id: str | None = None
    summary: str | None = None
    starts_at: datetime | None = None
    ends_at: datetime | None = None


DEFAULT_VIEWS: list[View] = [
    View(id="inbox", name="Inbox", icon="📥", query="in:inbox", shortcut="gi"),
    View(id="pending", name="Pending", icon="⏳", query="label:PENDING", shortcut="gp"),
    View(id="todo", name="Todo", icon="✓", query="label:TODO", shortcut="gt"),
    View(id="snoozed", name="Snoozed", icon="⏰", query="label:SNOOZED"),
    View(id="starred", name="Starred", icon="⭐", query="is:starred", shortcut="gs"),
    View(id="sent", name="Sent", icon="📤", query="in:sent"),
    View(id="drafts", name="Drafts", icon="📝", query="in:drafts", shortcut="gd"),
    View(id="all", name="All Mail", icon="📬", query="", shortcut="ga"),
]
