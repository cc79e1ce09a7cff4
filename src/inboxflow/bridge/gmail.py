"""Gmail and Google Calendar backed implementation of the ``Bridge`` protocol.

``GmailClient`` wraps the synchronous googleapiclient resources; every call
that touches the network goes through ``resilient_api_call``.  ``GmailBridge``
exposes the async ``Bridge`` surface by running the client in
``asyncio.to_thread`` and routes notifications and the badge to
``HostSignals``.
"""

from __future__ import annotations

import asyncio
import base64
from pathlib import Path
from typing import Any

import structlog

from inboxflow.bridge.host import HostSignals
from inboxflow.bridge.mapping import to_thread
from inboxflow.config import Settings
from inboxflow.domain.errors import BridgeError
from inboxflow.domain.models import DEFAULT_VIEWS, AppConfig, Label, Thread, View
from inboxflow.domain.types import RsvpResponse, SystemLabel
from inboxflow.resilience.retry import resilient_api_call

logger = structlog.get_logger()

_SYSTEM_LABEL_IDS: frozenset[str] = frozenset(label.value for label in SystemLabel)


class GmailClient:
    """Synchronous wrapper around the Gmail v1 and Calendar v3 services.

    Label names are resolved to Gmail label ids through a cache that is
    filled on first use and extended whenever a missing user label is
    created.

    Args:
        gmail_service: An authenticated Gmail API v1 service resource.
        calendar_service: An authenticated Calendar API v3 service resource,
            or ``None`` when calendar access was not granted.
        calendar_id: Calendar that receives RSVP patches.
    """

    def __init__(
        self,
        gmail_service: Any,
        calendar_service: Any = None,
        calendar_id: str = "primary",
    ) -> None:
        self._gmail = gmail_service
        self._calendar = calendar_service
        self._calendar_id = calendar_id
        self._ids_by_name: dict[str, str] = {}
        self._names_by_id: dict[str, str] = {}

    # -- Labels ----------------------------------------------------------------

    @resilient_api_call("gmail_labels")
    def list_labels(self) -> list[Label]:
        """Fetch all labels and refresh the name <-> id cache."""
        response: dict[str, Any] = self._gmail.users().labels().list(userId="me").execute()
        labels = [Label(id=item["id"], name=item["name"]) for item in response.get("labels", [])]
        self._ids_by_name = {label.name: label.id for label in labels}
        self._names_by_id = {label.id: label.name for label in labels}
        return labels

    def _label_names_by_id(self) -> dict[str, str]:
        if not self._names_by_id:
            self.list_labels()
        return self._names_by_id

    @resilient_api_call("gmail_create_label")
    def _create_label(self, name: str) -> str:
        created: dict[str, Any] = (
            self._gmail.users()
            .labels()
            .create(
                userId="me",
                body={
                    "name": name,
                    "labelListVisibility": "labelShow",
                    "messageListVisibility": "show",
                },
            )
            .execute()
        )
        label_id = str(created["id"])
        self._ids_by_name[name] = label_id
        self._names_by_id[label_id] = name
        logger.info("gmail_label_created", label=name, label_id=label_id)
        return label_id

    def resolve_label_id(self, name: str, create: bool = False) -> str | None:
        """Return the Gmail id for label *name*.

        System labels are their own ids.  A missing user label is created
        when *create* is set, otherwise ``None`` is returned.
        """
        if name in _SYSTEM_LABEL_IDS:
            return name
        if not self._ids_by_name:
            self.list_labels()
        label_id = self._ids_by_name.get(name)
        if label_id is None and create:
            label_id = self._create_label(name)
        return label_id

    # -- Threads ---------------------------------------------------------------

    @resilient_api_call("gmail_threads")
    def fetch_threads(self, query: str, limit: int) -> list[Thread]:
        """List threads matching *query* and fetch each in full."""
        response: dict[str, Any] = (
            self._gmail.users()
            .threads()
            .list(userId="me", q=query, maxResults=limit)
            .execute()
        )
        names_by_id = self._label_names_by_id()
        threads: list[Thread] = []
        for item in response.get("threads", []) or []:
            raw: dict[str, Any] = (
                self._gmail.users()
                .threads()
                .get(userId="me", id=item["id"], format="full")
                .execute()
            )
            threads.append(to_thread(raw, names_by_id))
        return threads

    @resilient_api_call("gmail_modify")
    def modify_labels(
        self,
        thread_id: str,
        add: list[str] | None = None,
        remove: list[str] | None = None,
    ) -> None:
        """Apply label additions and removals (by name) to a thread."""
        add_ids = [self.resolve_label_id(name, create=True) for name in add or []]
        remove_ids = [self.resolve_label_id(name) for name in remove or []]
        body = {
            "addLabelIds": [i for i in add_ids if i],
            "removeLabelIds": [i for i in remove_ids if i],
        }
        if not body["addLabelIds"] and not body["removeLabelIds"]:
            return
        self._gmail.users().threads().modify(userId="me", id=thread_id, body=body).execute()

    def archive_thread(self, thread_id: str) -> None:
        """Archive = remove ``INBOX``."""
        self.modify_labels(thread_id, remove=[SystemLabel.INBOX])

    def mark_as_read(self, thread_id: str) -> None:
        """Mark read = remove ``UNREAD``."""
        self.modify_labels(thread_id, remove=[SystemLabel.UNREAD])

    # -- Misc ------------------------------------------------------------------

    @resilient_api_call("gmail_attachment")
    def download_attachment(
        self, message_id: str, attachment_id: str, filename: str, target_dir: Path
    ) -> Path:
        """Save an attachment into *target_dir* without overwriting files."""
        response: dict[str, Any] = (
            self._gmail.users()
            .messages()
            .attachments()
            .get(userId="me", messageId=message_id, id=attachment_id)
            .execute()
        )
        data = response.get("data", "")
        content = base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))

        target_dir = target_dir.expanduser()
        target_dir.mkdir(parents=True, exist_ok=True)
        safe_name = Path(filename).name or "attachment"
        path = target_dir / safe_name
        counter = 1
        while path.exists():
            path = target_dir / f"{Path(safe_name).stem} ({counter}){Path(safe_name).suffix}"
            counter += 1
        path.write_bytes(content)
        return path

    @resilient_api_call("gmail_profile")
    def get_user_email(self) -> str:
        """Return the address of the authenticated account."""
        profile: dict[str, Any] = self._gmail.users().getProfile(userId="me").execute()
        return str(profile.get("emailAddress", ""))

    @resilient_api_call("calendar_rsvp", no_retry=(BridgeError,))
    def calendar_rsvp(self, event_id: str, response: RsvpResponse) -> None:
        """Set the signed-in attendee's response and notify the organizer.

        Raises:
            BridgeError: If calendar access is missing or the account is not
                on the attendee list.
        """
        if self._calendar is None:
            raise BridgeError("Calendar access is not configured")

        event: dict[str, Any] = (
            self._calendar.events().get(calendarId=self._calendar_id, eventId=event_id).execute()
        )
        attendees: list[dict[str, Any]] = event.get("attendees", []) or []
        own = next((a for a in attendees if a.get("self")), None)
        if own is None:
            raise BridgeError("Could not find yourself in the attendee list")
        own["responseStatus"] = str(response)

        self._calendar.events().patch(
            calendarId=self._calendar_id,
            eventId=event_id,
            sendUpdates="all",
            body={"attendees": attendees},
        ).execute()


class GmailBridge:
    """Async ``Bridge`` backed by ``GmailClient``.

    Args:
        client: The synchronous Google API client.
        signals: Badge and notification sink.
        settings: Source of views, client configuration, and download dir.
    """

    def __init__(self, client: GmailClient, signals: HostSignals, settings: Settings) -> None:
        self._client = client
        self._signals = signals
        self._settings = settings

    async def fetch_threads(self, query: str, limit: int) -> list[Thread]:
        return await asyncio.to_thread(self._client.fetch_threads, query, limit)

    async def archive_thread(self, thread_id: str) -> None:
        await asyncio.to_thread(self._client.archive_thread, thread_id)

    async def modify_labels(
        self,
        thread_id: str,
        add: list[str] | None = None,
        remove: list[str] | None = None,
    ) -> None:
        await asyncio.to_thread(self._client.modify_labels, thread_id, add, remove)

    async def mark_as_read(self, thread_id: str) -> None:
        await asyncio.to_thread(self._client.mark_as_read, thread_id)

    async def list_labels(self) -> list[Label]:
        return await asyncio.to_thread(self._client.list_labels)

    async def calendar_rsvp(self, event_id: str, response: RsvpResponse) -> None:
        await asyncio.to_thread(self._client.calendar_rsvp, event_id, response)

    async def download_attachment(
        self, message_id: str, attachment_id: str, filename: str
    ) -> Path:
        return await asyncio.to_thread(
            self._client.download_attachment,
            message_id,
            attachment_id,
            filename,
            self._settings.download_dir,
        )

    async def notify(self, title: str, body: str) -> None:
        self._signals.push(title, body)

    async def set_badge(self, count: int) -> None:
        self._signals.set_badge(count)

    async def get_user_email(self) -> str:
        return await asyncio.to_thread(self._client.get_user_email)

    async def get_config(self) -> AppConfig:
        return AppConfig(
            default_view=self._settings.default_view,
            archive_on_rsvp=self._settings.archive_on_rsvp,
        )

    async def list_views(self) -> list[View]:
        if not self._settings.views:
            return list(DEFAULT_VIEWS)
        return [View.model_validate(v) for v in self._settings.views]
