"""Per-thread view model: classification, quote collapsing, and RSVP.

A ``ThreadView`` is created fresh every time a thread is opened, so RSVP
state and quote toggles never leak from one opening to the next.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable

from inboxflow.bridge.protocol import Bridge
from inboxflow.classify.invites import DEFAULT_CALENDAR_SENDERS
from inboxflow.classify.quotes import (
    QuotedBody,
    message_has_quoted_content,
    split_plain_reply,
    tag_quoted_regions,
)
from inboxflow.domain.models import InviteClassification, Message, Thread
from inboxflow.rsvp.controller import RsvpController


class MessageView:
    """Presentation state of one message in an open thread."""

    def __init__(
        self,
        message: Message,
        is_newest: bool,
        controller: RsvpController,
    ) -> None:
        self.message = message
        self.is_newest = is_newest
        self._controller = controller
        self.has_quoted = message_has_quoted_content(message)
        self.show_quoted = is_newest
        self._body: QuotedBody | None = None

    @property
    def classification(self) -> InviteClassification:
        return self._controller.classification

    @property
    def rsvp(self) -> RsvpController | None:
        """The RSVP controller, only for calendar invitations."""
        return self._controller if self._controller.is_invite else None

    @property
    def body(self) -> QuotedBody:
        """The HTML body with quoted regions tagged for the current visibility."""
        if self._body is None or self._body.collapsed == self.show_quoted:
            self._body = tag_quoted_regions(self.message.body_html, collapsed=not self.show_quoted)
        return self._body

    @property
    def plain_parts(self) -> tuple[str, str]:
        """``(latest_reply, quoted_history)`` of the plain-text body."""
        return split_plain_reply(self.message.body_text)

    def toggle_quoted(self) -> bool:
        """Flip quoted-content visibility and return the new value."""
        self.show_quoted = not self.show_quoted
        return self.show_quoted


class ThreadView:
    """Presentation state of one opened thread.

    Args:
        thread: The thread being shown.
        bridge: Used by the RSVP controllers.
        on_archive: Archives this thread after a successful RSVP; ``None``
            disables archiving.
        senders: Calendar-notification addresses for invite detection.
    """

    def __init__(
        self,
        thread: Thread,
        bridge: Bridge,
        on_archive: Callable[[], Awaitable[None]] | None = None,
        senders: Iterable[str] = DEFAULT_CALENDAR_SENDERS,
    ) -> None:
        self.thread = thread
        senders = tuple(senders)
        last = len(thread.messages) - 1
        self.messages: list[MessageView] = [
            MessageView(
                message,
                is_newest=index == last,
                controller=RsvpController(message, bridge, on_archive, senders),
            )
            for index, message in enumerate(thread.messages)
        ]

    def message(self, message_id: str) -> MessageView:
        """Return the view of *message_id*.

        Raises:
            KeyError: If the message is not part of this thread.
        """
        for view in self.messages:
            if view.message.id == message_id:
                return view
        raise KeyError(message_id)

    def toggle_quoted(self, message_id: str) -> bool:
        """Flip quoted-content visibility of one message."""
        return self.message(message_id).toggle_quoted()

    @property
    def invites(self) -> list[MessageView]:
        """Messages classified as calendar invitations."""
        return [m for m in self.messages if m.rsvp is not None]
