"""Mailbox session: the single owner of the active view.

The session holds the view list, the client configuration, and for the
active view one ``ThreadListStore``, its ``ViewReconciler``, and a
``ViewCountPoller``.  Switching view (or searching) bumps the generation
counter and discards all three, so timers and late results that belong to
the previous view can no longer touch anything.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog

from inboxflow.bridge.protocol import Bridge
from inboxflow.classify.invites import DEFAULT_CALENDAR_SENDERS
from inboxflow.config import Settings
from inboxflow.domain.errors import ViewNotFoundError
from inboxflow.domain.models import AppConfig, View
from inboxflow.presentation import ThreadView
from inboxflow.threads.counts import ViewCountPoller
from inboxflow.threads.store import ThreadListStore
from inboxflow.threads.views import ViewReconciler

logger = structlog.get_logger()

SEARCH_VIEW_ID = "search"


class MailboxSession:
    """Owns the active view and everything scoped to it.

    Args:
        bridge: The remote mail store and host.
        settings: Timers, fetch limit, and calendar senders.
    """

    def __init__(self, bridge: Bridge, settings: Settings) -> None:
        self._bridge = bridge
        self._settings = settings
        self.generation = 0
        self.views: list[View] = []
        self.config = AppConfig()
        self.user_email = ""
        self.active_view_id: str | None = None
        self.store: ThreadListStore | None = None
        self.reconciler: ViewReconciler | None = None
        self.poller: ViewCountPoller | None = None
        self.thread_view: ThreadView | None = None
        self.started = False

    def _current_generation(self) -> int:
        return self.generation

    def view(self, view_id: str) -> View:
        """Return the configured view *view_id*.

        Raises:
            ViewNotFoundError: If no view has that id.
        """
        for view in self.views:
            if view.id == view_id:
                return view
        raise ViewNotFoundError(view_id)

    async def start(self) -> None:
        """Load views, config, and account, then open the default view."""
        self.views = await self._bridge.list_views()
        self.config = await self._bridge.get_config()
        try:
            self.user_email = await self._bridge.get_user_email()
        except Exception as exc:
            logger.warning("user_email_unavailable", error=str(exc))
        self.started = True

        default = self.config.default_view
        if not any(v.id == default for v in self.views):
            logger.warning("default_view_missing", view=default)
            default = self.views[0].id if self.views else "inbox"
        await self.switch_view(default)

    async def _teardown(self) -> None:
        self.thread_view = None
        if self.poller is not None:
            await self.poller.stop()
        if self.store is not None:
            self.store.close()
        self.poller = None
        self.reconciler = None
        self.store = None

    async def _open(self, view_id: str, query: str, poll: bool) -> ThreadListStore:
        await self._teardown()
        self.generation += 1
        self.active_view_id = view_id

        store = ThreadListStore(
            self._bridge,
            query,
            limit=self._settings.thread_fetch_limit,
            generation=self.generation,
            current_generation=self._current_generation,
        )
        self.store = store
        self.reconciler = ViewReconciler(
            store,
            self.views,
            move_refresh_delay=self._settings.move_refresh_delay,
            archive_refresh_delay=self._settings.archive_refresh_delay,
        )
        if poll:
            self.poller = ViewCountPoller(
                self._bridge,
                self.views,
                active_view_id=view_id,
                on_active_changed=store.fetch,
                generation=self.generation,
                current_generation=self._current_generation,
                interval=self._settings.view_count_interval,
                limit=self._settings.thread_fetch_limit,
                user_email=self.user_email,
            )
        await store.fetch()
        if self.poller is not None:
            self.poller.start()
        logger.info("view_opened", view=view_id, generation=self.generation)
        return store

    async def switch_view(self, view_id: str) -> ThreadListStore:
        """Make *view_id* the active view with a fresh store.

        Raises:
            ViewNotFoundError: If no view has that id.
        """
        view = self.view(view_id)
        return await self._open(view.id, view.query, poll=True)

    async def search(self, query: str) -> ThreadListStore:
        """Show the results of an ad-hoc *query* as the active view."""
        return await self._open(SEARCH_VIEW_ID, query, poll=False)

    async def refresh(self) -> bool:
        """Fetch the active view again."""
        if self.store is None:
            return False
        return await self.store.fetch()

    async def open_thread(self, thread_id: str) -> ThreadView:
        """Open a thread of the active view, marking it read if unread.

        The returned view replaces the previously open one, so RSVP state
        and quote toggles start fresh on every opening.

        Raises:
            KeyError: If the thread is not in the active store.
        """
        if self.store is None:
            raise KeyError(thread_id)
        thread = self.store.get(thread_id)
        if thread is None:
            raise KeyError(thread_id)
        if thread.is_unread:
            await self.store.mark_read(thread_id)
            thread = self.store.get(thread_id) or thread

        on_archive: Callable[[], Awaitable[None]] | None = None
        if self.config.archive_on_rsvp and self.reconciler is not None:
            reconciler = self.reconciler

            async def archive_thread() -> None:
                await reconciler.done(thread_id)

            on_archive = archive_thread

        senders = self._settings.calendar_notification_senders or DEFAULT_CALENDAR_SENDERS
        self.thread_view = ThreadView(
            thread, self._bridge, on_archive=on_archive, senders=senders
        )
        return self.thread_view

    def opened_thread(self, thread_id: str) -> ThreadView:
        """Return the open ``ThreadView`` of *thread_id*.

        Raises:
            KeyError: If *thread_id* is not the thread currently open.
        """
        view = self.thread_view
        if view is None or view.thread.id != thread_id:
            raise KeyError(thread_id)
        return view

    async def close(self) -> None:
        """Tear down the active view for good."""
        await self._teardown()
        self.generation += 1
        self.active_view_id = None
        self.started = False
