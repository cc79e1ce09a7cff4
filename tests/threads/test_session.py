"""Tests for the mailbox session and view generations."""

from __future__ import annotations

import pytest
from fakes import FakeBridge, make_message, make_thread

from inboxflow.config import Settings
from inboxflow.domain.errors import ViewNotFoundError
from inboxflow.domain.models import AppConfig
from inboxflow.domain.types import RsvpResponse, RsvpState
from inboxflow.threads.session import SEARCH_VIEW_ID, MailboxSession

INVITE_HTML = (
    '<a href="https://calendar.google.com/calendar/event?action=VIEW'
    '&eid=QUJDMTIzIGZvb0BiYXIuY29t">More options</a>'
)


def _settings() -> Settings:
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        view_count_interval=3600,
        move_refresh_delay=0,
        archive_refresh_delay=0,
    )


async def _started(bridge: FakeBridge) -> MailboxSession:
    session = MailboxSession(bridge, _settings())
    await session.start()
    return session


def _invite_thread(thread_id: str = "inv"):
    message = make_message(
        f"{thread_id}-m1",
        thread_id=thread_id,
        sender="calendar-notification@google.com",
        subject="Invitation: Planning",
        body_html=INVITE_HTML,
    )
    return make_thread(thread_id, messages=[message], subject="Invitation: Planning")


# ---------------------------------------------------------------------------
# Startup and views
# ---------------------------------------------------------------------------


class TestStart:
    @pytest.mark.anyio()
    async def test_opens_default_view(self, fake_bridge: FakeBridge) -> None:
        session = await _started(fake_bridge)
        try:
            assert session.started
            assert session.active_view_id == "inbox"
            assert session.user_email == "me@example.com"
            assert session.store is not None
            assert [t.id for t in session.store.threads] == ["t1", "t2"]
            assert session.reconciler is not None
            assert session.poller is not None
            assert session.poller.running
            assert session.generation == 1
        finally:
            await session.close()

    @pytest.mark.anyio()
    async def test_missing_default_view_falls_back_to_first(
        self, fake_bridge: FakeBridge
    ) -> None:
        fake_bridge.config = AppConfig(default_view="nope")
        fake_bridge.views = fake_bridge.views[1:]
        session = await _started(fake_bridge)
        try:
            assert session.active_view_id == "pending"
        finally:
            await session.close()

    @pytest.mark.anyio()
    async def test_unknown_view_raises(self, fake_bridge: FakeBridge) -> None:
        session = await _started(fake_bridge)
        try:
            with pytest.raises(ViewNotFoundError):
                await session.switch_view("nope")
            assert session.active_view_id == "inbox"
        finally:
            await session.close()


class TestViewGenerations:
    @pytest.mark.anyio()
    async def test_switch_view_replaces_store(self, fake_bridge: FakeBridge) -> None:
        session = await _started(fake_bridge)
        try:
            old_store = session.store
            assert old_store is not None

            store = await session.switch_view("pending")

            assert session.generation == 2
            assert old_store.closed
            assert store is session.store
            assert [t.id for t in store.threads] == ["t3"]
            assert await old_store.fetch() is False
        finally:
            await session.close()

    @pytest.mark.anyio()
    async def test_search_is_not_polled(self, fake_bridge: FakeBridge) -> None:
        session = await _started(fake_bridge)
        try:
            store = await session.search("from:alice")
            assert session.active_view_id == SEARCH_VIEW_ID
            assert session.poller is None
            assert store.query == "from:alice"
            assert len(store.threads) == 3
        finally:
            await session.close()

    @pytest.mark.anyio()
    async def test_refresh_refetches_active_view(self, fake_bridge: FakeBridge) -> None:
        session = await _started(fake_bridge)
        try:
            fake_bridge.server["t9"] = make_thread("t9", labels=["INBOX"])
            assert await session.refresh() is True
            assert session.store is not None
            assert session.store.get("t9") is not None
        finally:
            await session.close()

    @pytest.mark.anyio()
    async def test_close_tears_everything_down(self, fake_bridge: FakeBridge) -> None:
        session = await _started(fake_bridge)
        poller = session.poller
        await session.close()

        assert not session.started
        assert session.store is None
        assert session.reconciler is None
        assert session.poller is None
        assert poller is not None
        assert not poller.running
        assert await session.refresh() is False


# ---------------------------------------------------------------------------
# Opening threads
# ---------------------------------------------------------------------------


class TestOpenThread:
    @pytest.mark.anyio()
    async def test_opening_unread_thread_marks_it_read(self, fake_bridge: FakeBridge) -> None:
        session = await _started(fake_bridge)
        try:
            view = await session.open_thread("t2")
            assert not view.thread.is_unread
            assert fake_bridge.calls_of("mark_as_read") == ["t2"]
        finally:
            await session.close()

    @pytest.mark.anyio()
    async def test_opening_read_thread_makes_no_call(self, fake_bridge: FakeBridge) -> None:
        session = await _started(fake_bridge)
        try:
            await session.open_thread("t1")
            assert fake_bridge.calls_of("mark_as_read") == []
        finally:
            await session.close()

    @pytest.mark.anyio()
    async def test_unknown_thread_raises(self, fake_bridge: FakeBridge) -> None:
        session = await _started(fake_bridge)
        try:
            with pytest.raises(KeyError):
                await session.open_thread("t3")
        finally:
            await session.close()

    @pytest.mark.anyio()
    async def test_open_thread_is_kept_until_view_switch(self, fake_bridge: FakeBridge) -> None:
        session = await _started(fake_bridge)
        try:
            view = await session.open_thread("t1")
            assert session.opened_thread("t1") is view
            with pytest.raises(KeyError):
                session.opened_thread("t2")

            await session.switch_view("pending")
            assert session.thread_view is None
            with pytest.raises(KeyError):
                session.opened_thread("t1")
        finally:
            await session.close()

    @pytest.mark.anyio()
    async def test_reopening_starts_fresh(self, fake_bridge: FakeBridge) -> None:
        session = await _started(fake_bridge)
        try:
            first = await session.open_thread("t1")
            second = await session.open_thread("t1")
            assert second is not first
            assert session.opened_thread("t1") is second
        finally:
            await session.close()

    @pytest.mark.anyio()
    async def test_rsvp_archives_thread(self) -> None:
        bridge = FakeBridge([_invite_thread()])
        session = await _started(bridge)
        try:
            view = await session.open_thread("inv")
            rsvp = view.invites[0].rsvp
            assert rsvp is not None

            assert await rsvp.respond(RsvpResponse.ACCEPTED) == RsvpState.ACCEPTED
            assert bridge.calls_of("calendar_rsvp") == [("ABC123", RsvpResponse.ACCEPTED)]
            assert bridge.calls_of("archive_thread") == ["inv"]
            assert session.store is not None
            assert session.store.get("inv") is None
        finally:
            await session.close()

    @pytest.mark.anyio()
    async def test_rsvp_without_archive_setting(self) -> None:
        bridge = FakeBridge([_invite_thread()])
        bridge.config = AppConfig(archive_on_rsvp=False)
        session = await _started(bridge)
        try:
            view = await session.open_thread("inv")
            rsvp = view.invites[0].rsvp
            assert rsvp is not None
            await rsvp.respond(RsvpResponse.DECLINED)
            assert bridge.calls_of("archive_thread") == []
        finally:
            await session.close()
