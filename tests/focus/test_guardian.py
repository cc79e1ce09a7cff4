"""Tests for the keyboard focus guardian."""

from __future__ import annotations

import asyncio

import pytest

from inboxflow.focus.guardian import FocusGuardian, ReportedFocusHost

SURFACE = "message-frame"


class FakeFocusHost:
    """Focus host whose focused element is set by the test."""

    def __init__(self, focused: str | None = None) -> None:
        self.focused = focused
        self.blurred: list[str] = []

    def focused_element(self) -> str | None:
        return self.focused

    def is_embedded_surface(self, element: str) -> bool:
        return element == SURFACE

    def blur(self, element: str) -> None:
        self.blurred.append(element)
        self.focused = None


class TestCheck:
    def test_blurs_embedded_surface(self) -> None:
        host = FakeFocusHost(SURFACE)
        guardian = FocusGuardian(host)

        assert guardian.check() is True
        assert host.blurred == [SURFACE]
        assert guardian.corrections == 1

    def test_leaves_other_elements_alone(self) -> None:
        host = FakeFocusHost("search-box")
        guardian = FocusGuardian(host)

        assert guardian.check() is False
        assert host.blurred == []
        assert guardian.corrections == 0

    def test_nothing_focused(self) -> None:
        assert FocusGuardian(FakeFocusHost()).check() is False


class TestWindowBlur:
    @pytest.mark.anyio()
    async def test_rechecks_after_delay(self) -> None:
        host = FakeFocusHost()
        guardian = FocusGuardian(host, blur_recheck_delay=0.01)

        task = guardian.on_window_blur()
        # The surface takes focus just after the window blur.
        host.focused = SURFACE
        await task

        assert host.blurred == [SURFACE]
        assert guardian.corrections == 1

    @pytest.mark.anyio()
    async def test_checks_immediately_too(self) -> None:
        host = FakeFocusHost(SURFACE)
        guardian = FocusGuardian(host, blur_recheck_delay=0.01)

        task = guardian.on_window_blur()
        assert host.blurred == [SURFACE]
        await task
        assert guardian.corrections == 1


class TestPolling:
    @pytest.mark.anyio()
    async def test_poll_reclaims_focus(self) -> None:
        host = FakeFocusHost(SURFACE)
        guardian = FocusGuardian(host, poll_interval=0.01)
        guardian.start()
        guardian.start()
        try:
            for _ in range(100):
                if host.blurred:
                    break
                await asyncio.sleep(0.01)
            assert host.blurred == [SURFACE]
            assert guardian.running
        finally:
            await guardian.stop()
        assert not guardian.running

    @pytest.mark.anyio()
    async def test_stop_cancels_pending_rechecks(self) -> None:
        host = FakeFocusHost()
        guardian = FocusGuardian(host, blur_recheck_delay=60)
        task = guardian.on_window_blur()

        await guardian.stop()

        assert task.cancelled()
        assert host.blurred == []

    @pytest.mark.anyio()
    async def test_poll_survives_host_errors(self) -> None:
        host = FakeFocusHost(SURFACE)
        calls = 0

        def flaky() -> str | None:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("host gone")
            return host.focused

        host.focused_element = flaky  # type: ignore[method-assign]
        guardian = FocusGuardian(host, poll_interval=0.01)
        guardian.start()
        try:
            for _ in range(100):
                if host.blurred:
                    break
                await asyncio.sleep(0.01)
            assert host.blurred == [SURFACE]
        finally:
            await guardian.stop()


# ---------------------------------------------------------------------------
# Shell-reported focus
# ---------------------------------------------------------------------------


class TestReportedFocusHost:
    def test_blur_is_queued_once_and_clears_focus(self) -> None:
        host = ReportedFocusHost([SURFACE])
        host.report(SURFACE)
        guardian = FocusGuardian(host)

        assert guardian.check() is True
        assert host.focused_element() is None
        assert guardian.check() is False
        assert host.drain() == [SURFACE]
        assert host.drain() == []

    def test_empty_report_means_nothing_focused(self) -> None:
        host = ReportedFocusHost()
        host.report("")
        assert host.focused_element() is None

    def test_surface_ids_come_from_configuration(self) -> None:
        host = ReportedFocusHost(["reader", "preview"])
        assert host.is_embedded_surface("preview")
        assert not host.is_embedded_surface(SURFACE)

    @pytest.mark.anyio()
    async def test_delayed_recheck_queues_blur(self) -> None:
        host = ReportedFocusHost([SURFACE])
        guardian = FocusGuardian(host, blur_recheck_delay=0)
        host.report("compose-box")

        task = guardian.on_window_blur()
        host.report(SURFACE)
        await task

        assert host.drain() == [SURFACE]
