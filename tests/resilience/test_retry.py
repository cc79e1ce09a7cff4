"""Tests for the resilient API call decorator."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import MagicMock

import pytest

from inboxflow.bridge.host import HostSignals
from inboxflow.domain.errors import BridgeError
from inboxflow.resilience.retry import configure_error_notifier, resilient_api_call


@pytest.fixture(autouse=True)
def _reset_notifier() -> Iterator[None]:
    yield
    configure_error_notifier(None)


class TestResilientApiCall:
    def test_success_is_returned(self) -> None:
        @resilient_api_call("test_api", initial_wait=0)
        def call() -> str:
            return "ok"

        assert call() == "ok"

    def test_transient_failure_is_retried(self) -> None:
        func = MagicMock(side_effect=[ConnectionError("reset"), "ok"])

        @resilient_api_call("test_api", initial_wait=0)
        def call() -> str:
            return func()

        assert call() == "ok"
        assert func.call_count == 2

    def test_final_failure_reraises_and_notifies(self) -> None:
        signals = HostSignals()
        configure_error_notifier(signals)
        func = MagicMock(side_effect=ConnectionError("down"))

        @resilient_api_call("gmail_threads", attempts=3, initial_wait=0)
        def call() -> None:
            func()

        with pytest.raises(ConnectionError, match="down"):
            call()

        assert func.call_count == 3
        notifications = signals.drain()
        assert [n.title for n in notifications] == ["gmail_threads failed"]
        assert "3 attempts" in notifications[0].body

    def test_no_retry_types_pass_straight_through(self) -> None:
        signals = HostSignals()
        configure_error_notifier(signals)
        func = MagicMock(side_effect=BridgeError("not invited"))

        @resilient_api_call("calendar_rsvp", initial_wait=0, no_retry=(BridgeError,))
        def call() -> None:
            func()

        with pytest.raises(BridgeError):
            call()

        assert func.call_count == 1
        assert signals.pending_count == 0

    def test_failing_notifier_does_not_mask_the_error(self) -> None:
        notifier = MagicMock()
        notifier.push.side_effect = RuntimeError("host gone")
        configure_error_notifier(notifier)

        @resilient_api_call("test_api", attempts=1, initial_wait=0)
        def call() -> None:
            raise ValueError("bad")

        with pytest.raises(ValueError, match="bad"):
            call()
        notifier.push.assert_called_once()
