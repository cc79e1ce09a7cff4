"""Shared pytest fixtures for the inboxflow test suite."""

from __future__ import annotations

import pytest
from fakes import FakeBridge, make_thread

from inboxflow.config import get_settings


@pytest.fixture
def anyio_backend() -> str:
    """Run async tests on asyncio only."""
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Ensure each test gets freshly parsed settings."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_bridge() -> FakeBridge:
    """A fake bridge with two inbox threads and one pending thread."""
    return FakeBridge(
        [
            make_thread("t1", labels=["INBOX"]),
            make_thread("t2", labels=["INBOX", "UNREAD"], unread=True),
            make_thread("t3", labels=["PENDING"]),
        ]
    )
