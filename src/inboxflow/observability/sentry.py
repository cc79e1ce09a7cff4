"""Sentry error reporting for the inboxflow service.

Provides:
- ``init_sentry(dsn, environment)``: Initialize the Sentry SDK.  No-op when
  *dsn* is empty, which is the normal case for a local desktop install.
- ``get_sentry_processor()``: structlog processor forwarding ERROR-level
  events (failed retries, failed RSVP archives) to Sentry.
"""

from __future__ import annotations

import logging

import sentry_sdk
import structlog
from sentry_sdk.integrations.logging import LoggingIntegration
from structlog_sentry import SentryProcessor


def init_sentry(dsn: str, environment: str = "development") -> bool:
    """Initialize Sentry SDK with the given *dsn*.

    Args:
        dsn: Sentry DSN string.  Empty string disables Sentry.
        environment: Reported environment name.

    Returns:
        True if the SDK was initialized.
    """
    if not dsn:
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=0.0,
        send_default_pii=False,
        integrations=[
            # structlog-sentry reports errors; the stdlib bridge would double them.
            LoggingIntegration(event_level=None, level=None),
        ],
    )
    return True


def get_sentry_processor() -> structlog.types.Processor:
    """Return a structlog processor that forwards ERROR events to Sentry.

    Goes after ``add_log_level`` and before the renderer.
    """
    return SentryProcessor(event_level=logging.ERROR)
