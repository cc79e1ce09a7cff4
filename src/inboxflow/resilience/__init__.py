"""Resilience infrastructure for API calls with retry and error notification."""

from inboxflow.resilience.retry import configure_error_notifier, resilient_api_call

__all__ = [
    "configure_error_notifier",
    "resilient_api_call",
]
