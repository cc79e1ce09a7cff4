"""Resilient API call decorator with tenacity retry and host notification.

Google API calls are retried 3 times with exponential backoff and jitter;
on final failure the error is logged and pushed to the host notifier, then
the original exception is re-raised for the caller to absorb.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, TypeVar

import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

logger = structlog.get_logger()


class ErrorNotifier(Protocol):
    """Anything that can show a short notification to the user."""

    def push(self, title: str, body: str) -> None: ...


# Module-level notifier, set once at startup.
_notifier: ErrorNotifier | None = None

F = TypeVar("F", bound=Callable[..., Any])


def configure_error_notifier(notifier: ErrorNotifier | None) -> None:
    """Set the module-level notifier for error reporting.

    Args:
        notifier: An object with a ``push(title, body)`` method, typically
            the application's ``HostSignals``.  ``None`` disables it.
    """
    global _notifier
    _notifier = notifier


def notify_on_final_failure(retry_state: RetryCallState) -> Any:
    """Log the failure, notify the host, and re-raise the original exception.

    Args:
        retry_state: Tenacity retry state with attempt info and exception.
    """
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    api_name = getattr(retry_state.fn, "_api_name", "unknown") if retry_state.fn else "unknown"

    logger.error(
        "api_call_failed_after_retries",
        api_name=api_name,
        attempts=retry_state.attempt_number,
        exception=str(exception),
    )

    if _notifier is not None:
        try:
            _notifier.push(
                title=f"{api_name} failed",
                body=f"Failed after {retry_state.attempt_number} attempts: {exception}",
            )
        except Exception:
            logger.exception("error_notification_failed", api_name=api_name)

    if exception is not None:
        raise exception
    return None


def _before_sleep_log(retry_state: RetryCallState) -> None:
    """Log a warning before each retry attempt."""
    api_name = getattr(retry_state.fn, "_api_name", "unknown") if retry_state.fn else "unknown"
    logger.warning(
        "retrying_api_call",
        api_name=api_name,
        attempt=retry_state.attempt_number,
        wait=retry_state.next_action.sleep if retry_state.next_action else 0,
    )


def resilient_api_call(
    api_name: str,
    attempts: int = 3,
    initial_wait: float = 1.0,
    no_retry: tuple[type[BaseException], ...] = (),
) -> Callable[[F], F]:
    """Create a retry decorator for a blocking Google API call.

    Returns a tenacity retry decorator configured with:
    - *attempts* attempts maximum (3 by default)
    - Exponential backoff with jitter (``initial_wait`` initial, 30s max)
    - Warning log before each retry
    - Host notification on final failure
    - Original exception re-raised after exhaustion

    Args:
        api_name: Human-readable name for the API (used in logs and alerts).
        attempts: Maximum number of attempts.
        initial_wait: First backoff in seconds; tests pass 0.
        no_retry: Exception types raised straight through without retrying
            or notifying (deterministic failures such as a missing attendee).

    Returns:
        A decorator that wraps the function with retry logic.
    """

    def decorator(func: F) -> F:
        # before_sleep and the failure callback read this
        func._api_name = api_name  # type: ignore[attr-defined]

        wrapped = retry(
            stop=stop_after_attempt(attempts),
            retry=retry_if_not_exception_type(no_retry),
            wait=wait_exponential_jitter(initial=initial_wait, max=30, jitter=initial_wait),
            before_sleep=_before_sleep_log,
            retry_error_callback=notify_on_final_failure,
            reraise=True,
        )(func)

        return wrapped  # type: ignore[return-value]

    return decorator
