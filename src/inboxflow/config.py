"""Centralized, typed configuration using pydantic-settings.

Provides a single ``Settings`` class backed by ``.env`` file and environment
variables, a cached ``get_settings()`` accessor, and a ``validate_credentials()``
startup gate that enforces credential presence in production mode.

IMPORTANT: This module has ZERO imports from the ``inboxflow`` package to
prevent circular imports.  Only stdlib, pydantic, pydantic_settings, and
structlog are used.
"""

from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path
from typing import Any

import structlog
from pydantic import SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()


class Settings(BaseSettings):
    """Application settings loaded from environment variables and ``.env`` file.

    Timer values are in seconds.  ``views`` is a JSON list of view objects
    (``id``, ``name``, ``query``, optional ``icon``/``shortcut``); when empty
    the built-in default views are used.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- General ---------------------------------------------------------------
    production: bool = False
    api_host: str = "127.0.0.1"
    api_port: int = 3141

    # -- Observability ---------------------------------------------------------
    sentry_dsn: SecretStr = SecretStr("")

    # -- Google ----------------------------------------------------------------
    gmail_token_path: Path = Path("token.json")
    gmail_credentials_path: Path = Path("credentials.json")
    calendar_id: str = "primary"
    download_dir: Path = Path("~/Downloads")

    # -- Thread list -----------------------------------------------------------
    thread_fetch_limit: int = 50
    move_refresh_delay: float = 2.0
    archive_refresh_delay: float = 0.5
    view_count_interval: float = 30.0

    # -- Focus guardian --------------------------------------------------------
    focus_poll_interval: float = 2.0
    focus_blur_recheck_delay: float = 0.1
    focus_surface_ids: list[str] = ["message-frame"]

    # -- Classification --------------------------------------------------------
    calendar_notification_senders: list[str] = [
        "calendar-notification@google.com",
        "calendar@google.com",
    ]

    # -- Client configuration --------------------------------------------------
    default_view: str = "inbox"
    archive_on_rsvp: bool = True
    views: list[dict[str, Any]] = []

    @field_validator(
        "move_refresh_delay",
        "archive_refresh_delay",
        "view_count_interval",
        "focus_poll_interval",
        "focus_blur_recheck_delay",
    )
    @classmethod
    def timers_must_not_be_negative(cls, v: float) -> float:
        """Reject negative timer values."""
        if v < 0:
            raise ValueError("timer values must not be negative")
        return v


@lru_cache
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance.

    The ``@lru_cache`` decorator ensures environment variables are parsed
    exactly once.  Call ``get_settings.cache_clear()`` in tests to reset.

    Returns:
        The application ``Settings``.
    """
    try:
        return Settings()
    except ValidationError as exc:
        # Log only the structured errors list -- never the full exception
        # which may contain raw SecretStr values.
        logger.error("settings_validation_failed", errors=exc.errors())
        sys.exit(1)


def validate_credentials(settings: Settings) -> None:
    """Enforce credential presence at startup.

    In **production** mode (``settings.production is True``), the application
    exits with a clear error block if any required credential is missing.

    In **development** mode, each missing credential is logged as a warning
    and the application starts without a live bridge.

    Args:
        settings: The loaded application settings.
    """
    errors: list[str] = []

    if not settings.gmail_token_path.exists():
        errors.append(f"Gmail token file not found: {settings.gmail_token_path}")

    if not settings.gmail_credentials_path.exists():
        errors.append(
            f"Google OAuth client secrets not found: {settings.gmail_credentials_path}"
        )

    if not errors:
        logger.info("credential_validation_passed")
        return

    if settings.production:
        for err in errors:
            logger.error("credential_missing", detail=err)
        print("\n=== STARTUP FAILED ===", file=sys.stderr)
        print("Missing required credentials for production mode:", file=sys.stderr)
        for err in errors:
            print(f"  - {err}", file=sys.stderr)
        print("======================\n", file=sys.stderr)
        sys.exit(1)
    else:
        for err in errors:
            logger.warning("credential_missing_dev", detail=err)
