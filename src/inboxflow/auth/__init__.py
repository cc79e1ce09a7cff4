"""Google OAuth2 credential helpers."""

from inboxflow.auth.credentials import (
    get_calendar_service,
    get_gmail_service,
    get_google_credentials,
)

__all__ = [
    "get_calendar_service",
    "get_gmail_service",
    "get_google_credentials",
]
