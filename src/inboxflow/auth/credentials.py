"""Google OAuth2 credential management for Gmail and Calendar.

Provides helpers for:
- Loading/refreshing OAuth2 credentials from token.json (installed-app flow
  on first run)
- Building the Gmail API v1 and Calendar API v3 service clients
"""

from __future__ import annotations

from pathlib import Path

import google.auth.transport.requests
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow  # type: ignore[import-untyped]
from googleapiclient.discovery import Resource, build

DEFAULT_SCOPES: list[str] = [
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.labels",
    "https://www.googleapis.com/auth/calendar.events",
]

DEFAULT_TOKEN_PATH: str = "token.json"
DEFAULT_CREDENTIALS_PATH: str = "credentials.json"


def get_google_credentials(
    token_path: str | Path = DEFAULT_TOKEN_PATH,
    credentials_path: str | Path = DEFAULT_CREDENTIALS_PATH,
    scopes: list[str] | None = None,
) -> Credentials:
    """Load OAuth2 credentials, refreshing or creating as needed.

    If ``token_path`` exists and the stored credentials are valid (or can be
    refreshed), they are returned directly.  Otherwise an interactive OAuth2
    flow is initiated via ``InstalledAppFlow.run_local_server()``.

    The resulting credentials are persisted to ``token_path`` for future use.

    Args:
        token_path: Path to the cached OAuth2 token file.
        credentials_path: Path to the OAuth2 client-secrets file.
        scopes: OAuth2 scopes to request.  Defaults to ``DEFAULT_SCOPES``
            (gmail.modify + gmail.labels + calendar.events).

    Returns:
        A ``google.oauth2.credentials.Credentials`` instance ready for API
        calls.
    """
    if scopes is None:
        scopes = DEFAULT_SCOPES

    token_path = Path(token_path)
    credentials_path = Path(credentials_path)
    creds: Credentials | None = None

    if token_path.exists():
        creds = Credentials.from_authorized_user_file(str(token_path), scopes)  # type: ignore[no-untyped-call]

    if creds and creds.valid:
        return creds

    if creds and creds.expired and creds.refresh_token:
        creds.refresh(google.auth.transport.requests.Request())
    else:
        flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), scopes)
        creds = flow.run_local_server(port=0)

    token_path.write_text(creds.to_json())
    return creds


def get_gmail_service(credentials: Credentials | None = None) -> Resource:
    """Build and return a Gmail API v1 service client.

    Args:
        credentials: Pre-loaded OAuth2 credentials.  If ``None``,
            ``get_google_credentials()`` is called to obtain them.
    """
    if credentials is None:
        credentials = get_google_credentials()
    return build("gmail", "v1", credentials=credentials)


def get_calendar_service(credentials: Credentials | None = None) -> Resource:
    """Build and return a Calendar API v3 service client."""
    if credentials is None:
        credentials = get_google_credentials()
    return build("calendar", "v3", credentials=credentials)
