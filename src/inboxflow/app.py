"""Application entry point for the inboxflow local service.

Runs the local FastAPI server the UI shell talks to, with the mailbox
session and the focus guardian living for the lifetime of the process.

Configures:
- **structlog** with JSON rendering (production) or colored console (development)
- **Sentry** error reporting through structlog-sentry when a DSN is set
- **Prometheus** metrics on ``/metrics`` and request IDs on every response
- **Retry logic** for Google API calls with host notification on final failure
- **GmailBridge** (if a Gmail token is present) and the **MailboxSession**
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from inboxflow.api.routes import router as api_router
from inboxflow.bridge.host import HostSignals
from inboxflow.bridge.protocol import Bridge
from inboxflow.config import Settings, get_settings, validate_credentials
from inboxflow.focus.guardian import FocusGuardian, FocusHost, ReportedFocusHost
from inboxflow.health import register_health_routes
from inboxflow.observability.metrics import setup_metrics
from inboxflow.observability.middleware import RequestIdMiddleware
from inboxflow.observability.sentry import get_sentry_processor, init_sentry
from inboxflow.resilience.retry import configure_error_notifier
from inboxflow.threads.session import MailboxSession

logger = structlog.get_logger()


def configure_logging(production: bool = False, sentry: bool = False) -> None:
    """Configure structlog for production (JSON) or development (console).

    Production mode (*production=True*): JSON rendering at INFO level.
    Development mode: colored console rendering at DEBUG level.

    Args:
        production: Enable production mode if ``True``.
        sentry: Forward ERROR events to Sentry.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
    ]
    if sentry:
        shared_processors.append(get_sentry_processor())
    shared_processors += [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if production:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        log_level = logging.INFO
    else:
        renderer = structlog.dev.ConsoleRenderer()
        log_level = logging.DEBUG

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service="inboxflow")


def _build_gmail_bridge(settings: Settings, signals: HostSignals) -> Bridge | None:
    """Create the Gmail/Calendar bridge, or ``None`` without a token."""
    if not settings.gmail_token_path.exists():
        logger.info("Gmail token not found, bridge disabled", path=str(settings.gmail_token_path))
        return None
    try:
        from inboxflow.auth.credentials import (
            get_calendar_service,
            get_gmail_service,
            get_google_credentials,
        )
        from inboxflow.bridge.gmail import GmailBridge, GmailClient

        creds = get_google_credentials(
            token_path=settings.gmail_token_path,
            credentials_path=settings.gmail_credentials_path,
        )
        client = GmailClient(
            get_gmail_service(creds),
            get_calendar_service(creds),
            calendar_id=settings.calendar_id,
        )
        logger.info("GmailBridge initialized")
        return GmailBridge(client, signals, settings)
    except Exception:
        logger.warning("Failed to initialize GmailBridge", exc_info=True)
        return None


def initialize_services(
    settings: Settings | None = None,
    bridge: Bridge | None = None,
    focus_host: FocusHost | None = None,
) -> dict[str, Any]:
    """Set up all shared services for the application.

    Creates the host signals (also the retry error notifier), the bridge
    (the given one, or a Gmail bridge when a token is present), the mailbox
    session, and the focus guardian.  Without an explicit focus host the
    guardian watches a ``ReportedFocusHost`` the UI shell drives through
    ``/api/focus``.

    Args:
        settings: Application settings.  If ``None``, ``get_settings()`` is used.
        bridge: Bridge to use instead of building the Gmail one.
        focus_host: Host for the focus guardian; ``None`` uses a
            ``ReportedFocusHost`` over ``settings.focus_surface_ids``.

    Returns:
        A dict of initialized service instances keyed by name.
    """
    if settings is None:
        settings = get_settings()

    services: dict[str, Any] = {"_settings": settings}

    signals = HostSignals()
    services["signals"] = signals
    configure_error_notifier(signals)

    if bridge is None:
        bridge = _build_gmail_bridge(settings, signals)
    services["bridge"] = bridge

    services["session"] = MailboxSession(bridge, settings) if bridge is not None else None

    if focus_host is None:
        focus_host = ReportedFocusHost(settings.focus_surface_ids)
    services["focus_host"] = focus_host
    services["focus_guardian"] = FocusGuardian(
        focus_host,
        poll_interval=settings.focus_poll_interval,
        blur_recheck_delay=settings.focus_blur_recheck_delay,
    )

    return services


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Lifespan context manager for FastAPI startup and shutdown.

    On startup: starts the mailbox session and the focus guardian.
    On shutdown: closes the session and stops the guardian.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application.
    """
    services = app.state.services
    session: MailboxSession | None = services.get("session")
    guardian: FocusGuardian | None = services.get("focus_guardian")

    if session is not None:
        try:
            await session.start()
            logger.info("Mailbox session started", view=session.active_view_id)
        except Exception:
            logger.warning("Failed to start mailbox session", exc_info=True)
    if guardian is not None:
        guardian.start()

    logger.info("FastAPI application starting")
    yield

    if guardian is not None:
        await guardian.stop()
    if session is not None:
        await session.close()
        logger.info("Mailbox session closed")


def create_app(services: dict[str, Any]) -> FastAPI:
    """Create the FastAPI app with lifespan, API router, health, and metrics.

    Args:
        services: The initialized services dict from ``initialize_services``.

    Returns:
        The configured FastAPI application.
    """
    fastapi_app = FastAPI(title="inboxflow", lifespan=lifespan)
    fastapi_app.state.services = services
    fastapi_app.state.settings = services.get("_settings") or get_settings()
    fastapi_app.add_middleware(RequestIdMiddleware)
    fastapi_app.include_router(api_router)
    register_health_routes(fastapi_app)
    setup_metrics(fastapi_app)
    return fastapi_app


async def main() -> None:
    """Main entry point.

    1. Configure Sentry and logging
    2. Validate credentials
    3. Initialize services
    4. Serve the local API with uvicorn until shutdown
    """
    settings = get_settings()
    sentry_enabled = init_sentry(
        settings.sentry_dsn.get_secret_value(),
        environment="production" if settings.production else "development",
    )
    configure_logging(production=settings.production, sentry=sentry_enabled)
    logger.info("Application starting")

    validate_credentials(settings)

    services = initialize_services(settings)
    fastapi_app = create_app(services)

    config = uvicorn.Config(
        fastapi_app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="info",
    )
    server = uvicorn.Server(config)
    await server.serve()


def run() -> None:
    """Console-script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
