"""Mailbox context for every local API call.

Each call is tagged with a request id (echoed from the UI shell or generated
here) and, while a mailbox session is running, with the active view and its
generation.  Both are bound into structlog contextvars, so every log entry
emitted while handling the call can be tied to the view it acted on.  The
generation after handling is returned in ``X-View-Generation``; a shell that
sees it change knows its thread list belongs to a view that is gone.
"""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
GENERATION_HEADER = "X-View-Generation"


def _running_session(request: Request) -> Any | None:
    services = getattr(request.app.state, "services", None) or {}
    session = services.get("session")
    if session is None or not session.started:
        return None
    return session


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind request id, active view, and generation for each call."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            service="inboxflow", request_id=request_id, path=request.url.path
        )
        session = _running_session(request)
        if session is not None:
            structlog.contextvars.bind_contextvars(
                view=session.active_view_id, generation=session.generation
            )

        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = request_id
        session = _running_session(request)
        if session is not None:
            response.headers[GENERATION_HEADER] = str(session.generation)
        return response
