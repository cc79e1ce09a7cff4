"""Tests for /health and /ready observability endpoints.

Uses FastAPI TestClient with stand-in services to verify liveness and
readiness probes without a Gmail account.
"""

from __future__ import annotations

from types import SimpleNamespace

from fastapi import FastAPI
from fastapi.testclient import TestClient

from inboxflow.health import register_health_routes

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_app(services: dict | None = None) -> FastAPI:
    """Create a minimal FastAPI app with health routes and given services."""
    app = FastAPI()
    app.state.services = services or {}
    register_health_routes(app)
    return app


# ---------------------------------------------------------------------------
# /health (liveness)
# ---------------------------------------------------------------------------

class TestHealthEndpoint:
    """GET /health liveness probe."""

    def test_health_returns_200(self) -> None:
        client = TestClient(_make_app())

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


# ---------------------------------------------------------------------------
# /ready (readiness)
# ---------------------------------------------------------------------------

class TestReadyEndpoint:
    """GET /ready readiness probe."""

    def test_ready_returns_200_when_session_started(self) -> None:
        app = _make_app({"bridge": object(), "session": SimpleNamespace(started=True)})
        client = TestClient(app)

        response = client.get("/ready")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ready"
        assert body["checks"] == {"bridge": "ok", "session": "ok"}

    def test_ready_returns_503_when_session_not_started(self) -> None:
        app = _make_app({"bridge": object(), "session": SimpleNamespace(started=False)})
        client = TestClient(app)

        response = client.get("/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        assert body["checks"]["bridge"] == "ok"
        assert body["checks"]["session"] == "fail"

    def test_ready_returns_503_without_bridge(self) -> None:
        """No Gmail token -> no bridge and no session."""
        app = _make_app({"bridge": None, "session": None})
        client = TestClient(app)

        response = client.get("/ready")

        assert response.status_code == 503
        assert response.json()["checks"] == {"bridge": "fail", "session": "fail"}
