"""Local HTTP API for the UI shell."""

from inboxflow.api.routes import router

__all__ = ["router"]
