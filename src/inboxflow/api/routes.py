"""Local HTTP API over the mailbox session.

The UI shell drives the core through these routes: it opens views, lists
threads, opens a thread for display and answers its invitations, runs
view-reconciler actions, forwards key presses and focus changes, and
drains host signals (badge and notifications).

Services are read from ``request.app.state.services`` (set up by
``inboxflow.app.initialize_services``).
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from inboxflow.bridge.host import HostSignals
from inboxflow.classify.invites import classify_invite
from inboxflow.classify.quotes import detect_quote_boundaries, has_quoted_content
from inboxflow.domain.errors import InvalidTransitionError, ViewNotFoundError
from inboxflow.domain.models import Message
from inboxflow.domain.types import RsvpResponse
from inboxflow.focus.guardian import FocusGuardian, ReportedFocusHost
from inboxflow.presentation import MessageView, ThreadView
from inboxflow.rsvp.controller import RsvpController
from inboxflow.shortcuts import KeyPress, dispatch_shortcut
from inboxflow.threads.session import MailboxSession
from inboxflow.threads.views import MoveOutcome, ViewReconciler

logger = structlog.get_logger()

router = APIRouter(prefix="/api")


class MoveRequest(BaseModel):
    label: str
    leaves_list: bool = True


class ShortcutRequest(BaseModel):
    press: KeyPress
    thread_id: str | None = None


class RsvpRequest(BaseModel):
    response: RsvpResponse


class FocusReport(BaseModel):
    element: str | None = None
    window_blurred: bool = False


def _session(request: Request) -> MailboxSession:
    session: MailboxSession | None = request.app.state.services.get("session")
    if session is None or not session.started:
        raise HTTPException(status_code=503, detail="Mailbox session not available")
    return session


def _reconciler(session: MailboxSession) -> ViewReconciler:
    if session.reconciler is None:
        raise HTTPException(status_code=409, detail="No active view")
    return session.reconciler


def _outcome(outcome: MoveOutcome) -> dict[str, Any]:
    return outcome.model_dump(mode="json", exclude={"reconciliation"})


def _threads(session: MailboxSession) -> dict[str, Any]:
    store = session.store
    threads = store.threads if store is not None else []
    return {
        "view": session.active_view_id,
        "generation": session.generation,
        "threads": [t.model_dump(mode="json") for t in threads],
    }


def _rsvp(controller: RsvpController) -> dict[str, Any]:
    return {
        "state": str(controller.state),
        "error": controller.error,
        "event_id": controller.event_id,
        "can_respond": controller.can_respond,
    }


def _message_view(view: MessageView) -> dict[str, Any]:
    body = view.body
    latest, quoted = view.plain_parts
    controller = view.rsvp
    return {
        "message": view.message.model_dump(mode="json"),
        "is_newest": view.is_newest,
        "has_quoted": view.has_quoted,
        "show_quoted": view.show_quoted,
        "html": body.html,
        "quote_regions": [r.model_dump(mode="json") for r in body.regions],
        "plain": {"latest": latest, "quoted": quoted},
        "invite": view.classification.model_dump(mode="json"),
        "rsvp": _rsvp(controller) if controller is not None else None,
    }


def _thread_view(view: ThreadView) -> dict[str, Any]:
    return {
        "thread_id": view.thread.id,
        "subject": view.thread.subject,
        "labels": view.thread.labels,
        "messages": [_message_view(m) for m in view.messages],
    }


def _opened_message(session: MailboxSession, thread_id: str, message_id: str) -> MessageView:
    try:
        return session.opened_thread(thread_id).message(message_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=404, detail=f"Message {message_id} is not in the open thread"
        ) from exc


def _invite_controller(view: MessageView) -> RsvpController:
    if view.rsvp is None:
        raise HTTPException(status_code=409, detail="Not a calendar invitation")
    return view.rsvp


def _focus(request: Request) -> tuple[FocusGuardian, ReportedFocusHost]:
    services = request.app.state.services
    guardian: FocusGuardian | None = services.get("focus_guardian")
    host = services.get("focus_host")
    if guardian is None or not isinstance(host, ReportedFocusHost):
        raise HTTPException(status_code=503, detail="Focus reporting not available")
    return guardian, host


@router.get("/views")
async def list_views(request: Request) -> dict[str, Any]:
    """Return the configured views, the active view, and the latest counts."""
    session = _session(request)
    counts = session.poller.counts if session.poller is not None else {}
    return {
        "views": [v.model_dump(mode="json") for v in session.views],
        "active": session.active_view_id,
        "counts": counts,
    }


@router.post("/views/{view_id}/open")
async def open_view(view_id: str, request: Request) -> dict[str, Any]:
    """Switch the active view.

    Raises:
        HTTPException: 404 if the view id is unknown.
    """
    session = _session(request)
    try:
        await session.switch_view(view_id)
    except ViewNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _threads(session)


@router.get("/threads")
async def list_threads(request: Request) -> dict[str, Any]:
    """Return the active view's cached threads."""
    return _threads(_session(request))


@router.post("/search")
async def search(request: Request, q: str) -> dict[str, Any]:
    """Show the results of an ad-hoc query as the active view."""
    session = _session(request)
    await session.search(q)
    return _threads(session)


@router.post("/threads/{thread_id}/open")
async def open_thread(thread_id: str, request: Request) -> dict[str, Any]:
    """Open a thread of the active view for display, marking it read.

    Raises:
        HTTPException: 404 if the thread is not in the active view.
    """
    session = _session(request)
    try:
        view = await session.open_thread(thread_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown thread: {thread_id}") from exc
    return _thread_view(view)


@router.post("/threads/{thread_id}/messages/{message_id}/quoted")
async def toggle_quoted(thread_id: str, message_id: str, request: Request) -> dict[str, Any]:
    """Show or hide the quoted history of one message of the open thread."""
    view = _opened_message(_session(request), thread_id, message_id)
    view.toggle_quoted()
    return _message_view(view)


@router.post("/threads/{thread_id}/messages/{message_id}/rsvp")
async def rsvp(
    thread_id: str, message_id: str, body: RsvpRequest, request: Request
) -> dict[str, Any]:
    """Answer the invitation in one message of the open thread.

    Failures are reported in ``error`` with the resulting state, not as an
    HTTP error.
    """
    view = _opened_message(_session(request), thread_id, message_id)
    controller = _invite_controller(view)
    await controller.respond(body.response)
    return {"message_id": message_id, **_rsvp(controller)}


@router.post("/threads/{thread_id}/messages/{message_id}/rsvp/change")
async def change_rsvp(thread_id: str, message_id: str, request: Request) -> dict[str, Any]:
    """Reopen a recorded answer so a different one can be sent.

    Raises:
        HTTPException: 409 if no answer has been recorded.
    """
    view = _opened_message(_session(request), thread_id, message_id)
    controller = _invite_controller(view)
    try:
        controller.change()
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return {"message_id": message_id, **_rsvp(controller)}


@router.post("/threads/{thread_id}/move")
async def move_thread(thread_id: str, body: MoveRequest, request: Request) -> dict[str, Any]:
    """Move a thread into the view backed by ``body.label`` (toggle if present)."""
    reconciler = _reconciler(_session(request))
    outcome = await reconciler.move_to_label(thread_id, body.label, body.leaves_list)
    return _outcome(outcome)


@router.post("/threads/{thread_id}/done")
async def done_thread(thread_id: str, request: Request) -> dict[str, Any]:
    """Clear managed labels and archive."""
    reconciler = _reconciler(_session(request))
    return _outcome(await reconciler.done(thread_id))


@router.post("/threads/{thread_id}/restore")
async def restore_thread(
    thread_id: str, request: Request, view_id: str | None = None
) -> dict[str, Any]:
    """Undo ``done``, optionally restoring the managed label of *view_id*."""
    session = _session(request)
    reconciler = _reconciler(session)
    try:
        view = session.view(view_id) if view_id else None
    except ViewNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _outcome(await reconciler.restore(thread_id, view))


@router.post("/threads/{thread_id}/star")
async def star_thread(thread_id: str, request: Request) -> dict[str, Any]:
    """Toggle the star on a thread."""
    reconciler = _reconciler(_session(request))
    return _outcome(await reconciler.toggle_star(thread_id))


@router.post("/threads/{thread_id}/read")
async def read_thread(thread_id: str, request: Request) -> dict[str, Any]:
    """Mark a thread read."""
    session = _session(request)
    if session.store is None:
        raise HTTPException(status_code=409, detail="No active view")
    ok = await session.store.mark_read(thread_id)
    return {"thread_id": thread_id, "ok": ok}


@router.post("/refresh")
async def refresh(request: Request) -> dict[str, Any]:
    """Fetch the active view again."""
    session = _session(request)
    ok = await session.refresh()
    return {**_threads(session), "ok": ok}


@router.post("/shortcut")
async def shortcut(body: ShortcutRequest, request: Request) -> dict[str, Any]:
    """Resolve and perform a key press forwarded by the UI shell."""
    session = _session(request)
    result = await dispatch_shortcut(
        body.press, _reconciler(session), body.thread_id, session.refresh
    )
    if isinstance(result, MoveOutcome):
        return {"handled": True, "outcome": _outcome(result)}
    return {"handled": result is not None, "action": result}


@router.post("/focus")
async def report_focus(body: FocusReport, request: Request) -> dict[str, Any]:
    """Record the focused element and return the blurs the shell must perform.

    A window blur also schedules the delayed re-check; blurs it asks for
    are picked up from ``GET /api/focus/commands``.
    """
    guardian, host = _focus(request)
    host.report(body.element)
    if body.window_blurred:
        guardian.on_window_blur()
    else:
        guardian.check()
    return {"blur": host.drain(), "corrections": guardian.corrections}


@router.get("/focus/commands")
async def focus_commands(request: Request) -> dict[str, Any]:
    """Drain blurs requested by the periodic poll or a delayed re-check."""
    guardian, host = _focus(request)
    return {"blur": host.drain(), "corrections": guardian.corrections}


@router.get("/host/signals")
async def host_signals(request: Request) -> dict[str, Any]:
    """Return the badge count and drain queued notifications."""
    signals: HostSignals = request.app.state.services["signals"]
    return {
        "badge": signals.badge,
        "notifications": [n.model_dump(mode="json") for n in signals.drain()],
    }


@router.post("/classify")
async def classify(message: Message, request: Request) -> dict[str, Any]:
    """Classify a message: invite detection and quoted-content regions."""
    settings = request.app.state.settings
    result = classify_invite(message, settings.calendar_notification_senders)
    regions = detect_quote_boundaries(message.body_html)
    return {
        "invite": result.model_dump(mode="json"),
        "has_quoted": has_quoted_content(message.body_html)
        or has_quoted_content(message.body_text),
        "quote_regions": [r.model_dump(mode="json") for r in regions],
    }
