"""FastAPI application factory."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager
from typing import Any
from uuid import uuid4

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from planning_poker.adapters.websocket_subscriber import WebSocketSubscriber
from planning_poker.api.admin import router as admin_router
from planning_poker.api.messages import (
    ClientEnvelope,
    CreateSessionPayload,
    IssuesPayload,
    JoinSessionPayload,
    MeetLinkPayload,
    SessionRefPayload,
    SprintsPayload,
    StartVotingIssuePayload,
    StartVotingPayload,
    UpdateEstimationPayload,
    VotePayload,
)
from planning_poker.app_logging import configure_logging
from planning_poker.config import parse_cors_origins
from planning_poker.containers import AppContainer
from planning_poker.domain.errors import InvalidInputError, PlanningPokerError
from planning_poker.domain.work_items import WorkItem

BROADCAST_EVENTS = frozenset(
    {"start-voting", "start-voting-issue", "vote", "reveal-votes", "reset-votes"}
)
REQUEST_EVENTS = frozenset(
    {"create-session", "join-session", "get-session", "share-meet-link"}
)
ASYNC_REQUEST_EVENTS = frozenset(
    {"update-issue-estimation", "get-boards", "get-sprints", "get-issues"}
)

_logger = logging.getLogger(__name__)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    app.state.background_tasks = set()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=parse_cors_origins(container.settings.cors_origin),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.websocket("/ws")
    async def session_socket(websocket: WebSocket) -> None:
        """Carry one connection's actions and its share of room broadcasts."""
        await websocket.accept()
        connection_id = uuid4().hex
        subscriber = WebSocketSubscriber(
            connection_id=connection_id, websocket=websocket
        )
        writer = asyncio.create_task(subscriber.pump())
        subscriber.deliver("connected", {"connectionId": connection_id})
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    subscriber.deliver(
                        "error",
                        {
                            "code": InvalidInputError.code,
                            "message": "Binary frames are not supported",
                        },
                    )
                    continue
                _handle_frame(websocket.app, subscriber, raw)
        finally:
            state_container: AppContainer = websocket.app.state.container
            state_container.disconnect_reconciler.handle_disconnect(connection_id)
            subscriber.closed = True
            writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await writer

    return app


def _handle_frame(app: FastAPI, subscriber: WebSocketSubscriber, raw: str) -> None:
    """Parse one client frame and route it.

    Synchronous actions complete, including their broadcasts, before this
    returns. Actions that call Jira run as background tasks.
    """
    try:
        envelope = ClientEnvelope.model_validate_json(raw)
    except ValidationError:
        subscriber.deliver(
            "error", {"code": InvalidInputError.code, "message": "Malformed message"}
        )
        return

    container: AppContainer = app.state.container
    try:
        if envelope.event in BROADCAST_EVENTS:
            _apply_broadcast_action(container, subscriber.connection_id, envelope)
        elif envelope.event in REQUEST_EVENTS:
            response = _answer_request(container, subscriber, envelope)
            subscriber.reply(envelope.ack, response)
        elif envelope.event in ASYNC_REQUEST_EVENTS:
            _spawn(
                app.state.background_tasks,
                _answer_async_request(container, subscriber, envelope),
            )
        else:
            subscriber.deliver(
                "error",
                {
                    "code": InvalidInputError.code,
                    "message": f"Unknown event: {envelope.event}",
                },
            )
    except Exception:
        _logger.exception("Unhandled error for event %s", envelope.event)
        subscriber.deliver(
            "error", {"code": "server_error", "message": "Internal server error"}
        )


def _apply_broadcast_action(
    container: AppContainer, connection_id: str, envelope: ClientEnvelope
) -> None:
    """Run a fire-and-forget action; rejected actions have no visible effect."""
    voting = container.voting_service
    data = envelope.data
    try:
        if envelope.event == "start-voting":
            payload = StartVotingPayload.model_validate(data)
            voting.start_voting(connection_id, payload.session_id, payload.story)
        elif envelope.event == "start-voting-issue":
            payload = StartVotingIssuePayload.model_validate(data)
            try:
                issue = WorkItem.from_payload(payload.issue)
            except ValueError as exc:
                _logger.debug("Ignored start-voting-issue with bad issue: %s", exc)
                return
            voting.start_voting_on_issue(
                connection_id,
                payload.session_id,
                payload.board_id,
                payload.sprint_id,
                issue,
            )
        elif envelope.event == "vote":
            payload = VotePayload.model_validate(data)
            voting.vote(connection_id, payload.session_id, payload.symbol)
        elif envelope.event == "reveal-votes":
            payload = SessionRefPayload.model_validate(data)
            voting.reveal_votes(connection_id, payload.session_id)
        elif envelope.event == "reset-votes":
            payload = SessionRefPayload.model_validate(data)
            voting.reset_votes(connection_id, payload.session_id)
    except ValidationError as exc:
        _logger.debug("Ignored %s with invalid payload: %s", envelope.event, exc)


def _answer_request(
    container: AppContainer,
    subscriber: WebSocketSubscriber,
    envelope: ClientEnvelope,
) -> dict[str, object]:
    connection_id = subscriber.connection_id
    data = envelope.data
    try:
        if envelope.event == "create-session":
            payload = CreateSessionPayload.model_validate(data)
            session_id = container.session_service.create_session(
                connection_id, payload.host_name, subscriber
            )
            return {"success": True, "sessionId": session_id}
        if envelope.event == "join-session":
            payload = JoinSessionPayload.model_validate(data)
            projection = container.session_service.join_session(
                connection_id, payload.session_id, payload.name, subscriber
            )
            return {"success": True, "session": projection.to_dict()}
        if envelope.event == "get-session":
            payload = SessionRefPayload.model_validate(data)
            projection = container.session_service.get_session(
                payload.session_id, viewer_id=connection_id
            )
            return {"success": True, "session": projection.to_dict()}
        if envelope.event == "share-meet-link":
            payload = MeetLinkPayload.model_validate(data)
            container.session_service.share_meet_link(
                connection_id, payload.session_id, payload.meet_link
            )
            return {"success": True}
    except ValidationError as exc:
        return _failure(InvalidInputError(_describe(exc)))
    except PlanningPokerError as exc:
        return _failure(exc)
    return _failure(InvalidInputError(f"Unknown event: {envelope.event}"))


async def _answer_async_request(
    container: AppContainer,
    subscriber: WebSocketSubscriber,
    envelope: ClientEnvelope,
) -> None:
    try:
        response = await _run_async_request(container, subscriber, envelope)
    except Exception:
        _logger.exception("Unhandled error for event %s", envelope.event)
        response = {
            "success": False,
            "error": "Internal server error",
            "code": "server_error",
        }
    subscriber.reply(envelope.ack, response)


async def _run_async_request(
    container: AppContainer,
    subscriber: WebSocketSubscriber,
    envelope: ClientEnvelope,
) -> dict[str, object]:
    jira = container.jira_service
    data = envelope.data
    try:
        if envelope.event == "update-issue-estimation":
            payload = UpdateEstimationPayload.model_validate(data)
            result = await container.voting_service.commit_estimation(
                subscriber.connection_id,
                payload.session_id,
                payload.issue_id,
                payload.point_value,
            )
            response: dict[str, object] = {"success": True}
            if result.stale:
                response["stale"] = True
            return response
        if envelope.event == "get-boards":
            boards = await jira.list_boards()
            return {"success": True, "boards": [board.to_dict() for board in boards]}
        if envelope.event == "get-sprints":
            payload = SprintsPayload.model_validate(data)
            sprints = await jira.list_sprints(payload.board_id)
            return {
                "success": True,
                "sprints": [sprint.to_dict() for sprint in sprints],
            }
        if envelope.event == "get-issues":
            payload = IssuesPayload.model_validate(data)
            issues = await jira.list_issues(payload.board_id, payload.sprint_id)
            return {"success": True, "issues": [issue.to_dict() for issue in issues]}
    except ValidationError as exc:
        return _failure(InvalidInputError(_describe(exc)))
    except PlanningPokerError as exc:
        return _failure(exc)
    return _failure(InvalidInputError(f"Unknown event: {envelope.event}"))


def _spawn(tasks: set[asyncio.Task], coro: Coroutine[Any, Any, None]) -> None:
    """Run a coroutine in the background, holding a reference until done."""
    task = asyncio.create_task(coro)
    tasks.add(task)
    task.add_done_callback(tasks.discard)


def _failure(exc: PlanningPokerError) -> dict[str, object]:
    return {"success": False, "error": exc.message, "code": exc.code}


def _describe(exc: ValidationError) -> str:
    """Summarise a pydantic error as ``field: message`` pairs."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(parts) or "Invalid payload"
