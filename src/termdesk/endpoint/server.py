"""FastAPI server for shared terminal sessions.

WebSocket routes:

    /terminal-session?sessionId=<id>
        <- {"type": "command", "command": "ls -la"}
        -> connected / command_echo / output / error

    /presence?sessionId=<id>&participantId=<pid>&displayName=<name>
        <- {"type": "heartbeat"} | {"type": "leave"}
        -> {"type": "presence", "sessionId": ..., "members": [...]}

HTTP routes:

    GET /health                        -> {"status": "ok", ...}
    GET /sessions/{sessionId}/presence -> roster snapshot
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from termdesk.broker.broker import SessionBroker
from termdesk.broker.registry import ConnectionRegistry
from termdesk.broker.store import SessionStore
from termdesk.config.settings import Settings
from termdesk.domain.models import (
    InvalidSessionIdError,
    PresenceMessage,
    validate_session_id,
)
from termdesk.endpoint.connection import WebSocketConnection
from termdesk.presence.tracker import PresenceTracker, sweep_stale

logger = logging.getLogger(__name__)

POLICY_VIOLATION = 1008
IDLE_CLOSE = 4000


class HealthResponse(BaseModel):
    status: str = "ok"
    sessions: int = 0
    connections: int = 0


async def _receive_frame(websocket: WebSocket, timeout: float) -> str | bytes | None:
    """Wait for the next data frame; None once the client has disconnected.

    Raises:
        asyncio.TimeoutError: If nothing arrives within ``timeout`` seconds.
    """
    message = await asyncio.wait_for(websocket.receive(), timeout=timeout)
    if message["type"] == "websocket.disconnect":
        return None
    if message.get("text") is not None:
        return message["text"]
    return message.get("bytes") or b""


def create_app(
    settings: Settings | None = None,
    broker: SessionBroker | None = None,
    tracker: PresenceTracker | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Server configuration. Defaults are used if None.
        broker: Optional pre-configured SessionBroker (for testing).
        tracker: Optional pre-configured PresenceTracker (for testing).
    """
    settings = settings or Settings()
    idle_timeout = settings.server.idle_timeout

    if broker is None:
        broker = SessionBroker(
            registry=ConnectionRegistry(),
            store=SessionStore(profile=settings.shell.profile()),
            send_timeout=settings.server.send_timeout,
            max_command_length=settings.shell.max_command_length,
        )
    if tracker is None:
        tracker = PresenceTracker(stale_after=settings.presence.stale_after)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.sweep_task = asyncio.create_task(
            sweep_stale(app.state.tracker, settings.presence.sweep_interval)
        )
        logger.info("Session server started")
        yield
        app.state.sweep_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await app.state.sweep_task
        logger.info("Session server stopped")

    app = FastAPI(
        title="termdesk",
        description="Shared simulated terminal sessions over WebSockets",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.broker = broker
    app.state.tracker = tracker

    @app.get("/health")
    async def health_check() -> HealthResponse:
        b: SessionBroker = app.state.broker
        return HealthResponse(
            status="ok",
            sessions=len(b.store),
            connections=len(b.registry),
        )

    @app.get("/sessions/{session_id}/presence")
    async def get_presence(session_id: str) -> dict:
        try:
            validate_session_id(session_id)
        except InvalidSessionIdError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        t: PresenceTracker = app.state.tracker
        return PresenceMessage(session_id=session_id, members=t.roster(session_id)).to_wire()

    # -------------------------------------------------------------------
    # Terminal session stream
    # -------------------------------------------------------------------

    @app.websocket("/terminal-session")
    async def terminal_session(
        websocket: WebSocket,
        session_id: str | None = Query(default=None, alias="sessionId"),
    ) -> None:
        b: SessionBroker = app.state.broker
        try:
            session_id = validate_session_id(session_id)
        except InvalidSessionIdError as e:
            logger.info("Rejected terminal stream: %s", e)
            await websocket.close(code=POLICY_VIOLATION, reason=str(e))
            return

        await websocket.accept()
        connection = WebSocketConnection(websocket)
        await b.attach(session_id, connection)
        try:
            while not connection.is_closed:
                try:
                    raw = await _receive_frame(websocket, idle_timeout)
                except asyncio.TimeoutError:
                    logger.info("Closing idle connection %s", connection.connection_id)
                    await connection.close(code=IDLE_CLOSE, reason="idle timeout")
                    break
                if raw is None:
                    break
                await b.handle_message(connection, raw)
        except WebSocketDisconnect:
            pass
        finally:
            logger.info("Client disconnected from session: %s", session_id)
            await b.detach(connection)

    # -------------------------------------------------------------------
    # Presence stream
    # -------------------------------------------------------------------

    @app.websocket("/presence")
    async def presence(
        websocket: WebSocket,
        session_id: str | None = Query(default=None, alias="sessionId"),
        participant_id: str | None = Query(default=None, alias="participantId"),
        display_name: str | None = Query(default=None, alias="displayName"),
    ) -> None:
        t: PresenceTracker = app.state.tracker
        try:
            session_id = validate_session_id(session_id)
            if not participant_id:
                raise ValueError("Participant ID is required")
        except ValueError as e:
            await websocket.close(code=POLICY_VIOLATION, reason=str(e))
            return

        await websocket.accept()
        member = t.join(session_id, participant_id, display_name)
        subscription = t.subscribe(session_id)

        async def _forward() -> None:
            async for snapshot in subscription:
                await websocket.send_json(
                    PresenceMessage(session_id=session_id, members=snapshot).to_wire()
                )

        forward_task = asyncio.create_task(_forward())
        try:
            while True:
                try:
                    raw = await _receive_frame(websocket, idle_timeout)
                except asyncio.TimeoutError:
                    await websocket.close(code=IDLE_CLOSE, reason="idle timeout")
                    break
                if raw is None:
                    break
                try:
                    msg_type = json.loads(raw).get("type")
                except (ValueError, AttributeError):
                    logger.debug("Ignoring malformed presence frame from %s", member.participant_id)
                    continue
                if msg_type == "heartbeat":
                    t.heartbeat(session_id, participant_id, display_name)
                elif msg_type == "leave":
                    await websocket.close()
                    break
                else:
                    logger.debug("Ignoring presence message type %r", msg_type)
        except WebSocketDisconnect:
            pass
        finally:
            forward_task.cancel()
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await forward_task
            subscription.close()
            t.leave(session_id, participant_id)

    return app


def main() -> None:
    """Entry point for running the session server standalone."""
    settings = Settings()
    app = create_app(settings)
    uvicorn.run(app, host=settings.server.host, port=settings.server.port)


if __name__ == "__main__":
    main()
