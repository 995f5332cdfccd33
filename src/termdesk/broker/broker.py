"""The session broker.

Routes attached connections to their session, runs inbound commands
against the session's state and fans the results out to every
connection in that session.

Ordering: all work that touches a session (attach, command, detach)
runs under that session's ``SessionState.lock``, so every connection
sees ``command_echo`` then ``output`` of one command before anything
from the next. Different sessions never share a lock.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from termdesk.broker.connection import Connection
from termdesk.broker.protocol import (
    MAX_COMMAND_LENGTH,
    ProtocolError,
    parse_inbound,
    sanitize_command,
)
from termdesk.broker.registry import ConnectionRegistry
from termdesk.broker.store import SessionStore
from termdesk.domain.models import (
    CommandEchoMessage,
    CommandMessage,
    ConnectedMessage,
    ErrorMessage,
    OutboundMessage,
    OutputMessage,
    validate_session_id,
)
from termdesk.shell.interpreter import interpret
from termdesk.shell.state import SessionState

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Failed to process command"


class SessionBroker:
    """Coordinates the connection registry and per-session state."""

    def __init__(
        self,
        registry: ConnectionRegistry | None = None,
        store: SessionStore | None = None,
        send_timeout: float = 5.0,
        max_command_length: int = MAX_COMMAND_LENGTH,
    ) -> None:
        self._registry = registry if registry is not None else ConnectionRegistry()
        self._store = store if store is not None else SessionStore()
        self._send_timeout = send_timeout
        self._max_command_length = max_command_length

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    @property
    def store(self) -> SessionStore:
        return self._store

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------

    async def attach(self, session_id: str, connection: Connection) -> SessionState:
        """Register ``connection`` and send it the ``connected`` acknowledgement.

        Raises:
            InvalidSessionIdError: Before any registry mutation if the
                identifier is malformed.
        """
        validate_session_id(session_id)
        while True:
            state = self._store.get_or_create(session_id)
            async with state.lock:
                # A concurrent detach may have torn this state down while
                # we waited; start over with whatever is current now.
                if self._store.get(session_id) is not state:
                    continue
                count = self._registry.add(session_id, connection)
                logger.info(
                    "Connection %s attached to session %s (%d connected)",
                    connection.connection_id, session_id, count,
                )
                delivered = await self._deliver(
                    connection, ConnectedMessage(session_id=session_id).to_wire()
                )
            if not delivered:
                await self.detach(connection)
                await connection.close(code=1011, reason="send failed")
            return state

    async def detach(self, connection: Connection) -> None:
        """Deregister ``connection``; tear the session down if it was the last.

        Idempotent: detaching an unknown connection does nothing.
        """
        session_id = self._registry.session_of(connection)
        if session_id is None:
            return
        state = self._store.get(session_id)
        if state is None:
            self._registry.remove(connection)
            return
        async with state.lock:
            removed = self._registry.remove(connection)
            if removed is None:
                return
            _, remaining = removed
            logger.info(
                "Connection %s detached from session %s (%d remaining)",
                connection.connection_id, session_id, remaining,
            )
            if remaining == 0 and self._store.discard(session_id, state):
                logger.info("Session %s cleaned up", session_id)

    # -------------------------------------------------------------------
    # Inbound messages
    # -------------------------------------------------------------------

    async def handle_message(self, connection: Connection, raw: str | bytes) -> None:
        """Process one raw inbound frame from an attached connection.

        Protocol errors are answered on ``connection`` alone and never
        touch session state.
        """
        session_id = self._registry.session_of(connection)
        if session_id is None:
            logger.error("Message from unregistered connection %s", connection.connection_id)
            await self._deliver(connection, ErrorMessage(error=INTERNAL_ERROR).to_wire())
            return

        try:
            message = parse_inbound(raw)
            if not isinstance(message, CommandMessage):
                raise ProtocolError("Unrecognized message type")
            command = sanitize_command(message.command, self._max_command_length)
        except ProtocolError as e:
            logger.debug("Protocol error from %s: %s", connection.connection_id, e)
            await self._deliver(connection, ErrorMessage(error=str(e)).to_wire())
            return

        await self.run_command(session_id, connection, command)

    async def run_command(self, session_id: str, origin: Connection, command: str) -> None:
        """Echo, interpret and broadcast one sanitized command atomically."""
        state = self._store.get(session_id)
        if state is None:
            logger.error("No state for session %s with a registered connection", session_id)
            await self._deliver(origin, ErrorMessage(error=INTERNAL_ERROR).to_wire())
            return

        failed: list[Connection] = []
        async with state.lock:
            failed += await self._broadcast(session_id, CommandEchoMessage(command=command))
            try:
                result = interpret(command, state)
            except Exception:
                logger.exception("Interpreter failed on %r in session %s", command, session_id)
                reply: OutboundMessage = ErrorMessage(error=INTERNAL_ERROR)
            else:
                reply = OutputMessage(output=result.output, success=result.success)
            failed += await self._broadcast(session_id, reply)

        for connection in set(failed):
            await self.detach(connection)
            await connection.close(code=1011, reason="send failed")

    # -------------------------------------------------------------------
    # Fan-out
    # -------------------------------------------------------------------

    async def broadcast(self, session_id: str, message: OutboundMessage) -> None:
        """Send ``message`` to every connection in ``session_id``."""
        failed = await self._broadcast(session_id, message)
        for connection in failed:
            await self.detach(connection)
            await connection.close(code=1011, reason="send failed")

    async def _broadcast(self, session_id: str, message: OutboundMessage) -> list[Connection]:
        targets = self._registry.connections(session_id)
        if not targets:
            return []
        payload = message.to_wire()
        logger.debug(
            "Broadcasting %s to %d connections in session %s",
            payload["type"], len(targets), session_id,
        )
        results = await asyncio.gather(*(self._deliver(c, payload) for c in targets))
        return [c for c, ok in zip(targets, results) if not ok]

    async def _deliver(self, connection: Connection, payload: dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(connection.send(payload), timeout=self._send_timeout)
        except Exception as e:
            logger.warning(
                "Failed to send %s to %s: %s",
                payload.get("type"), connection.connection_id, e or type(e).__name__,
            )
            return False
        return True
