"""WebSocket-backed broker connection."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from termdesk.broker.connection import Connection, ConnectionClosedError

logger = logging.getLogger(__name__)


class WebSocketConnection(Connection):
    """Adapts an accepted FastAPI WebSocket to the broker's Connection."""

    def __init__(self, websocket: WebSocket, connection_id: str | None = None) -> None:
        super().__init__(connection_id)
        self._websocket = websocket
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def send(self, payload: dict[str, Any]) -> None:
        if self._closed:
            raise ConnectionClosedError("Connection is closed", self.connection_id)
        try:
            await self._websocket.send_json(payload)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            self._closed = True
            raise ConnectionClosedError(f"Send failed: {e}", self.connection_id) from e

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._websocket.close(code=code, reason=reason)
        except RuntimeError as e:
            # Already closed by the peer or the server.
            logger.debug("Close on %s ignored: %s", self.connection_id, e)
