"""Abstract base class for an attached duplex stream.

The broker only ever talks to connections through this interface, so
the WebSocket transport can be swapped for an in-memory fake in tests.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Any


class Connection(ABC):
    """One attached client stream.

    A connection belongs to exactly one session for as long as it is
    registered. Messages are plain JSON-compatible dicts.
    """

    def __init__(self, connection_id: str | None = None) -> None:
        self.connection_id = connection_id or uuid.uuid4().hex[:12]

    @abstractmethod
    async def send(self, payload: dict[str, Any]) -> None:
        """Deliver one message to the client.

        Raises:
            ConnectionClosedError: If the underlying stream is gone.
        """
        ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the stream. Safe to call more than once."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.connection_id})"


class ConnectionClosedError(Exception):
    """Raised when sending on a connection whose transport has gone away."""

    def __init__(self, message: str, connection_id: str = "") -> None:
        super().__init__(message)
        self.connection_id = connection_id
