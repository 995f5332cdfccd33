"""Session -> connections registry."""

from __future__ import annotations

import logging

from termdesk.broker.connection import Connection

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Bidirectional map between session identifiers and connections.

    A connection appears under at most one session. Removing the last
    connection of a session drops the session key. Methods never await,
    so each call is a single uninterrupted step on the event loop.
    """

    def __init__(self) -> None:
        self._by_session: dict[str, set[Connection]] = {}
        self._by_connection: dict[Connection, str] = {}

    def add(self, session_id: str, connection: Connection) -> int:
        """Register ``connection`` under ``session_id``.

        Returns the number of connections now in the session.

        Raises:
            ValueError: If the connection is already registered under a
                different session.
        """
        current = self._by_connection.get(connection)
        if current is not None and current != session_id:
            raise ValueError(f"{connection!r} already belongs to session {current}")
        members = self._by_session.setdefault(session_id, set())
        members.add(connection)
        self._by_connection[connection] = session_id
        return len(members)

    def remove(self, connection: Connection) -> tuple[str, int] | None:
        """Deregister ``connection``.

        Returns ``(session_id, remaining)`` or None if it was not registered.
        """
        session_id = self._by_connection.pop(connection, None)
        if session_id is None:
            return None
        members = self._by_session.get(session_id, set())
        members.discard(connection)
        if not members:
            self._by_session.pop(session_id, None)
            return session_id, 0
        return session_id, len(members)

    def session_of(self, connection: Connection) -> str | None:
        return self._by_connection.get(connection)

    def connections(self, session_id: str) -> list[Connection]:
        """Snapshot of the connections currently in ``session_id``."""
        return list(self._by_session.get(session_id, ()))

    def sessions(self) -> list[str]:
        return list(self._by_session)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._by_session

    def __len__(self) -> int:
        """Total number of registered connections."""
        return len(self._by_connection)
