"""Shared test fixtures for the termdesk test suite.

Provides an in-memory Connection that records what the broker sends,
plus ready-made session state, broker and presence tracker instances.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from termdesk.broker.broker import SessionBroker
from termdesk.broker.connection import Connection, ConnectionClosedError
from termdesk.broker.registry import ConnectionRegistry
from termdesk.broker.store import SessionStore
from termdesk.presence.tracker import PresenceTracker
from termdesk.shell.state import SessionState


class RecordingConnection(Connection):
    """A Connection that keeps every payload it is sent."""

    def __init__(self, connection_id: str | None = None, fail: bool = False, delay: float = 0.0) -> None:
        super().__init__(connection_id)
        self.sent: list[dict[str, Any]] = []
        self.closed_with: int | None = None
        self.fail = fail
        self.delay = delay

    async def send(self, payload: dict[str, Any]) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail or self.closed_with is not None:
            raise ConnectionClosedError("boom", self.connection_id)
        self.sent.append(payload)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed_with = code

    @property
    def types(self) -> list[str]:
        return [p["type"] for p in self.sent]


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self) -> None:
        self.now = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


# ---------------------------------------------------------------------------
# Shell Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def state() -> SessionState:
    """A freshly seeded session state."""
    return SessionState.fresh()


# ---------------------------------------------------------------------------
# Broker Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def broker(registry: ConnectionRegistry, store: SessionStore) -> SessionBroker:
    return SessionBroker(registry=registry, store=store, send_timeout=0.5)


@pytest.fixture
def make_connection():
    """Factory for RecordingConnection instances."""

    def _make(**kwargs: Any) -> RecordingConnection:
        return RecordingConnection(**kwargs)

    return _make


# ---------------------------------------------------------------------------
# Presence Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tracker(clock: FakeClock) -> PresenceTracker:
    return PresenceTracker(stale_after=30.0, clock=clock)
