"""Tests for the connection registry and session store."""

from __future__ import annotations

import pytest

from termdesk.broker.registry import ConnectionRegistry
from termdesk.broker.store import SessionStore


class TestConnectionRegistry:
    def test_add_and_list(self, registry: ConnectionRegistry, make_connection) -> None:
        a, b = make_connection(), make_connection()
        assert registry.add("s1", a) == 1
        assert registry.add("s1", b) == 2
        assert set(registry.connections("s1")) == {a, b}
        assert registry.session_of(a) == "s1"
        assert len(registry) == 2

    def test_add_is_idempotent(self, registry: ConnectionRegistry, make_connection) -> None:
        a = make_connection()
        registry.add("s1", a)
        assert registry.add("s1", a) == 1

    def test_connection_in_one_session_only(self, registry: ConnectionRegistry, make_connection) -> None:
        a = make_connection()
        registry.add("s1", a)
        with pytest.raises(ValueError, match="already belongs"):
            registry.add("s2", a)
        assert "s2" not in registry

    def test_remove_last_drops_session_key(self, registry: ConnectionRegistry, make_connection) -> None:
        a, b = make_connection(), make_connection()
        registry.add("s1", a)
        registry.add("s1", b)
        assert registry.remove(a) == ("s1", 1)
        assert "s1" in registry
        assert registry.remove(b) == ("s1", 0)
        assert "s1" not in registry
        assert registry.sessions() == []

    def test_remove_unknown(self, registry: ConnectionRegistry, make_connection) -> None:
        assert registry.remove(make_connection()) is None

    def test_sessions_are_isolated(self, registry: ConnectionRegistry, make_connection) -> None:
        a, b = make_connection(), make_connection()
        registry.add("s1", a)
        registry.add("s2", b)
        assert registry.connections("s1") == [a]
        assert registry.connections("s2") == [b]
        assert registry.connections("s3") == []


class TestSessionStore:
    def test_get_or_create_is_lazy_and_stable(self, store: SessionStore) -> None:
        assert store.get("s1") is None
        state = store.get_or_create("s1")
        assert store.get_or_create("s1") is state
        assert len(store) == 1

    def test_discard_only_matching_state(self, store: SessionStore) -> None:
        old = store.get_or_create("s1")
        store.discard("s1")
        new = store.get_or_create("s1")
        assert not store.discard("s1", old)
        assert store.get("s1") is new
        assert store.discard("s1", new)
        assert "s1" not in store
