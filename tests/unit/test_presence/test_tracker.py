"""Tests for the presence tracker."""

from __future__ import annotations

import asyncio

import pytest

from termdesk.domain.models import InvalidSessionIdError
from termdesk.presence.tracker import PresenceTracker, sanitize_name, sweep_stale


class TestSanitizeName:
    def test_escapes_markup(self) -> None:
        assert sanitize_name("<i>\"A\"&'B'</i>") == (
            "&lt;i&gt;&quot;A&quot;&amp;&#x27;B&#x27;&lt;/i&gt;"
        )

    def test_truncates_after_escaping(self) -> None:
        assert sanitize_name("a" * 80) == "a" * 50
        assert len(sanitize_name("<" * 30)) == 50

    def test_plain_name_unchanged(self) -> None:
        assert sanitize_name("ada-lovelace") == "ada-lovelace"


class TestRoster:
    def test_join_adds_member(self, tracker: PresenceTracker, clock) -> None:
        member = tracker.join("demo", "ada", "Ada")
        assert member.participant_id == "ada"
        assert member.display_name == "Ada"
        assert member.last_seen_at == clock.now
        assert tracker.roster("demo") == [member]

    def test_display_name_defaults_to_participant(self, tracker: PresenceTracker) -> None:
        assert tracker.join("demo", "ada").display_name == "ada"

    def test_heartbeat_overwrites_not_duplicates(self, tracker: PresenceTracker, clock) -> None:
        tracker.join("demo", "ada", "Ada")
        clock.advance(5)
        tracker.heartbeat("demo", "ada")
        roster = tracker.roster("demo")
        assert len(roster) == 1
        assert roster[0].last_seen_at == clock.now
        assert roster[0].display_name == "Ada"

    def test_leave_removes_member(self, tracker: PresenceTracker) -> None:
        tracker.join("demo", "ada")
        tracker.join("demo", "bob")
        assert tracker.leave("demo", "ada")
        assert [m.participant_id for m in tracker.roster("demo")] == ["bob"]
        assert not tracker.leave("demo", "ada")

    def test_last_leave_drops_session(self, tracker: PresenceTracker) -> None:
        tracker.join("demo", "ada")
        tracker.leave("demo", "ada")
        assert tracker.sessions() == []
        assert tracker.roster("demo") == []

    def test_sessions_isolated(self, tracker: PresenceTracker) -> None:
        tracker.join("one", "ada")
        tracker.join("two", "bob")
        assert [m.participant_id for m in tracker.roster("one")] == ["ada"]

    def test_participant_id_is_sanitized(self, tracker: PresenceTracker) -> None:
        member = tracker.join("demo", "<script>", "<img src=x>")
        assert member.participant_id == "&lt;script&gt;"
        assert member.display_name == "&lt;img src=x&gt;"
        assert tracker.leave("demo", "<script>")

    def test_invalid_session_rejected(self, tracker: PresenceTracker) -> None:
        with pytest.raises(InvalidSessionIdError):
            tracker.join("Not Valid", "ada")

    def test_empty_participant_rejected(self, tracker: PresenceTracker) -> None:
        with pytest.raises(ValueError, match="Participant ID"):
            tracker.join("demo", "")

    def test_roster_serializes_camel_case(self, tracker: PresenceTracker) -> None:
        member = tracker.join("demo", "ada", "Ada")
        data = member.model_dump(by_alias=True, mode="json")
        assert set(data) == {"participantId", "displayName", "lastSeenAt"}


class TestPruning:
    def test_prune_stale(self, tracker: PresenceTracker, clock) -> None:
        tracker.join("demo", "ada")
        clock.advance(20)
        tracker.join("demo", "bob")
        clock.advance(15)
        assert tracker.prune_stale() == 1
        assert [m.participant_id for m in tracker.roster("demo")] == ["bob"]

    def test_heartbeat_keeps_member_fresh(self, tracker: PresenceTracker, clock) -> None:
        tracker.join("demo", "ada")
        clock.advance(25)
        tracker.heartbeat("demo", "ada")
        clock.advance(25)
        assert tracker.prune_stale() == 0

    @pytest.mark.asyncio
    async def test_sweep_task_prunes_and_cancels(self, tracker: PresenceTracker, clock) -> None:
        tracker.join("demo", "ada")
        clock.advance(60)
        task = asyncio.create_task(sweep_stale(tracker, interval=0.01))
        await asyncio.sleep(0.05)
        task.cancel()
        await task
        assert tracker.roster("demo") == []


class TestSubscriptions:
    @pytest.mark.asyncio
    async def test_subscribe_receives_current_snapshot(self, tracker: PresenceTracker) -> None:
        tracker.join("demo", "ada")
        sub = tracker.subscribe("demo")
        snapshot = await asyncio.wait_for(sub.get(), timeout=1)
        assert [m.participant_id for m in snapshot] == ["ada"]

    @pytest.mark.asyncio
    async def test_membership_changes_push_full_snapshot(self, tracker: PresenceTracker) -> None:
        sub = tracker.subscribe("demo")
        assert await sub.get() == []
        tracker.join("demo", "ada")
        assert [m.participant_id for m in await sub.get()] == ["ada"]
        tracker.join("demo", "bob")
        assert [m.participant_id for m in await sub.get()] == ["ada", "bob"]
        tracker.leave("demo", "ada")
        assert [m.participant_id for m in await sub.get()] == ["bob"]

    @pytest.mark.asyncio
    async def test_plain_heartbeat_does_not_push(self, tracker: PresenceTracker) -> None:
        tracker.join("demo", "ada")
        sub = tracker.subscribe("demo")
        await sub.get()
        tracker.heartbeat("demo", "ada")
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(sub.get(), timeout=0.05)

    @pytest.mark.asyncio
    async def test_slow_subscriber_only_keeps_latest(self, tracker: PresenceTracker) -> None:
        sub = tracker.subscribe("demo")
        tracker.join("demo", "ada")
        tracker.join("demo", "bob")
        assert [m.participant_id for m in await sub.get()] == ["ada", "bob"]

    @pytest.mark.asyncio
    async def test_other_sessions_not_notified(self, tracker: PresenceTracker) -> None:
        sub = tracker.subscribe("demo")
        await sub.get()
        tracker.join("elsewhere", "ada")
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(sub.get(), timeout=0.05)

    def test_close_unsubscribes(self, tracker: PresenceTracker) -> None:
        sub = tracker.subscribe("demo")
        sub.close()
        sub.close()
        tracker.join("demo", "ada")
        assert tracker._subscribers == {}
