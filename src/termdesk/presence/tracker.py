"""Live roster of participants per session.

Presence runs on its own join/heartbeat/leave protocol and is
independent of whether a participant has a command stream open.
Subscribers receive a full roster snapshot whenever membership changes.
"""

from __future__ import annotations

import asyncio
import html
import logging
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Callable

from termdesk.domain.models import PresenceMember, validate_session_id

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 50


def sanitize_name(value: str, max_length: int = MAX_NAME_LENGTH) -> str:
    """HTML-escape ``value`` and truncate the escaped text to ``max_length``."""
    return html.escape(value, quote=True)[:max_length]


class PresenceSubscription:
    """Stream of roster snapshots for one session.

    Only the newest snapshot matters, so a slow reader never holds more
    than one pending snapshot.
    """

    def __init__(self, tracker: PresenceTracker, session_id: str) -> None:
        self._tracker = tracker
        self.session_id = session_id
        self._queue: asyncio.Queue[list[PresenceMember]] = asyncio.Queue(maxsize=1)
        self._closed = False

    def push(self, snapshot: list[PresenceMember]) -> None:
        if self._closed:
            return
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(snapshot)

    async def get(self) -> list[PresenceMember]:
        return await self._queue.get()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._tracker.unsubscribe(self)

    def __aiter__(self) -> AsyncIterator[list[PresenceMember]]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[list[PresenceMember]]:
        while not self._closed:
            yield await self.get()


class PresenceTracker:
    """session id -> {participant id -> PresenceMember}."""

    def __init__(
        self,
        stale_after: float = 30.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._stale_after = timedelta(seconds=stale_after)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._rosters: dict[str, dict[str, PresenceMember]] = {}
        self._subscribers: dict[str, set[PresenceSubscription]] = {}

    def heartbeat(
        self,
        session_id: str,
        participant_id: str,
        display_name: str | None = None,
    ) -> PresenceMember:
        """Upsert a participant's roster entry with the current time.

        A first heartbeat is a join. Subscribers are notified only when
        the membership or a display name changes.
        """
        validate_session_id(session_id)
        pid = sanitize_name(participant_id)
        if not pid:
            raise ValueError("Participant ID is required")
        roster = self._rosters.setdefault(session_id, {})
        previous = roster.get(pid)
        name = sanitize_name(display_name) if display_name else None
        if not name:
            name = previous.display_name if previous else pid

        member = PresenceMember(participant_id=pid, display_name=name, last_seen_at=self._clock())
        roster[pid] = member
        if previous is None:
            logger.info("Participant %s joined session %s", pid, session_id)
            self._notify(session_id)
        elif previous.display_name != name:
            self._notify(session_id)
        return member

    join = heartbeat

    def leave(self, session_id: str, participant_id: str) -> bool:
        """Remove a participant. Returns True if they were present."""
        roster = self._rosters.get(session_id)
        pid = sanitize_name(participant_id)
        if not roster or pid not in roster:
            return False
        del roster[pid]
        if not roster:
            del self._rosters[session_id]
        logger.info("Participant %s left session %s", pid, session_id)
        self._notify(session_id)
        return True

    def roster(self, session_id: str) -> list[PresenceMember]:
        """Current members of ``session_id`` in join order."""
        return list(self._rosters.get(session_id, {}).values())

    def sessions(self) -> list[str]:
        return list(self._rosters)

    def prune_stale(self) -> int:
        """Drop participants whose last heartbeat is older than ``stale_after``.

        Returns the number of participants removed.
        """
        cutoff = self._clock() - self._stale_after
        removed = 0
        for session_id in list(self._rosters):
            stale = [
                pid for pid, m in self._rosters[session_id].items() if m.last_seen_at < cutoff
            ]
            for pid in stale:
                logger.debug("Pruning stale participant %s from %s", pid, session_id)
                self.leave(session_id, pid)
            removed += len(stale)
        return removed

    def subscribe(self, session_id: str) -> PresenceSubscription:
        """Subscribe to roster snapshots; the current snapshot is queued at once."""
        subscription = PresenceSubscription(self, session_id)
        self._subscribers.setdefault(session_id, set()).add(subscription)
        subscription.push(self.roster(session_id))
        return subscription

    def unsubscribe(self, subscription: PresenceSubscription) -> None:
        subs = self._subscribers.get(subscription.session_id)
        if subs is None:
            return
        subs.discard(subscription)
        if not subs:
            del self._subscribers[subscription.session_id]

    def _notify(self, session_id: str) -> None:
        snapshot = self.roster(session_id)
        for subscription in list(self._subscribers.get(session_id, ())):
            subscription.push(snapshot)


async def sweep_stale(tracker: PresenceTracker, interval: float) -> None:
    """Background task pruning stale participants every ``interval`` seconds."""
    while True:
        try:
            await asyncio.sleep(interval)
            tracker.prune_stale()
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.warning("Presence sweep error: %s", e)
