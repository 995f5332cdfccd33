"""Session -> interpreter state store."""

from __future__ import annotations

import logging

from termdesk.shell.state import SessionState, ShellProfile

logger = logging.getLogger(__name__)


class SessionStore:
    """Lazily created SessionState per session identifier."""

    def __init__(self, profile: ShellProfile | None = None) -> None:
        self._profile = profile or ShellProfile()
        self._states: dict[str, SessionState] = {}

    @property
    def profile(self) -> ShellProfile:
        return self._profile

    def get(self, session_id: str) -> SessionState | None:
        return self._states.get(session_id)

    def get_or_create(self, session_id: str) -> SessionState:
        state = self._states.get(session_id)
        if state is None:
            state = SessionState.fresh(self._profile)
            self._states[session_id] = state
            logger.info("Initialized state for session %s", session_id)
        return state

    def discard(self, session_id: str, state: SessionState | None = None) -> bool:
        """Drop the state for ``session_id``.

        When ``state`` is given, only drop it if it is still the current
        state for the session. Returns True if something was removed.
        """
        current = self._states.get(session_id)
        if current is None or (state is not None and current is not state):
            return False
        del self._states[session_id]
        logger.info("Discarded state for session %s", session_id)
        return True

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._states

    def __len__(self) -> int:
        return len(self._states)
