from typing import Dict, Optional

from .time_helper import TimeHelper
from ..models import SessionState


class SessionHelper:
    """Manages all non-persistent, in-memory conversation sessions for the cog, keyed by user id."""

    SESSION_TIMEOUT_MS: int = 30 * 60 * 1000

    def __init__(self, timeout_ms: int = SESSION_TIMEOUT_MS):
        self.timeout_ms = timeout_ms
        self._sessions: Dict[int, SessionState] = {}

    def get_session(self, user_id: int, now: Optional[int] = None) -> Optional[SessionState]:
        """
        Retrieves the active session for a user, if there is one.
        A session idle for longer than the timeout is dropped, so the next visit starts fresh.
        """

        session = self._sessions.get(user_id)
        if session is None:
            return None

        now = TimeHelper.get_current_timestamp_ms() if now is None else now
        if now - session.last_turn > self.timeout_ms:
            self.end_session(user_id)
            return None
        return session

    def start_session(self, user_id: int, now: Optional[int] = None) -> SessionState:
        """
        Opens a fresh session for a user, discarding any previous one.
        Session-scoped values never outlive the session.
        """
        session = SessionState(user_id=user_id, last_turn=TimeHelper.get_current_timestamp_ms() if now is None else now)
        self._sessions[user_id] = session
        return session

    @staticmethod
    def touch(session: SessionState, now: int):
        session.last_turn = now

    def end_session(self, user_id: int):
        """Removes a session from a specific user."""
        self._sessions.pop(user_id, None)

    def active_count(self) -> int:
        return len(self._sessions)

    def clear_all_sessions(self):
        """Removes all active sessions. To be used on cog unload."""
        self._sessions.clear()
