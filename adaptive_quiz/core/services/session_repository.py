"""Storage for quiz sessions, keyed by session id."""

from __future__ import annotations

import copy
from threading import Lock
from typing import Protocol

from adaptive_quiz.core.models import QuizSession


class SessionRepository(Protocol):
    """One record per session."""

    def save(self, session: QuizSession) -> None: ...

    def load(self, session_id: str) -> QuizSession | None: ...


class InMemorySessionRepository:
    """Keeps private copies of sessions so callers never share mutable state."""

    def __init__(self) -> None:
        self._sessions: dict[str, QuizSession] = {}
        self._lock = Lock()

    def save(self, session: QuizSession) -> None:
        snapshot = copy.deepcopy(session)
        with self._lock:
            self._sessions[session.id] = snapshot

    def load(self, session_id: str) -> QuizSession | None:
        with self._lock:
            stored = self._sessions.get(session_id)
        return copy.deepcopy(stored) if stored is not None else None

    def get_session_count(self) -> int:
        with self._lock:
            return len(self._sessions)
