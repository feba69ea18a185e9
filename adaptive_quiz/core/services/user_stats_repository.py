"""Storage for per-user aggregate statistics and score history."""

from __future__ import annotations

import copy
from threading import Lock
from typing import Protocol

from adaptive_quiz.core.models import ScoreRecord, UserStats


class UserStatsRepository(Protocol):
    """Aggregate stats per user plus an append-only score history."""

    def load(self, user_id: str) -> UserStats:
        """Return the stored stats, or a zero value when the user is unknown."""
        ...

    def save(self, stats: UserStats) -> None: ...

    def list_all(self) -> list[UserStats]:
        """Return a consistent snapshot of every stored user."""
        ...

    def add_score(self, record: ScoreRecord) -> None:
        """Append ``record``, replacing an earlier record of the same session in place."""
        ...

    def list_scores(self, user_id: str) -> list[ScoreRecord]:
        """Return the user's score history, oldest first."""
        ...


class InMemoryUserStatsRepository:
    """Dictionary-backed implementation used by the service and tests."""

    def __init__(self) -> None:
        self._stats: dict[str, UserStats] = {}
        self._scores: dict[str, list[ScoreRecord]] = {}
        self._lock = Lock()

    def load(self, user_id: str) -> UserStats:
        with self._lock:
            stored = self._stats.get(user_id)
        if stored is None:
            return UserStats(user_id=user_id)
        return copy.deepcopy(stored)

    def save(self, stats: UserStats) -> None:
        snapshot = copy.deepcopy(stats)
        with self._lock:
            self._stats[stats.user_id] = snapshot

    def list_all(self) -> list[UserStats]:
        with self._lock:
            return copy.deepcopy(list(self._stats.values()))

    def add_score(self, record: ScoreRecord) -> None:
        with self._lock:
            records = self._scores.setdefault(record.user_id, [])
            for position, existing in enumerate(records):
                if existing.session_id == record.session_id:
                    records[position] = record
                    break
            else:
                records.append(record)

    def list_scores(self, user_id: str) -> list[ScoreRecord]:
        with self._lock:
            return list(self._scores.get(user_id, []))
