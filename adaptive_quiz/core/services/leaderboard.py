"""Service ranking users by their best or average quiz percentage."""

from __future__ import annotations

from datetime import datetime, timezone

from adaptive_quiz.core.engine_settings import EngineSettings
from adaptive_quiz.core.errors import InvalidArgument, UserNotFound
from adaptive_quiz.core.models import LeaderboardEntry, RankingMetric, Standings, UserStats
from adaptive_quiz.core.services.repository_guard import repository_call
from adaptive_quiz.core.services.user_stats_repository import UserStatsRepository

_NEVER = datetime.max.replace(tzinfo=timezone.utc)


def _sort_key(stats: UserStats, metric: RankingMetric) -> tuple[float, datetime, str]:
    if metric is RankingMetric.BEST:
        score, achieved_at = stats.best_score, stats.best_achieved_at
    else:
        # Ranked on the published one-decimal value.
        score, achieved_at = round(stats.average_score, 1), stats.last_completed_at
    return (-score, achieved_at or _NEVER, stats.user_id)


class Leaderboard:
    """Ranks every user with at least one completed quiz.

    The full ordering is recomputed from a snapshot of all user statistics on
    each call. Ties are broken by the earlier achievement time, then by user id.
    """

    def __init__(self, stats_repository: UserStatsRepository, settings: EngineSettings | None = None) -> None:
        self._stats = stats_repository
        self._settings = settings or EngineSettings()

    def top(self, metric: RankingMetric, limit: int) -> list[LeaderboardEntry]:
        limit = self._normalize_limit(limit)
        return self._to_entries(self._ranked(self._snapshot(), metric)[:limit])

    def top_by_best(self, limit: int) -> list[LeaderboardEntry]:
        return self.top(RankingMetric.BEST, limit)

    def top_by_average(self, limit: int) -> list[LeaderboardEntry]:
        return self.top(RankingMetric.AVERAGE, limit)

    def rank_of(self, user_id: str, metric: RankingMetric) -> int:
        """Return the 1-based position of ``user_id``; UserNotFound if unranked."""
        rank = self._find_rank(self._ranked(self._snapshot(), metric), user_id)
        if rank is None:
            raise UserNotFound(f"User {user_id} has no completed quizzes.")
        return rank

    def standings(self, metric: RankingMetric, limit: int, user_id: str) -> Standings:
        """Return a page and the caller's rank computed from the same snapshot."""
        limit = self._normalize_limit(limit)
        ranked = self._ranked(self._snapshot(), metric)
        return Standings(
            metric=metric,
            entries=self._to_entries(ranked[:limit]),
            rank=self._find_rank(ranked, user_id),
        )

    def _snapshot(self) -> list[UserStats]:
        with repository_call("user stats snapshot"):
            return self._stats.list_all()

    @staticmethod
    def _ranked(population: list[UserStats], metric: RankingMetric) -> list[UserStats]:
        eligible = [stats for stats in population if stats.total_quizzes > 0]
        return sorted(eligible, key=lambda stats: _sort_key(stats, metric))

    @staticmethod
    def _find_rank(ranked: list[UserStats], user_id: str) -> int | None:
        return next(
            (position for position, stats in enumerate(ranked, start=1) if stats.user_id == user_id),
            None,
        )

    @staticmethod
    def _to_entries(ranked: list[UserStats]) -> list[LeaderboardEntry]:
        return [
            LeaderboardEntry(
                rank=position,
                user_id=stats.user_id,
                username=stats.display_name,
                best_score=stats.best_score,
                average_score=round(stats.average_score, 1),
                total_quizzes=stats.total_quizzes,
                recent_scores=list(stats.recent_scores),
            )
            for position, stats in enumerate(ranked, start=1)
        ]

    def _normalize_limit(self, limit: int) -> int:
        if limit < 1:
            raise InvalidArgument("Leaderboard limit must be at least 1.")
        return min(limit, self._settings.max_leaderboard_limit)
