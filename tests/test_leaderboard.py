"""Tests for leaderboard ordering, tie-breaking and rank lookups."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from adaptive_quiz.core.engine_settings import EngineSettings
from adaptive_quiz.core.errors import InvalidArgument, UserNotFound
from adaptive_quiz.core.models import RankingMetric, UserStats
from adaptive_quiz.core.services.leaderboard import Leaderboard

from conftest import play_session

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _stats(
    user_id: str,
    best: float,
    average: float,
    best_at: datetime = T0,
    last_at: datetime = T0,
    quizzes: int = 3,
    username: str = "",
) -> UserStats:
    return UserStats(
        user_id=user_id,
        username=username,
        total_quizzes=quizzes,
        best_score=best,
        best_achieved_at=best_at,
        average_score=average,
        last_completed_at=last_at,
        recent_scores=[average],
    )


@pytest.fixture
def leaderboard(stats_repository):
    return Leaderboard(stats_repository)


@pytest.fixture
def population(stats_repository):
    for stats in (
        _stats("carol", 90.0, 60.0, best_at=T0 + timedelta(hours=2), username="Carol"),
        _stats("alice", 100.0, 70.0),
        _stats("bob", 90.0, 80.0, best_at=T0 + timedelta(hours=1)),
        _stats("dave", 90.0, 65.0, best_at=T0 + timedelta(hours=1)),
        _stats("erin", 0.0, 0.0, quizzes=0, best_at=None, last_at=None),
    ):
        stats_repository.save(stats)


@pytest.mark.usefixtures("population")
class TestTopByBest:
    """Descending best score, earlier achievement first, then user id."""

    def test_ordering_and_tie_breaks(self, leaderboard):
        entries = leaderboard.top_by_best(10)

        assert [entry.user_id for entry in entries] == ["alice", "bob", "dave", "carol"]
        assert [entry.rank for entry in entries] == [1, 2, 3, 4]

    def test_users_without_quizzes_are_excluded(self, leaderboard):
        assert "erin" not in {entry.user_id for entry in leaderboard.top_by_best(10)}

    def test_limit_truncates_without_changing_ranks(self, leaderboard):
        entries = leaderboard.top_by_best(2)

        assert [(entry.rank, entry.user_id) for entry in entries] == [(1, "alice"), (2, "bob")]

    def test_repeated_calls_are_stable(self, leaderboard):
        assert leaderboard.top_by_best(10) == leaderboard.top_by_best(10)

    def test_entry_fields(self, leaderboard):
        carol = leaderboard.top_by_best(10)[-1]

        assert carol.username == "Carol"
        assert carol.best_score == 90.0
        assert carol.average_score == 60.0
        assert carol.total_quizzes == 3
        assert carol.recent_scores == [60.0]

    def test_username_defaults_to_user_id(self, leaderboard):
        assert leaderboard.top_by_best(1)[0].username == "alice"

    @pytest.mark.parametrize("limit", [0, -3])
    def test_rejects_non_positive_limit(self, leaderboard, limit):
        with pytest.raises(InvalidArgument):
            leaderboard.top_by_best(limit)

    def test_limit_is_clamped(self, stats_repository):
        leaderboard = Leaderboard(stats_repository, EngineSettings(max_leaderboard_limit=2))

        assert len(leaderboard.top_by_best(50)) == 2


@pytest.mark.usefixtures("population")
class TestTopByAverage:
    """Average ranking uses the time of the latest quiz as achievement time."""

    def test_ordering(self, leaderboard):
        entries = leaderboard.top_by_average(10)

        assert [entry.user_id for entry in entries] == ["bob", "alice", "dave", "carol"]

    def test_average_ties_prefer_earlier_last_quiz(self, stats_repository, leaderboard):
        stats_repository.save(_stats("zed", 50.0, 80.0, last_at=T0 - timedelta(days=1)))

        entries = leaderboard.top_by_average(2)

        assert [entry.user_id for entry in entries] == ["zed", "bob"]

    def test_ties_use_the_displayed_rounded_average(self, stats_repository, leaderboard):
        stats_repository.save(_stats("ann", 50.0, 66.66, last_at=T0 + timedelta(hours=1)))
        stats_repository.save(_stats("ben", 50.0, 66.7, last_at=T0 + timedelta(hours=2)))

        entries = [e for e in leaderboard.top_by_average(10) if e.user_id in {"ann", "ben"}]

        assert [(e.user_id, e.average_score) for e in entries] == [("ann", 66.7), ("ben", 66.7)]


@pytest.mark.usefixtures("population")
class TestRankOf:
    """Rank lookups agree with the full ordering."""

    @pytest.mark.parametrize("metric", list(RankingMetric))
    def test_rank_matches_position_in_top(self, leaderboard, metric):
        entries = leaderboard.top(metric, 10)

        for position, entry in enumerate(entries, start=1):
            assert leaderboard.rank_of(entry.user_id, metric) == position

    def test_rank_is_independent_of_page_size(self, leaderboard):
        assert leaderboard.top_by_best(1)[0].user_id == "alice"
        assert leaderboard.rank_of("carol", RankingMetric.BEST) == 4

    def test_user_without_quizzes_is_unranked(self, leaderboard):
        with pytest.raises(UserNotFound):
            leaderboard.rank_of("erin", RankingMetric.BEST)
        with pytest.raises(UserNotFound):
            leaderboard.rank_of("nobody", RankingMetric.AVERAGE)

    def test_standings_share_one_snapshot(self, leaderboard):
        standings = leaderboard.standings(RankingMetric.BEST, 2, "dave")

        assert [entry.user_id for entry in standings.entries] == ["alice", "bob"]
        assert standings.rank == 3

    def test_standings_for_unranked_user(self, leaderboard):
        assert leaderboard.standings(RankingMetric.AVERAGE, 5, "erin").rank is None


class TestLeaderboardThroughManager:
    """Completed sessions feed the leaderboard."""

    def test_rank_of_new_user_is_sentinel(self, manager):
        lookup = manager.get_rank("newcomer", RankingMetric.BEST)

        assert lookup.rank is None
        assert not lookup.is_ranked

    def test_completed_sessions_are_ranked(self, manager, answer_key, clock):
        play_session(manager, answer_key, "u1", [True, False, False, False])
        clock.advance(60)
        play_session(manager, answer_key, "u2", [True, True, True, False])
        clock.advance(60)
        play_session(manager, answer_key, "u3", [True, True, True, False])
        manager.register_user("u3", "Grace")

        entries = manager.get_leaderboard(RankingMetric.BEST, 10)

        assert [(entry.user_id, entry.best_score) for entry in entries] == [
            ("u2", 75.0),
            ("u3", 75.0),
            ("u1", 25.0),
        ]
        assert entries[1].username == "Grace"
        assert manager.get_rank("u3", RankingMetric.BEST).rank == 2

    def test_standings_include_callers_rank(self, manager, answer_key):
        play_session(manager, answer_key, "u1", [True, True])
        play_session(manager, answer_key, "u2", [False, False])

        standings = manager.get_standings("u2", RankingMetric.AVERAGE, limit=1)

        assert [entry.user_id for entry in standings.entries] == ["u1"]
        assert standings.rank == 2
