"""Service that turns completed sessions into results and user statistics."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
import logging

from adaptive_quiz.core.engine_settings import EngineSettings
from adaptive_quiz.core.errors import SessionNotComplete
from adaptive_quiz.core.models import AnswerRecord, QuizResult, QuizSession, ScoreRecord, UserStats
from adaptive_quiz.core.services.repository_guard import repository_call
from adaptive_quiz.core.services.user_stats_repository import UserStatsRepository
from adaptive_quiz.utils.keyed_locks import KeyedLocks
from adaptive_quiz.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class ResultCompiler:
    """Builds quiz reports and folds final scores into user statistics."""

    def __init__(
        self,
        stats_repository: UserStatsRepository,
        settings: EngineSettings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._stats = stats_repository
        self._settings = settings or EngineSettings()
        self._clock = clock
        self._user_locks = KeyedLocks()

    def build(self, session: QuizSession) -> QuizResult:
        """Derive the report of a completed session without side effects."""
        if not session.is_complete or session.ended_at is None:
            raise SessionNotComplete(f"Session {session.id} is not complete.")

        records: list[AnswerRecord] = []
        for question in session.questions:
            user_answer = session.answers.get(question.id)
            records.append(
                AnswerRecord(
                    question=question,
                    user_answer=user_answer,
                    is_correct=user_answer is not None and question.is_correct(user_answer),
                )
            )

        correct = sum(1 for record in records if record.is_correct)
        percentage = round(100 * correct / session.total_questions, 1)
        duration = int((session.ended_at - session.started_at).total_seconds())
        return QuizResult(
            session_id=session.id,
            total_questions=session.total_questions,
            correct_answers=correct,
            score=correct,
            percentage=percentage,
            duration_seconds=max(duration, 0),
            difficulty_progression=session.difficulty_progression,
            answers=records,
        )

    def compile(self, session: QuizSession) -> QuizResult:
        """Build the report and record the final percentage for the session owner.

        The score history is keyed by session id and the aggregates are rebuilt
        from it, so compiling the same session again replaces its record
        instead of counting it twice.
        """
        result = self.build(session)
        completed_at = session.ended_at or self._clock()
        record = ScoreRecord(
            user_id=session.user_id,
            session_id=session.id,
            correct_answers=result.correct_answers,
            total_questions=result.total_questions,
            percentage=result.percentage,
            completed_at=completed_at,
        )
        with self._user_locks.hold(session.user_id):
            with repository_call("score history save"):
                self._stats.add_score(record)
            with repository_call("user stats load"):
                stored = self._stats.load(session.user_id)
                history = self._stats.list_scores(session.user_id)
            stats = self.rebuild(stored, history)
            with repository_call("user stats save"):
                self._stats.save(stats)
        logger.info(
            "Recorded %.1f%% for user %s (quizzes=%d, best=%.1f)",
            result.percentage,
            session.user_id,
            stats.total_quizzes,
            stats.best_score,
        )
        return result

    def rebuild(self, stored: UserStats, history: list[ScoreRecord]) -> UserStats:
        """Recompute aggregates from ``history`` (oldest first), keeping the username."""
        stats = UserStats(user_id=stored.user_id, username=stored.username)
        for record in history:
            self.apply_score(stats, record.percentage, record.completed_at)
        return stats

    def update_username(self, user_id: str, username: str) -> None:
        """Store the display name shown for ``user_id`` on the leaderboard."""
        cleaned = username.strip()
        if not cleaned:
            return
        with self._user_locks.hold(user_id):
            with repository_call("user stats load"):
                stats = self._stats.load(user_id)
            if stats.username == cleaned:
                return
            stats.username = cleaned
            with repository_call("user stats save"):
                self._stats.save(stats)

    def apply_score(self, stats: UserStats, percentage: float, completed_at: datetime) -> None:
        """Fold one completed quiz into ``stats`` in place."""
        previous_count = stats.total_quizzes
        stats.average_score = (stats.average_score * previous_count + percentage) / (previous_count + 1)
        stats.total_quizzes = previous_count + 1
        if previous_count == 0 or percentage > stats.best_score:
            stats.best_score = percentage
            stats.best_achieved_at = completed_at
        stats.last_completed_at = completed_at
        stats.recent_scores.append(percentage)
        overflow = len(stats.recent_scores) - self._settings.recent_scores_capacity
        if overflow > 0:
            del stats.recent_scores[:overflow]
