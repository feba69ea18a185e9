"""Business logic facade shared by the API and the application entry point."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from adaptive_quiz.constants.quiz_constants import DEFAULT_LEADERBOARD_LIMIT
from adaptive_quiz.core.engine_settings import EngineSettings
from adaptive_quiz.core.errors import InvalidArgument, UserNotFound
from adaptive_quiz.core.models import (
    AnswerOutcome,
    LeaderboardEntry,
    QuizResult,
    RankingMetric,
    RankLookup,
    ScoreRecord,
    SessionView,
    Standings,
)
from adaptive_quiz.core.services.leaderboard import Leaderboard
from adaptive_quiz.core.services.question_bank import QuestionBank
from adaptive_quiz.core.services.repository_guard import repository_call
from adaptive_quiz.core.services.result_compiler import ResultCompiler
from adaptive_quiz.core.services.session_engine import SessionEngine
from adaptive_quiz.core.services.session_repository import InMemorySessionRepository, SessionRepository
from adaptive_quiz.core.services.user_stats_repository import (
    InMemoryUserStatsRepository,
    UserStatsRepository,
)
from adaptive_quiz.utils.time_utils import utcnow


class QuizManager:
    """Facade for quiz services: SessionEngine, ResultCompiler and Leaderboard.

    Every operation takes the caller's user id explicitly; the manager keeps no
    notion of a logged-in user or an active session.
    """

    def __init__(
        self,
        question_bank: QuestionBank,
        session_repository: SessionRepository | None = None,
        stats_repository: UserStatsRepository | None = None,
        settings: EngineSettings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._settings = settings or EngineSettings()
        self._stats_repository = stats_repository or InMemoryUserStatsRepository()

        # Services
        self._compiler = ResultCompiler(self._stats_repository, self._settings, clock=clock)
        self._engine = SessionEngine(
            question_bank,
            session_repository or InMemorySessionRepository(),
            self._compiler,
            self._settings,
            clock=clock,
        )
        self._leaderboard = Leaderboard(self._stats_repository, self._settings)

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    # --- Identity ---

    def register_user(self, user_id: str, username: str) -> None:
        self._compiler.update_username(user_id, username)

    # --- Session Engine Delegation ---

    def start_session(self, user_id: str, total_questions: int) -> SessionView:
        return self._engine.start_session(user_id, total_questions)

    def submit_answer(
        self,
        user_id: str,
        session_id: str,
        question_id: str,
        answer_index: int,
    ) -> AnswerOutcome:
        return self._engine.submit_answer(user_id, session_id, question_id, answer_index)

    def get_session(self, user_id: str, session_id: str) -> SessionView:
        return self._engine.get_session(user_id, session_id)

    # --- Results ---

    def get_result(self, user_id: str, session_id: str) -> QuizResult:
        """Return the report of a completed session; statistics are not touched."""
        session = self._engine.load_owned_session(user_id, session_id)
        return self._compiler.build(session)

    def get_score_history(self, user_id: str, limit: int | None = None) -> list[ScoreRecord]:
        """Return the user's completed quizzes, newest first."""
        if limit is not None and limit < 1:
            raise InvalidArgument("History limit must be at least 1.")
        with repository_call("score history load"):
            history = list(reversed(self._stats_repository.list_scores(user_id)))
        return history[:limit] if limit is not None else history

    # --- Leaderboard Delegation ---

    def get_leaderboard(
        self,
        metric: RankingMetric,
        limit: int = DEFAULT_LEADERBOARD_LIMIT,
    ) -> list[LeaderboardEntry]:
        return self._leaderboard.top(metric, limit)

    def get_rank(self, user_id: str, metric: RankingMetric) -> RankLookup:
        try:
            rank: int | None = self._leaderboard.rank_of(user_id, metric)
        except UserNotFound:
            rank = None
        return RankLookup(user_id=user_id, metric=metric, rank=rank)

    def get_standings(
        self,
        user_id: str,
        metric: RankingMetric,
        limit: int = DEFAULT_LEADERBOARD_LIMIT,
    ) -> Standings:
        return self._leaderboard.standings(metric, limit, user_id)
