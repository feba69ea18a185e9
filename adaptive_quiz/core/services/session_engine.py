"""Service driving the lifecycle of adaptive quiz sessions."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
import logging
from uuid import uuid4

from adaptive_quiz.core.difficulty_policy import INITIAL_DIFFICULTY, fallback_order, next_difficulty
from adaptive_quiz.core.engine_settings import EngineSettings
from adaptive_quiz.core.errors import (
    InvalidArgument,
    NoQuestionsAvailable,
    QuestionMismatch,
    SessionAlreadyComplete,
    SessionNotFound,
)
from adaptive_quiz.core.models import (
    AnswerOutcome,
    Difficulty,
    LiveQuestion,
    Question,
    QuizResult,
    QuizSession,
    SessionView,
)
from adaptive_quiz.core.services.question_bank import QuestionBank
from adaptive_quiz.core.services.repository_guard import repository_call
from adaptive_quiz.core.services.result_compiler import ResultCompiler
from adaptive_quiz.core.services.session_repository import SessionRepository
from adaptive_quiz.utils.keyed_locks import KeyedLocks
from adaptive_quiz.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


def _new_session_id() -> str:
    return uuid4().hex


class SessionEngine:
    """Starts sessions, validates answers, adapts difficulty and detects completion.

    Every mutation of a session runs under a lock scoped to its id and is
    persisted before the call returns.
    """

    def __init__(
        self,
        question_bank: QuestionBank,
        session_repository: SessionRepository,
        result_compiler: ResultCompiler,
        settings: EngineSettings | None = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = _new_session_id,
        session_locks: KeyedLocks | None = None,
    ) -> None:
        self._bank = question_bank
        self._sessions = session_repository
        self._compiler = result_compiler
        self._settings = settings or EngineSettings()
        self._clock = clock
        self._id_factory = id_factory
        self._session_locks = session_locks if session_locks is not None else KeyedLocks()

    def start_session(self, user_id: str, total_questions: int) -> SessionView:
        if not self._settings.min_questions <= total_questions <= self._settings.max_questions:
            raise InvalidArgument(
                f"Question count must be between {self._settings.min_questions} "
                f"and {self._settings.max_questions}."
            )

        first_question = self._draw_question(INITIAL_DIFFICULTY, set())
        session = QuizSession(
            id=self._id_factory(),
            user_id=user_id,
            total_questions=total_questions,
            started_at=self._clock(),
            current_difficulty=INITIAL_DIFFICULTY,
        )
        session.questions.append(first_question)
        with repository_call("session save"):
            self._sessions.save(session)

        logger.info(
            "Started session %s for user %s with %d questions",
            session.id,
            user_id,
            total_questions,
        )
        return SessionView.from_session(session)

    def submit_answer(
        self,
        user_id: str,
        session_id: str,
        question_id: str,
        answer_index: int,
    ) -> AnswerOutcome:
        # Unknown ids never reach the lock registry.
        self._load_owned(user_id, session_id)
        with self._session_locks.hold(session_id):
            session = self._load_owned(user_id, session_id)
            if session.is_complete:
                raise SessionAlreadyComplete(f"Session {session_id} is already complete.")

            question = session.current_question
            if question is None or question.id != question_id:
                raise QuestionMismatch(
                    f"Question {question_id} is not the current question of session {session_id}."
                )
            if not 0 <= answer_index < len(question.options):
                raise InvalidArgument(
                    f"Answer index must be between 0 and {len(question.options) - 1}."
                )

            is_correct = question.is_correct(answer_index)
            new_difficulty = next_difficulty(session.current_difficulty, is_correct)
            finishes = session.cursor + 1 == session.total_questions

            # Drawn before any mutation so an exhausted bank leaves the session as it was.
            next_question = None
            if not finishes:
                next_question = self._draw_question(new_difficulty, session.presented_ids)

            session.record_answer(question.id, answer_index)
            session.current_difficulty = new_difficulty
            session.cursor += 1
            if next_question is not None:
                session.questions.append(next_question)
            else:
                session.ended_at = self._clock()

            # Stats before the session save; compile is idempotent per session id.
            result: QuizResult | None = None
            if session.is_complete:
                result = self._compiler.compile(session)

            with repository_call("session save"):
                self._sessions.save(session)

            logger.debug(
                "Session %s answered %s (%s), difficulty now %s",
                session_id,
                question_id,
                "correct" if is_correct else "wrong",
                new_difficulty.value,
            )
            if result is not None:
                logger.info(
                    "Session %s complete: %d/%d (%.1f%%)",
                    session_id,
                    result.correct_answers,
                    result.total_questions,
                    result.percentage,
                )

        return AnswerOutcome(
            session_id=session.id,
            question_id=question.id,
            is_correct=is_correct,
            correct_option_index=question.correct_option_index,
            explanation=question.explanation,
            score=session.correct_count,
            current_difficulty=session.current_difficulty,
            question_number=min(session.cursor + 1, session.total_questions),
            total_questions=session.total_questions,
            is_complete=session.is_complete,
            next_question=LiveQuestion.from_question(next_question) if next_question else None,
            result=result,
        )

    def get_session(self, user_id: str, session_id: str) -> SessionView:
        return SessionView.from_session(self._load_owned(user_id, session_id))

    def load_owned_session(self, user_id: str, session_id: str) -> QuizSession:
        """Return the stored session if ``user_id`` owns it."""
        return self._load_owned(user_id, session_id)

    def _load_owned(self, user_id: str, session_id: str) -> QuizSession:
        with repository_call("session load"):
            session = self._sessions.load(session_id)
        # Foreign sessions are indistinguishable from missing ones.
        if session is None or session.user_id != user_id:
            raise SessionNotFound(f"Session {session_id} not found.")
        return session

    def _draw_question(self, difficulty: Difficulty, exclude_ids: set[str]) -> Question:
        tiers = (
            fallback_order(difficulty)
            if self._settings.fallback_to_adjacent_difficulty
            else (difficulty,)
        )
        for tier in tiers:
            with repository_call("question bank fetch"):
                question = self._bank.fetch_one(tier, exclude_ids)
            if question is not None:
                if tier is not difficulty:
                    logger.warning(
                        "No %s questions left, falling back to %s",
                        difficulty.value,
                        tier.value,
                    )
                return question
        raise NoQuestionsAvailable(f"No unused {difficulty.value} questions available.")
