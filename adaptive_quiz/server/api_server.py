"""FastAPI server that exposes the quiz engine to clients."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from pydantic import BaseModel, Field
import uvicorn

from adaptive_quiz.constants.about import APP_DESCRIPTION, APP_NAME, APP_VERSION
from adaptive_quiz.constants.network_constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    USER_ID_HEADER,
    USERNAME_HEADER,
)
from adaptive_quiz.constants.quiz_constants import (
    DEFAULT_LEADERBOARD_LIMIT,
    DEFAULT_QUESTIONS_PER_SESSION,
)
from adaptive_quiz.core.errors import (
    InvalidArgument,
    NoQuestionsAvailable,
    QuestionMismatch,
    QuizEngineError,
    RepositoryUnavailable,
    SessionAlreadyComplete,
    SessionNotComplete,
    SessionNotFound,
)
from adaptive_quiz.core.markdown_math_renderer import renderer
from adaptive_quiz.core.models import (
    AnswerOutcome,
    AnswerRecord,
    LeaderboardEntry,
    LiveQuestion,
    Question,
    QuizResult,
    RankingMetric,
    ScoreRecord,
    SessionView,
)
from adaptive_quiz.core.quiz_manager import QuizManager

logger = logging.getLogger(__name__)

_UNRANKED = -1

_STATUS_BY_ERROR: dict[type[QuizEngineError], int] = {
    InvalidArgument: 422,
    SessionNotFound: 404,
    SessionAlreadyComplete: 409,
    SessionNotComplete: 409,
    QuestionMismatch: 409,
    NoQuestionsAvailable: 409,
    RepositoryUnavailable: 503,
}


def _http_error(exc: QuizEngineError) -> HTTPException:
    status_code = next(
        (status for error_type, status in _STATUS_BY_ERROR.items() if isinstance(exc, error_type)),
        400,
    )
    return HTTPException(status_code=status_code, detail=str(exc))


class StartPayload(BaseModel):
    """Payload schema for starting a session."""

    total_questions: int = DEFAULT_QUESTIONS_PER_SESSION


class AnswerPayload(BaseModel):
    """Payload schema for submitted answers."""

    question_id: str = Field(min_length=1)
    answer_index: int


@dataclass(slots=True)
class Caller:
    """Identity supplied by the authentication layer in front of the API."""

    user_id: str
    username: str | None = None


def _get_caller(
    x_user_id: str | None = Header(default=None, alias=USER_ID_HEADER),
    x_username: str | None = Header(default=None, alias=USERNAME_HEADER),
) -> Caller:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail=f"Missing {USER_ID_HEADER} header.")
    return Caller(user_id=x_user_id.strip(), username=x_username)


def _serialize_live_question(question: LiveQuestion | None) -> dict[str, object] | None:
    if question is None:
        return None
    return {
        "id": question.id,
        "text": question.text,
        "question_html": renderer.render_fragment(question.text),
        "options": list(question.options),
        "difficulty": question.difficulty.value,
        "category": question.category,
    }


def _serialize_question(question: Question) -> dict[str, object]:
    return {
        "id": question.id,
        "text": question.text,
        "options": list(question.options),
        "correct_answer": question.correct_option_index,
        "difficulty": question.difficulty.value,
        "category": question.category,
        "explanation": question.explanation,
    }


def _serialize_session(view: SessionView) -> dict[str, object]:
    return {
        "session_id": view.session_id,
        "question": _serialize_live_question(view.question),
        "current_question": view.question_number,
        "total_questions": view.total_questions,
        "current_difficulty": view.current_difficulty.value,
        "score": view.score,
        "is_complete": view.is_complete,
        "started_at": view.started_at.isoformat(),
        "ended_at": view.ended_at.isoformat() if view.ended_at else None,
    }


def _serialize_answer_record(record: AnswerRecord) -> dict[str, object]:
    return {
        "question": _serialize_question(record.question),
        "user_answer": record.user_answer,
        "is_correct": record.is_correct,
    }


def _serialize_result(result: QuizResult) -> dict[str, object]:
    return {
        "session_id": result.session_id,
        "total_questions": result.total_questions,
        "correct_answers": result.correct_answers,
        "score": result.score,
        "percentage": result.percentage,
        "duration": result.duration_seconds,
        "difficulty_progression": [difficulty.value for difficulty in result.difficulty_progression],
        "questions": [_serialize_answer_record(record) for record in result.answers],
    }


def _serialize_outcome(outcome: AnswerOutcome) -> dict[str, object]:
    return {
        "is_correct": outcome.is_correct,
        "correct_answer": outcome.correct_option_index,
        "explanation": outcome.explanation,
        "score": outcome.score,
        "current_difficulty": outcome.current_difficulty.value,
        "current_question": outcome.question_number,
        "total_questions": outcome.total_questions,
        "is_complete": outcome.is_complete,
        "next_question": _serialize_live_question(outcome.next_question),
        "result": _serialize_result(outcome.result) if outcome.result else None,
    }


def _serialize_entry(entry: LeaderboardEntry) -> dict[str, object]:
    return {
        "rank": entry.rank,
        "user_id": entry.user_id,
        "username": entry.username,
        "best_score": entry.best_score,
        "average_score": entry.average_score,
        "total_quizzes": entry.total_quizzes,
        "recent_scores": entry.recent_scores,
    }


def _serialize_score(record: ScoreRecord) -> dict[str, object]:
    return {
        "session_id": record.session_id,
        "score": record.correct_answers,
        "total_questions": record.total_questions,
        "percentage": record.percentage,
        "completed_at": record.completed_at.isoformat(),
    }


def _get_quiz_manager_dependency(quiz_manager: QuizManager):
    def dependency() -> QuizManager:
        return quiz_manager

    return dependency


def create_api_app(quiz_manager: QuizManager) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz manager."""
    app = FastAPI(title=f"{APP_NAME} API", description=APP_DESCRIPTION, version=APP_VERSION)
    quiz_manager_dep = _get_quiz_manager_dependency(quiz_manager)

    def _identify(caller: Caller, manager: QuizManager) -> None:
        if caller.username:
            try:
                manager.register_user(caller.user_id, caller.username)
            except QuizEngineError as exc:
                raise _http_error(exc) from exc

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "message": f"{APP_NAME} API is running"}

    @app.post("/api/quiz/start", status_code=201)
    def start_quiz(
        payload: StartPayload,
        caller: Caller = Depends(_get_caller),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        _identify(caller, manager)
        try:
            view = manager.start_session(caller.user_id, payload.total_questions)
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return _serialize_session(view)

    @app.get("/api/quiz/history")
    def get_history(
        limit: int | None = Query(default=None),
        caller: Caller = Depends(_get_caller),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            history = manager.get_score_history(caller.user_id, limit)
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return {"scores": [_serialize_score(record) for record in history]}

    @app.get("/api/quiz/{session_id}")
    def get_session(
        session_id: str,
        caller: Caller = Depends(_get_caller),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            view = manager.get_session(caller.user_id, session_id)
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return _serialize_session(view)

    @app.post("/api/quiz/{session_id}/answer")
    def submit_answer(
        session_id: str,
        payload: AnswerPayload,
        caller: Caller = Depends(_get_caller),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            outcome = manager.submit_answer(
                caller.user_id,
                session_id,
                payload.question_id,
                payload.answer_index,
            )
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return _serialize_outcome(outcome)

    @app.get("/api/quiz/{session_id}/results")
    def get_results(
        session_id: str,
        caller: Caller = Depends(_get_caller),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            result = manager.get_result(caller.user_id, session_id)
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return _serialize_result(result)

    def _leaderboard(manager: QuizManager, metric: RankingMetric, limit: int) -> dict[str, object]:
        try:
            entries = manager.get_leaderboard(metric, limit)
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return {"metric": metric.value, "leaderboard": [_serialize_entry(e) for e in entries]}

    @app.get("/api/leaderboard/best")
    def leaderboard_best(
        limit: int = Query(default=DEFAULT_LEADERBOARD_LIMIT),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return _leaderboard(manager, RankingMetric.BEST, limit)

    @app.get("/api/leaderboard/average")
    def leaderboard_average(
        limit: int = Query(default=DEFAULT_LEADERBOARD_LIMIT),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return _leaderboard(manager, RankingMetric.AVERAGE, limit)

    @app.get("/api/leaderboard/rank")
    def leaderboard_rank(
        metric: RankingMetric = Query(default=RankingMetric.BEST),
        caller: Caller = Depends(_get_caller),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            lookup = manager.get_rank(caller.user_id, metric)
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return {
            "rank": lookup.rank if lookup.is_ranked else _UNRANKED,
            "metric": metric.value,
        }

    return app


def run_api_server(
    quiz_manager: QuizManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    log_level: str = "info",
) -> None:
    """Serve the API with uvicorn until the process is stopped."""
    app = create_api_app(quiz_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level=log_level)
    server = uvicorn.Server(config)
    logger.info("Serving %s on http://%s:%d/", APP_NAME, host, port)
    server.run()
