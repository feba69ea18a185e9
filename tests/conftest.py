"""Shared fixtures for the adaptive quiz tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from adaptive_quiz.core.engine_settings import EngineSettings
from adaptive_quiz.core.models import Difficulty, Question
from adaptive_quiz.core.quiz_manager import QuizManager
from adaptive_quiz.core.services.question_bank import InMemoryQuestionBank
from adaptive_quiz.core.services.session_repository import InMemorySessionRepository
from adaptive_quiz.core.services.user_stats_repository import InMemoryUserStatsRepository


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_question(
    question_id: str,
    difficulty: Difficulty = Difficulty.MEDIUM,
    correct_option_index: int = 0,
    options: tuple[str, ...] = ("Alpha", "Bravo", "Charlie", "Delta"),
    explanation: str | None = None,
) -> Question:
    return Question(
        id=question_id,
        text=f"Question {question_id}?",
        options=options,
        correct_option_index=correct_option_index,
        difficulty=difficulty,
        category="General",
        explanation=explanation,
    )


def build_questions(per_tier: int) -> list[Question]:
    """``per_tier`` questions for every difficulty, correct option varying per question."""
    return [
        make_question(
            f"{tier.value}-{number}",
            difficulty=tier,
            correct_option_index=number % 4,
            explanation=f"Explanation for {tier.value}-{number}",
        )
        for tier in Difficulty
        for number in range(per_tier)
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def questions():
    return build_questions(per_tier=12)


@pytest.fixture
def answer_key(questions):
    """Map of question id to its correct option index."""
    return {question.id: question.correct_option_index for question in questions}


@pytest.fixture
def question_bank(questions):
    return InMemoryQuestionBank(questions, seed=7)


@pytest.fixture
def session_repository():
    return InMemorySessionRepository()


@pytest.fixture
def stats_repository():
    return InMemoryUserStatsRepository()


@pytest.fixture
def settings():
    return EngineSettings()


@pytest.fixture
def manager(question_bank, session_repository, stats_repository, settings, clock):
    return QuizManager(
        question_bank,
        session_repository=session_repository,
        stats_repository=stats_repository,
        settings=settings,
        clock=clock,
    )


def wrong_index(correct_index: int, option_count: int = 4) -> int:
    return (correct_index + 1) % option_count


def play_session(manager, answer_key, user_id, pattern, clock=None, seconds_per_answer=0):
    """Run a full session answering correctly where ``pattern`` is True."""
    view = manager.start_session(user_id, len(pattern))
    question = view.question
    outcome = None
    for is_correct in pattern:
        if clock is not None:
            clock.advance(seconds_per_answer)
        correct = answer_key[question.id]
        outcome = manager.submit_answer(
            user_id,
            view.session_id,
            question.id,
            correct if is_correct else wrong_index(correct),
        )
        question = outcome.next_question
    return view.session_id, outcome
