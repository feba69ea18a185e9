"""Tunable engine settings."""

from __future__ import annotations

from dataclasses import dataclass

from adaptive_quiz.constants.quiz_constants import (
    MAX_LEADERBOARD_LIMIT,
    MAX_QUESTIONS_PER_SESSION,
    MIN_QUESTIONS_PER_SESSION,
    RECENT_SCORES_CAPACITY,
)


@dataclass(frozen=True, slots=True)
class EngineSettings:
    """Settings shared by the session engine, result compiler and leaderboard."""

    min_questions: int = MIN_QUESTIONS_PER_SESSION
    max_questions: int = MAX_QUESTIONS_PER_SESSION
    # When the bank is exhausted at the requested tier, try the other tiers
    # nearest first instead of failing with NoQuestionsAvailable.
    fallback_to_adjacent_difficulty: bool = True
    recent_scores_capacity: int = RECENT_SCORES_CAPACITY
    max_leaderboard_limit: int = MAX_LEADERBOARD_LIMIT
