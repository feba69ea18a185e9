"""Domain models for the adaptive quiz engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from adaptive_quiz.core.errors import QuestionMismatch


class Difficulty(str, Enum):
    """Closed, totally ordered set of difficulty tiers."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @property
    def level(self) -> int:
        return _DIFFICULTY_LEVELS[self]


_DIFFICULTY_LEVELS = {Difficulty.EASY: 0, Difficulty.MEDIUM: 1, Difficulty.HARD: 2}


class RankingMetric(str, Enum):
    """Score used to order the leaderboard."""

    BEST = "best"
    AVERAGE = "average"


@dataclass(frozen=True, slots=True)
class Question:
    """Multiple-choice question published by the question bank."""

    id: str
    text: str
    options: tuple[str, ...]
    correct_option_index: int
    difficulty: Difficulty
    category: str | None = None
    explanation: str | None = None

    def is_correct(self, option_index: int) -> bool:
        return option_index == self.correct_option_index


@dataclass(frozen=True, slots=True)
class LiveQuestion:
    """Client-safe view of a question: no correct index, no explanation."""

    id: str
    text: str
    options: tuple[str, ...]
    difficulty: Difficulty
    category: str | None = None

    @classmethod
    def from_question(cls, question: Question) -> "LiveQuestion":
        return cls(
            id=question.id,
            text=question.text,
            options=question.options,
            difficulty=question.difficulty,
            category=question.category,
        )


@dataclass(slots=True)
class QuizSession:
    """State of one user's attempt at an adaptive quiz."""

    id: str
    user_id: str
    total_questions: int
    started_at: datetime
    current_difficulty: Difficulty = Difficulty.MEDIUM
    cursor: int = 0
    questions: list[Question] = field(default_factory=list)
    # Insertion order is answer order.
    answers: dict[str, int] = field(default_factory=dict)
    ended_at: datetime | None = None

    @property
    def is_complete(self) -> bool:
        return self.cursor == self.total_questions

    @property
    def current_question(self) -> Question | None:
        if self.is_complete or self.cursor >= len(self.questions):
            return None
        return self.questions[self.cursor]

    @property
    def presented_ids(self) -> set[str]:
        return {question.id for question in self.questions}

    @property
    def correct_count(self) -> int:
        return sum(
            1
            for question in self.questions
            if question.id in self.answers and question.is_correct(self.answers[question.id])
        )

    @property
    def difficulty_progression(self) -> list[Difficulty]:
        return [question.difficulty for question in self.questions]

    def record_answer(self, question_id: str, option_index: int) -> None:
        """Append an answer; an already answered question is never overwritten."""
        if question_id in self.answers:
            raise QuestionMismatch(f"Question {question_id} has already been answered.")
        if question_id not in self.presented_ids:
            raise QuestionMismatch(f"Question {question_id} was not presented in this session.")
        self.answers[question_id] = option_index


@dataclass(frozen=True, slots=True)
class SessionView:
    """Live session snapshot returned to clients."""

    session_id: str
    user_id: str
    question: LiveQuestion | None
    question_number: int
    total_questions: int
    current_difficulty: Difficulty
    score: int
    is_complete: bool
    started_at: datetime
    ended_at: datetime | None = None

    @classmethod
    def from_session(cls, session: QuizSession) -> "SessionView":
        current = session.current_question
        return cls(
            session_id=session.id,
            user_id=session.user_id,
            question=LiveQuestion.from_question(current) if current else None,
            question_number=min(session.cursor + 1, session.total_questions),
            total_questions=session.total_questions,
            current_difficulty=session.current_difficulty,
            score=session.correct_count,
            is_complete=session.is_complete,
            started_at=session.started_at,
            ended_at=session.ended_at,
        )


@dataclass(frozen=True, slots=True)
class AnswerRecord:
    """A presented question joined with the user's answer."""

    question: Question
    user_answer: int | None
    is_correct: bool


@dataclass(frozen=True, slots=True)
class QuizResult:
    """Final report of a completed session."""

    session_id: str
    total_questions: int
    correct_answers: int
    score: int
    percentage: float
    duration_seconds: int
    difficulty_progression: list[Difficulty]
    answers: list[AnswerRecord]


@dataclass(frozen=True, slots=True)
class AnswerOutcome:
    """Result of a single answer submission."""

    session_id: str
    question_id: str
    is_correct: bool
    correct_option_index: int
    explanation: str | None
    score: int
    current_difficulty: Difficulty
    question_number: int
    total_questions: int
    is_complete: bool
    next_question: LiveQuestion | None = None
    result: QuizResult | None = None


@dataclass(slots=True)
class UserStats:
    """Aggregate statistics for one user, updated on every completed quiz."""

    user_id: str
    username: str = ""
    total_quizzes: int = 0
    best_score: float = 0.0
    best_achieved_at: datetime | None = None
    average_score: float = 0.0
    last_completed_at: datetime | None = None
    recent_scores: list[float] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.username or self.user_id


@dataclass(frozen=True, slots=True)
class ScoreRecord:
    """One completed quiz in a user's score history."""

    user_id: str
    session_id: str
    correct_answers: int
    total_questions: int
    percentage: float
    completed_at: datetime


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    """Ranked row derived from user statistics."""

    rank: int
    user_id: str
    username: str
    best_score: float
    average_score: float
    total_quizzes: int
    recent_scores: list[float]


@dataclass(frozen=True, slots=True)
class RankLookup:
    """Rank of a user for a metric; ``rank`` is None when the user is unranked."""

    user_id: str
    metric: RankingMetric
    rank: int | None

    @property
    def is_ranked(self) -> bool:
        return self.rank is not None


@dataclass(frozen=True, slots=True)
class Standings:
    """Leaderboard page and the caller's rank, computed from one snapshot."""

    metric: RankingMetric
    entries: list[LeaderboardEntry]
    rank: int | None
