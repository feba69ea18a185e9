"""Service providing questions to quiz sessions, grouped by difficulty."""

from __future__ import annotations

from collections.abc import Iterable
import random
from threading import Lock
from typing import Protocol

from adaptive_quiz.core.models import Difficulty, Question


class QuestionBank(Protocol):
    """Read-only source of questions."""

    def fetch_one(self, difficulty: Difficulty, exclude_ids: set[str]) -> Question | None:
        """Return an unused question at ``difficulty`` or None when exhausted."""
        ...


class InMemoryQuestionBank:
    """Validated, immutable question collection held in memory."""

    def __init__(self, questions: Iterable[Question] = (), seed: int | None = None) -> None:
        self._by_difficulty: dict[Difficulty, list[Question]] = {tier: [] for tier in Difficulty}
        self._ids: set[str] = set()
        self._lock = Lock()
        self._rng = random.Random(seed)
        for question in questions:
            self.add_question(question)

    def add_question(self, question: Question) -> None:
        prepared = self._prepare_question(question)
        with self._lock:
            if prepared.id in self._ids:
                raise ValueError(f"Duplicate question id {prepared.id!r}.")
            self._ids.add(prepared.id)
            self._by_difficulty[prepared.difficulty].append(prepared)

    def fetch_one(self, difficulty: Difficulty, exclude_ids: set[str]) -> Question | None:
        with self._lock:
            candidates = [q for q in self._by_difficulty[difficulty] if q.id not in exclude_ids]
            if not candidates:
                return None
            return self._rng.choice(candidates)

    def get_question_count(self, difficulty: Difficulty | None = None) -> int:
        with self._lock:
            if difficulty is not None:
                return len(self._by_difficulty[difficulty])
            return len(self._ids)

    def _prepare_question(self, question: Question) -> Question:
        """Validate and normalize a question before publishing it."""
        options = self._validate_options(question.options)
        if not 0 <= question.correct_option_index < len(options):
            raise ValueError(
                f"Correct option index must be between 0 and {len(options) - 1}."
            )

        cleaned_text = question.text.strip()
        if not cleaned_text:
            raise ValueError("Question text must not be empty.")
        cleaned_id = question.id.strip()
        if not cleaned_id:
            raise ValueError("Question id must not be empty.")

        return Question(
            id=cleaned_id,
            text=cleaned_text,
            options=options,
            correct_option_index=question.correct_option_index,
            difficulty=Difficulty(question.difficulty),
            category=(question.category or "").strip() or None,
            explanation=(question.explanation or "").strip() or None,
        )

    @staticmethod
    def _validate_options(options: Iterable[str]) -> tuple[str, ...]:
        cleaned = tuple(option.strip() for option in options)
        if len(cleaned) < 2:
            raise ValueError("Each question must have at least two options.")
        if any(not option for option in cleaned):
            raise ValueError("Option text cannot be empty.")
        return cleaned
