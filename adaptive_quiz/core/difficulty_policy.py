"""Rules for moving between difficulty tiers."""

from __future__ import annotations

from adaptive_quiz.core.models import Difficulty

INITIAL_DIFFICULTY = Difficulty.MEDIUM

_TIERS: tuple[Difficulty, ...] = (Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD)


def next_difficulty(current: Difficulty, was_correct: bool) -> Difficulty:
    """Step one tier up after a correct answer and one tier down after a wrong one."""
    step = 1 if was_correct else -1
    index = min(max(current.level + step, 0), len(_TIERS) - 1)
    return _TIERS[index]


def fallback_order(difficulty: Difficulty) -> tuple[Difficulty, ...]:
    """Return the tiers to try when ``difficulty`` is exhausted, nearest first.

    Equidistant tiers are tried easier first.
    """
    return tuple(
        sorted(_TIERS, key=lambda tier: (abs(tier.level - difficulty.level), tier.level))
    )
