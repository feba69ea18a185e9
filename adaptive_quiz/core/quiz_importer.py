"""Utilities for importing a question bank from a human-friendly text file.

File format (repeat blocks separated by blank lines or '---'):

    Q: Question text (supports markdown). Additional lines until the next
       marker are treated as part of the question.
    A: First option text
    B: Second option text
    C: Third option text        (two to six options, A-F, starting at A)
    CORRECT: A|B|C|...
    DIFFICULTY: easy|medium|hard   (optional, defaults to medium)
    CATEGORY: text                 (optional)
    EXPLANATION: text              (optional, may continue on following lines)
    ID: text                       (optional, defaults to q-<block number>)

Example:

    Q: What is $2 + 2$?
    A: 3
    B: 4
    C: 5
    CORRECT: B
    DIFFICULTY: easy
    CATEGORY: Arithmetic
    EXPLANATION: Two plus two is four.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from adaptive_quiz.core.models import Difficulty, Question


class QuizImportError(Exception):
    """Raised when a question bank definition cannot be parsed."""


@dataclass(slots=True)
class ImportedQuestionBank:
    """Container for imported questions and where they came from."""

    source_path: Path
    questions: list[Question]


_OPTION_ORDER = ["A", "B", "C", "D", "E", "F"]
_SINGLE_LINE_KEYS = ("CORRECT", "DIFFICULTY", "CATEGORY", "ID")


def load_question_bank(file_path: Path) -> ImportedQuestionBank:
    text = file_path.read_text(encoding="utf-8")
    questions = parse_question_bank(text)
    if not questions:
        raise QuizImportError("Question bank file did not contain any questions.")
    return ImportedQuestionBank(source_path=file_path, questions=questions)


def parse_question_bank(text: str) -> list[Question]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---":
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        if stripped:
            current_block.append(raw_line)
        elif current_block:
            # Blank line encountered after content - finalize current block
            blocks.append("\n".join(current_block).strip())
            current_block = []
    if current_block:
        blocks.append("\n".join(current_block).strip())

    questions: list[Question] = []
    seen_ids: set[str] = set()
    for number, block in enumerate((b for b in blocks if b), start=1):
        try:
            question = _parse_block(block, number)
        except QuizImportError as exc:
            raise QuizImportError(f"Question {number}: {exc}") from exc
        if question.id in seen_ids:
            raise QuizImportError(f"Question {number}: Duplicate question id '{question.id}'.")
        seen_ids.add(question.id)
        questions.append(question)
    return questions


def _parse_block(block: str, number: int) -> Question:
    question_lines: list[str] = []
    explanation_lines: list[str] = []
    options: dict[str, str] = {}
    fields: dict[str, str] = {}
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        upper = line.upper()
        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("EXPLANATION:"):
            explanation_lines = [line.split(":", 1)[1].strip()]
            current_section = "EXPLANATION"
            continue

        key = next((k for k in _SINGLE_LINE_KEYS if upper.startswith(f"{k}:")), None)
        if key is not None:
            fields[key] = line.split(":", 1)[1].strip()
            current_section = None
            continue

        if len(line) > 2 and line[0].upper() in _OPTION_ORDER and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section == "EXPLANATION":
            explanation_lines.append(line)
        elif current_section in _OPTION_ORDER:
            options[current_section] = options[current_section] + f"\n{line}"
        else:
            raise QuizImportError(
                f"Encountered text outside of a known section: '{line}'."
            )

    question_text = "\n".join(question_lines).strip()
    if not question_text:
        raise QuizImportError("Question text missing (Q: ...)")

    letters = _OPTION_ORDER[: len(options)]
    if len(options) < 2 or set(options) != set(letters):
        raise QuizImportError("Options must be contiguous letters starting at A (at least A and B).")
    option_list = [options[letter].strip() for letter in letters]
    if any(not opt for opt in option_list):
        raise QuizImportError("Option text cannot be empty.")

    correct_letter = fields.get("CORRECT", "").upper()
    if correct_letter not in letters:
        raise QuizImportError(f"CORRECT must be one of {', '.join(letters)}.")

    raw_difficulty = fields.get("DIFFICULTY", Difficulty.MEDIUM.value).lower()
    try:
        difficulty = Difficulty(raw_difficulty)
    except ValueError as exc:
        raise QuizImportError("DIFFICULTY must be easy, medium or hard.") from exc

    explanation = "\n".join(explanation_lines).strip()
    return Question(
        id=fields.get("ID") or f"q-{number}",
        text=question_text,
        options=tuple(option_list),
        correct_option_index=letters.index(correct_letter),
        difficulty=difficulty,
        category=fields.get("CATEGORY") or None,
        explanation=explanation or None,
    )
