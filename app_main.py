"""Application entry point for the adaptive quiz service."""

from __future__ import annotations

from pathlib import Path

from adaptive_quiz import config
from adaptive_quiz.core.quiz_importer import load_question_bank
from adaptive_quiz.core.quiz_manager import QuizManager
from adaptive_quiz.core.services.question_bank import InMemoryQuestionBank
from adaptive_quiz.server.api_server import run_api_server
from adaptive_quiz.utils.logging_config import configure_logging


def build_quiz_manager(question_bank_path: Path) -> QuizManager:
    """Load the question bank and wire the engine services together."""
    imported = load_question_bank(question_bank_path)
    bank = InMemoryQuestionBank(imported.questions)
    return QuizManager(bank, settings=config.engine_settings())


def main() -> None:
    """Initialize logging, load the question bank and serve the API."""
    logger = configure_logging(config.LOG_LEVEL)
    logger.info("Starting adaptive quiz service…")

    bank_path = config.QUESTION_BANK_PATH
    quiz_manager = build_quiz_manager(bank_path)
    logger.info("Loaded question bank from %s", bank_path)

    run_api_server(quiz_manager, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
