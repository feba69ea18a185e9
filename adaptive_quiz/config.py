"""Runtime configuration read from the environment (and an optional .env file)."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from adaptive_quiz.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from adaptive_quiz.core.engine_settings import EngineSettings

_DEFAULT_QUESTION_BANK_PATH = Path(__file__).resolve().parent / "data" / "questions.txt"

load_dotenv()

logger = logging.getLogger(__name__)

HOST = os.getenv("ADAPTIVE_QUIZ_HOST", DEFAULT_HOST)
QUESTION_BANK_PATH = Path(os.getenv("ADAPTIVE_QUIZ_QUESTION_BANK", str(_DEFAULT_QUESTION_BANK_PATH)))
LOG_LEVEL = os.getenv("ADAPTIVE_QUIZ_LOG_LEVEL", "INFO").upper()

_port_raw = os.getenv("ADAPTIVE_QUIZ_PORT", "")
if _port_raw.strip().isdigit():
    PORT = int(_port_raw.strip())
else:
    PORT = DEFAULT_PORT
    if _port_raw.strip():
        logger.warning("ADAPTIVE_QUIZ_PORT is not a valid number: %r, using %d", _port_raw, DEFAULT_PORT)

FALLBACK_TO_ADJACENT_DIFFICULTY = os.getenv("ADAPTIVE_QUIZ_FALLBACK", "1").strip().lower() not in (
    "0",
    "false",
    "no",
    "off",
)


def engine_settings() -> EngineSettings:
    return EngineSettings(fallback_to_adjacent_difficulty=FALLBACK_TO_ADJACENT_DIFFICULTY)
