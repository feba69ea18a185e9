"""Translate collaborator failures into RepositoryUnavailable."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import logging

from adaptive_quiz.core.errors import QuizEngineError, RepositoryUnavailable

logger = logging.getLogger(__name__)


@contextmanager
def repository_call(operation: str) -> Iterator[None]:
    """Wrap a storage call; failures surface as RepositoryUnavailable and are not retried."""
    try:
        yield
    except QuizEngineError:
        raise
    except Exception as exc:
        logger.warning("Repository call %s failed: %s", operation, exc)
        raise RepositoryUnavailable(f"{operation} failed: {exc}") from exc
