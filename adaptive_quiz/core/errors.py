"""Exceptions raised by the quiz engine."""


class QuizEngineError(Exception):
    """Base exception for quiz engine errors."""


class InvalidArgument(QuizEngineError):
    """Bad question count, answer index or leaderboard limit."""


class SessionNotFound(QuizEngineError):
    """Unknown session, or a session owned by another user."""


class SessionAlreadyComplete(QuizEngineError):
    """The session has no questions left to answer."""


class SessionNotComplete(QuizEngineError):
    """A result was requested before the last question was answered."""


class QuestionMismatch(QuizEngineError):
    """The submitted question is not the one at the session cursor."""


class NoQuestionsAvailable(QuizEngineError):
    """The question bank has no unused question for the requested difficulty."""


class UserNotFound(QuizEngineError):
    """The user has no completed quizzes and therefore no rank."""


class RepositoryUnavailable(QuizEngineError):
    """A storage collaborator failed while serving the request."""
