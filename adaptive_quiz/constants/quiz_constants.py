"""Quiz-related constants shared across the engine and the API layer."""

MIN_QUESTIONS_PER_SESSION: int = 1
MAX_QUESTIONS_PER_SESSION: int = 50
DEFAULT_QUESTIONS_PER_SESSION: int = 10
RECENT_SCORES_CAPACITY: int = 5
DEFAULT_LEADERBOARD_LIMIT: int = 20
MAX_LEADERBOARD_LIMIT: int = 100
