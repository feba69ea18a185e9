"""Network configuration constants for the quiz service."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 3001
USER_ID_HEADER: str = "X-User-Id"
USERNAME_HEADER: str = "X-Username"
