"""Static metadata describing the adaptive quiz service."""

APP_NAME = "Adaptive Quiz"
APP_VERSION = "0.1.0"
APP_DESCRIPTION = (
    "Adaptive quiz engine: questions get harder after correct answers and easier after "
    "mistakes, sessions are scored at completion and users are ranked on a leaderboard."
)
