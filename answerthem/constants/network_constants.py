"""Network configuration constants for the AnswerThem server."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
SESSION_COOKIE: str = "answerthem_session"
SESSION_MAX_AGE_SECONDS: int = 60 * 60 * 24 * 30
