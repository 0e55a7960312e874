"""Quiz-related constants shared across the core and API layers."""

JOIN_CODE_LENGTH: int = 6
JOIN_CODE_ALPHABET: str = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

MIN_OPTIONS_PER_QUESTION: int = 2
MAX_OPTIONS_PER_QUESTION: int = 6
GENERATED_OPTIONS_PER_QUESTION: int = 4

DEFAULT_GENERATED_QUESTION_COUNT: int = 5
MAX_GENERATED_QUESTION_COUNT: int = 10

TITLE_MIN_LENGTH: int = 3
TITLE_MAX_LENGTH: int = 120
DESCRIPTION_MAX_LENGTH: int = 2000
DISPLAY_NAME_MAX_LENGTH: int = 40
USERNAME_MIN_LENGTH: int = 3
PASSWORD_MIN_LENGTH: int = 6
