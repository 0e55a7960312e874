"""Constants for the mention bot: batching, timing, reply limits and commands."""

DEFAULT_POLL_INTERVAL_SECONDS: int = 60
DEFAULT_MENTION_BATCH_SIZE: int = 10
DEFAULT_EXTERNAL_CALL_TIMEOUT_SECONDS: float = 30.0
RECENT_MENTIONS_LIMIT: int = 20

REPLY_MAX_CHARS: int = 240
ELLIPSIS: str = "..."
REPLY_MAX_TOKENS: int = 200
DEFAULT_CLASSIFICATION_CONFIDENCE: float = 0.5

DEFAULT_OPENAI_MODEL: str = "gpt-4o"
BOT_HANDLE: str = "answerthembot"

# Search API only accepts page sizes in this range.
TWITTER_MIN_RESULTS: int = 10
TWITTER_MAX_RESULTS: int = 100

COMMANDS: list[dict[str, str]] = [
    {
        "name": "Roast Mode",
        "icon": "fire",
        "description": "Generate a humorous roast reply for someone in the thread.",
        "example": "@answerthembot roast this person",
    },
    {
        "name": "Witty Mode",
        "icon": "smile-wink",
        "description": "Generate a clever, witty response to the conversation.",
        "example": "@answerthembot give a witty reply",
    },
    {
        "name": "Debate Mode",
        "icon": "quote-right",
        "description": "Generate a logical counter-argument to continue a debate.",
        "example": "@answerthembot debate this point",
    },
    {
        "name": "Peace Mode",
        "icon": "peace",
        "description": "Generate a calm, de-escalating response to cool down heated arguments.",
        "example": "@answerthembot make peace here",
    },
]
