"""Runtime settings read from the environment (and a local ``.env`` file)."""

from __future__ import annotations

from dataclasses import dataclass
import os

from dotenv import load_dotenv

from answerthem.constants.bot_constants import (
    DEFAULT_EXTERNAL_CALL_TIMEOUT_SECONDS,
    DEFAULT_MENTION_BATCH_SIZE,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_POLL_INTERVAL_SECONDS,
)
from answerthem.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(slots=True)
class Settings:
    """Application configuration settings"""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "INFO"

    # OpenAI
    openai_api_key: str = ""
    openai_model: str = DEFAULT_OPENAI_MODEL

    # Twitter (OAuth 1.0a user context)
    twitter_api_key: str = ""
    twitter_api_secret: str = ""
    twitter_access_token: str = ""
    twitter_access_secret: str = ""

    # Mention polling
    enable_poller: bool = True
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    mention_batch_size: int = DEFAULT_MENTION_BATCH_SIZE
    auto_post: bool = True
    external_call_timeout_seconds: float = DEFAULT_EXTERNAL_CALL_TIMEOUT_SECONDS

    # Sessions
    cookie_secure: bool = False


def load_settings() -> Settings:
    """Build ``Settings`` from environment variables, loading ``.env`` first."""
    load_dotenv()
    return Settings(
        host=os.getenv("HOST", DEFAULT_HOST),
        port=int(os.getenv("PORT", DEFAULT_PORT)),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        openai_model=os.getenv("OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
        twitter_api_key=os.getenv("TWITTER_API_KEY", ""),
        twitter_api_secret=os.getenv("TWITTER_API_SECRET", ""),
        twitter_access_token=os.getenv("TWITTER_ACCESS_TOKEN", ""),
        twitter_access_secret=os.getenv("TWITTER_ACCESS_SECRET", ""),
        enable_poller=_env_bool("ENABLE_POLLER", True),
        poll_interval_seconds=float(os.getenv("POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS)),
        mention_batch_size=int(os.getenv("MENTION_BATCH_SIZE", DEFAULT_MENTION_BATCH_SIZE)),
        auto_post=_env_bool("AUTO_POST", True),
        external_call_timeout_seconds=float(
            os.getenv("EXTERNAL_CALL_TIMEOUT_SECONDS", DEFAULT_EXTERNAL_CALL_TIMEOUT_SECONDS)
        ),
        cookie_secure=_env_bool("COOKIE_SECURE", False),
    )
