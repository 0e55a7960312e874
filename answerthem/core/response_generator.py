"""Mode-specific reply generation and mode classification for mentions.

Both the automatic ingestion loop and the manual "Generate" action go through
``ResponseGenerator`` so that every stored reply gets the same cleanup and
length guarantee.
"""

from __future__ import annotations

import logging
from typing import Protocol

from answerthem.constants.bot_constants import (
    BOT_HANDLE,
    DEFAULT_CLASSIFICATION_CONFIDENCE,
    ELLIPSIS,
    REPLY_MAX_CHARS,
    REPLY_MAX_TOKENS,
)
from answerthem.core.errors import GenerationFailedError
from answerthem.core.models import Classification, ResponseMode

logger = logging.getLogger(__name__)


class CompletionBackend(Protocol):
    async def complete(self, system_prompt: str, user_prompt: str, max_tokens: int | None = None) -> str: ...

    async def complete_json(self, system_prompt: str, user_prompt: str) -> dict: ...


_SYSTEM_PROMPT = (
    f"You are @{BOT_HANDLE}, a witty Twitter bot that helps users respond to tweets with "
    f"cleverness and humor. Keep your responses under {REPLY_MAX_CHARS} characters."
)

_CLASSIFY_PROMPT = (
    f"You analyze tweets mentioning @{BOT_HANDLE} to determine what type of response the user wants. "
    "Classify the request as one of: 'witty', 'roast', 'debate', or 'peace'. "
    'Respond with JSON in this format: { "command": string, "confidence": number }. '
    "command should be one of the four values above, and confidence should be between 0 and 1."
)

_MODE_PROMPTS: dict[ResponseMode, str] = {
    ResponseMode.WITTY: (
        "You are a witty Twitter bot that creates clever and humorous responses.\n"
        'Tweet: "{tweet}"\nAuthor: @{author}\n\n'
        "Generate a witty, clever reply in under 240 characters. Make it funny and engaging, "
        "but keep it respectful. The response should be a standalone witty comment that anyone "
        "would understand without context."
    ),
    ResponseMode.ROAST: (
        "You are a Twitter bot that specializes in gentle roasts and comebacks.\n"
        'Tweet: "{tweet}"\nAuthor: @{author}\n\n'
        "Generate a roast reply in under 240 characters. Make it cutting and humorous, but not "
        "mean-spirited or offensive. Keep the roast focused on the argument or statement, never "
        "on personal attributes."
    ),
    ResponseMode.DEBATE: (
        "You are a Twitter bot that provides logical counter-arguments in debates.\n"
        'Tweet: "{tweet}"\nAuthor: @{author}\n\n'
        "Generate a smart, logical counter-argument in under 240 characters. Be reasonable and "
        "fact-based, but with a touch of wit. Focus on making a solid point rather than attacking "
        "the person."
    ),
    ResponseMode.PEACE: (
        "You are a Twitter bot that de-escalates heated conversations with calming responses.\n"
        'Tweet: "{tweet}"\nAuthor: @{author}\n\n'
        "Generate a calming, de-escalating response in under 240 characters. Add a touch of "
        "wisdom and humor while encouraging civil discourse. Find common ground and reduce tension."
    ),
}

_QUOTE_PAIRS = (('"', '"'), ("'", "'"), ("“", "”"))


def build_prompt(tweet: str, author_username: str, mode: ResponseMode) -> str:
    return _MODE_PROMPTS[ResponseMode(mode)].format(tweet=tweet, author=author_username)


def finalize_reply(raw_text: str) -> str:
    """Trim, unwrap one pair of surrounding quotes and enforce the reply length."""
    text = raw_text.strip()
    for opening, closing in _QUOTE_PAIRS:
        if len(text) >= 2 and text.startswith(opening) and text.endswith(closing):
            text = text[1:-1]
            break
    if len(text) > REPLY_MAX_CHARS:
        text = text[: REPLY_MAX_CHARS - len(ELLIPSIS)] + ELLIPSIS
    return text


def parse_classification(payload: dict) -> Classification:
    """Map a raw classifier payload onto a mode, defaulting to witty."""
    default = Classification(ResponseMode.WITTY, DEFAULT_CLASSIFICATION_CONFIDENCE)
    try:
        mode = ResponseMode(payload.get("command"))
    except (TypeError, ValueError):
        return default

    confidence = payload.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        confidence = DEFAULT_CLASSIFICATION_CONFIDENCE
    return Classification(mode, max(0.0, min(1.0, float(confidence))))


class ResponseGenerator:
    """Classifies mentions and writes replies through a completion backend."""

    def __init__(self, backend: CompletionBackend) -> None:
        self._backend = backend

    async def classify(self, text: str) -> Classification:
        """Never raises: any failure yields witty with 0.5 confidence."""
        try:
            payload = await self._backend.complete_json(_CLASSIFY_PROMPT, text)
            return parse_classification(payload)
        except Exception as exc:
            logger.warning("Mode classification failed, defaulting to witty: %s", exc)
            return Classification(ResponseMode.WITTY, DEFAULT_CLASSIFICATION_CONFIDENCE)

    async def generate(self, text: str, author_username: str, mode: ResponseMode) -> str:
        prompt = build_prompt(text, author_username, mode)
        try:
            raw = await self._backend.complete(_SYSTEM_PROMPT, prompt, max_tokens=REPLY_MAX_TOKENS)
        except Exception as exc:
            raise GenerationFailedError("Failed to generate response") from exc

        reply = finalize_reply(raw or "")
        if not reply:
            raise GenerationFailedError("Text generation returned an empty response")
        return reply
