"""Thin gateway to the OpenAI chat completion API."""

from __future__ import annotations

import json
import logging
from typing import Any

from openai import AsyncOpenAI

from answerthem.constants.bot_constants import (
    DEFAULT_EXTERNAL_CALL_TIMEOUT_SECONDS,
    DEFAULT_OPENAI_MODEL,
)
from answerthem.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class TextGenerator:
    """Sends one system + user prompt pair and returns the completion."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_OPENAI_MODEL,
        timeout: float = DEFAULT_EXTERNAL_CALL_TIMEOUT_SECONDS,
    ) -> None:
        self.model = model
        self._client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    async def complete(self, system_prompt: str, user_prompt: str, max_tokens: int | None = None) -> str:
        """Return the stripped completion text (possibly empty)."""
        kwargs: dict[str, Any] = {}
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                **kwargs,
            )
        except Exception as exc:
            logger.warning("OpenAI completion failed: %s", exc)
            raise ExternalServiceError("Text generation request failed") from exc
        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()

    async def complete_json(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        """Request a JSON-mode completion and decode it into a dict."""
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                response_format={"type": "json_object"},
            )
        except Exception as exc:
            logger.warning("OpenAI JSON completion failed: %s", exc)
            raise ExternalServiceError("Text generation request failed") from exc
        content = response.choices[0].message.content if response.choices else None
        try:
            payload = json.loads(content or "{}")
        except json.JSONDecodeError as exc:
            raise ExternalServiceError("Text generation returned malformed JSON") from exc
        if not isinstance(payload, dict):
            raise ExternalServiceError("Text generation returned a non-object JSON value")
        return payload
