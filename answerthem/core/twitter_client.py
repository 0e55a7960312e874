"""Narrow async wrapper around the Twitter API v2 client from tweepy."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone
import logging
from typing import Any, TypeVar

import requests
import tweepy

from answerthem.constants.bot_constants import (
    DEFAULT_EXTERNAL_CALL_TIMEOUT_SECONDS,
    TWITTER_MAX_RESULTS,
    TWITTER_MIN_RESULTS,
)
from answerthem.core.errors import ConfigurationError, ExternalServiceError
from answerthem.core.models import FetchedMention

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TwitterClient:
    """Fetches mentions of the connected account and posts replies.

    tweepy's client is blocking, so every call runs in a worker thread and is
    bounded by ``timeout`` seconds.
    """

    def __init__(self, timeout: float = DEFAULT_EXTERNAL_CALL_TIMEOUT_SECONDS) -> None:
        self._timeout = timeout
        self._client: tweepy.Client | None = None
        self._username: str = ""

    def is_configured(self) -> bool:
        return self._client is not None

    @property
    def username(self) -> str:
        return self._username

    async def configure(
        self,
        access_token: str,
        access_secret: str,
        api_key: str,
        api_secret: str,
    ) -> str:
        """Build a user-context client and verify it; returns the account's username."""
        client = tweepy.Client(
            consumer_key=api_key,
            consumer_secret=api_secret,
            access_token=access_token,
            access_token_secret=access_secret,
        )
        try:
            me = await self._call(lambda: client.get_me(user_fields=["username"], user_auth=True))
        except ExternalServiceError as exc:
            self._client = None
            self._username = ""
            if isinstance(exc.__cause__, tweepy.HTTPException):
                raise ConfigurationError("Invalid Twitter credentials") from exc
            raise

        username = str(getattr(getattr(me, "data", None), "username", "") or "")
        if not username:
            self._client = None
            self._username = ""
            raise ConfigurationError("Invalid Twitter credentials")

        self._client = client
        self._username = username
        logger.info("Connected to Twitter as @%s", username)
        return username

    async def fetch_recent_mentions(self, count: int) -> list[FetchedMention]:
        client = self._require_client()
        page_size = max(TWITTER_MIN_RESULTS, min(TWITTER_MAX_RESULTS, count))
        response = await self._call(
            lambda: client.search_recent_tweets(
                query=f"@{self._username}",
                expansions=["author_id"],
                tweet_fields=["created_at", "conversation_id"],
                user_fields=["name", "username", "profile_image_url"],
                max_results=page_size,
                user_auth=True,
            )
        )
        return _parse_mentions(response)[:count]

    async def post_reply(self, tweet_id: str, text: str) -> str:
        """Post ``text`` as a reply and return the new tweet's id."""
        client = self._require_client()
        response = await self._call(
            lambda: client.create_tweet(text=text, in_reply_to_tweet_id=tweet_id, user_auth=True)
        )
        data = getattr(response, "data", None) or {}
        reply_id = data.get("id") if isinstance(data, dict) else getattr(data, "id", None)
        if not reply_id:
            raise ExternalServiceError("Twitter did not return an id for the posted reply")
        return str(reply_id)

    def _require_client(self) -> tweepy.Client:
        if self._client is None:
            raise ConfigurationError("Twitter not configured")
        return self._client

    async def _call(self, operation: Callable[[], T]) -> T:
        try:
            return await asyncio.wait_for(asyncio.to_thread(operation), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise ExternalServiceError("Twitter request timed out") from exc
        except tweepy.TweepyException as exc:
            raise ExternalServiceError(f"Twitter request failed: {exc}") from exc
        except requests.RequestException as exc:
            raise ExternalServiceError(f"Twitter unreachable: {exc}") from exc


def _parse_mentions(response: Any) -> list[FetchedMention]:
    tweets = getattr(response, "data", None) or []
    includes = getattr(response, "includes", None) or {}
    authors = {str(user.id): user for user in includes.get("users", [])}

    mentions: list[FetchedMention] = []
    for tweet in tweets:
        author = authors.get(str(tweet.author_id))
        created_at = getattr(tweet, "created_at", None) or datetime.utcnow()
        if created_at.tzinfo is not None:
            created_at = created_at.astimezone(timezone.utc).replace(tzinfo=None)
        mentions.append(
            FetchedMention(
                tweet_id=str(tweet.id),
                text=tweet.text,
                created_at=created_at,
                author_username=getattr(author, "username", None) or "unknown",
                author_name=getattr(author, "name", None),
                author_profile_image=getattr(author, "profile_image_url", None),
            )
        )
    return mentions
