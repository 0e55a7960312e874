"""Service for storing mentions and the reply statistics derived from them."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

from answerthem.constants.bot_constants import RECENT_MENTIONS_LIMIT
from answerthem.core.errors import ConflictError, NotFoundError
from answerthem.core.models import (
    FetchedMention,
    Mention,
    ResponseMode,
    ResponseStats,
    ResponseStatus,
)


class MentionRepository:
    """Stores mentions keyed by id with a secondary index on the tweet id.

    Mentions are never deleted. Updates replace the stored record so that
    previously returned instances stay unchanged snapshots.
    """

    def __init__(self) -> None:
        self._mentions: dict[int, Mention] = {}
        self._ids_by_tweet: dict[str, int] = {}
        self._mention_counter: int = 0
        self._stats = ResponseStats()

    # --- Mentions ---

    def get_recent_mentions(self, count: int = RECENT_MENTIONS_LIMIT) -> list[Mention]:
        """Return up to ``count`` mentions, newest first; ties keep insertion order."""
        ordered = sorted(self._mentions.values(), key=lambda m: m.created_at, reverse=True)
        return ordered[: max(0, count)]

    def get_mention_by_tweet_id(self, tweet_id: str) -> Mention | None:
        mention_id = self._ids_by_tweet.get(tweet_id)
        if mention_id is None:
            return None
        return self._mentions[mention_id]

    def create_mention(self, fetched: FetchedMention) -> Mention:
        if fetched.tweet_id in self._ids_by_tweet:
            raise ConflictError(f"Mention for tweet {fetched.tweet_id} already exists.")

        self._mention_counter += 1
        mention = Mention(
            id=self._mention_counter,
            tweet_id=fetched.tweet_id,
            author_username=fetched.author_username,
            author_name=fetched.author_name,
            author_profile_image=fetched.author_profile_image,
            content=fetched.text,
            created_at=fetched.created_at,
        )
        self._mentions[mention.id] = mention
        self._ids_by_tweet[mention.tweet_id] = mention.id
        return mention

    def update_mention_draft(self, tweet_id: str, content: str, mode: ResponseMode) -> Mention:
        """Overwrite the generated reply; the delivery status is left as it is."""
        mention = self._require(tweet_id)
        return self._store(replace(mention, response_content=content, response_mode=mode))

    def mark_mention_sent(self, tweet_id: str, response_id: str) -> Mention:
        mention = self._require(tweet_id)
        if mention.response_mode is None or mention.response_content is None:
            raise ConflictError(f"Mention for tweet {tweet_id} has no reply to send.")
        if mention.response_status is ResponseStatus.SENT:
            raise ConflictError(f"Reply to tweet {tweet_id} was already sent.")
        updated = self._store(
            replace(
                mention,
                response_id=response_id,
                response_status=ResponseStatus.SENT,
                response_sent_at=datetime.utcnow(),
            )
        )
        self._record_response_sent(mention.response_mode)
        return updated

    def mark_mention_failed(self, tweet_id: str) -> Mention:
        mention = self._require(tweet_id)
        if mention.response_status is ResponseStatus.SENT:
            raise ConflictError(f"Reply to tweet {tweet_id} was already sent.")
        return self._store(replace(mention, response_status=ResponseStatus.FAILED))

    def _require(self, tweet_id: str) -> Mention:
        mention = self.get_mention_by_tweet_id(tweet_id)
        if mention is None:
            raise NotFoundError(f"Mention with tweet ID {tweet_id} not found")
        return mention

    def _store(self, mention: Mention) -> Mention:
        self._mentions[mention.id] = mention
        return mention

    # --- Stats ---

    def get_stats(self) -> ResponseStats:
        return replace(self._stats, mode_counts=dict(self._stats.mode_counts))

    def reset_daily(self, today: date | None = None) -> ResponseStats:
        """Zero the daily counter and move the stats date forward."""
        self._stats.today_responses = 0
        self._stats.stats_date = today or date.today()
        return self.get_stats()

    def _record_response_sent(self, mode: ResponseMode) -> None:
        self._stats.total_responses += 1
        self._stats.today_responses += 1
        self._stats.mode_counts[mode] += 1
