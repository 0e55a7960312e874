"""Business logic for the mention bot shared between the API and the poller."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
import logging
from threading import Lock
from typing import Protocol

from answerthem.constants.about import BOT_DESCRIPTION
from answerthem.core.entity_store import EntityStore
from answerthem.core.errors import (
    ConfigurationError,
    ConflictError,
    ExternalServiceError,
    GenerationFailedError,
    NotFoundError,
)
from answerthem.core.models import (
    BotConfig,
    FetchedMention,
    IngestionReport,
    Mention,
    ResponseMode,
    ResponseStatus,
)
from answerthem.core.response_generator import CompletionBackend, ResponseGenerator
from answerthem.core.text_generation import TextGenerator
from answerthem.utils.settings import Settings

logger = logging.getLogger(__name__)


class MentionSource(Protocol):
    """The slice of the Twitter client the bot depends on."""

    @property
    def username(self) -> str: ...

    def is_configured(self) -> bool: ...

    async def configure(self, access_token: str, access_secret: str, api_key: str, api_secret: str) -> str: ...

    async def fetch_recent_mentions(self, count: int) -> list[FetchedMention]: ...

    async def post_reply(self, tweet_id: str, text: str) -> str: ...


BackendFactory = Callable[[str], CompletionBackend]


@dataclass(slots=True)
class BotStatus:
    active: bool
    connected: bool
    username: str
    description: str
    auto_post: bool
    openai_configured: bool


def bot_config_from_settings(settings: Settings) -> BotConfig:
    """Seed the single-tenant bot configuration from environment settings."""
    return BotConfig(
        twitter_access_token=settings.twitter_access_token or None,
        twitter_access_secret=settings.twitter_access_secret or None,
        twitter_api_key=settings.twitter_api_key or None,
        twitter_api_secret=settings.twitter_api_secret or None,
        openai_api_key=settings.openai_api_key or None,
        auto_post=settings.auto_post,
    )


class BotManager:
    """Facade for the bot: configuration, manual replies and mention ingestion."""

    def __init__(
        self,
        store: EntityStore,
        twitter: MentionSource,
        settings: Settings,
        backend_factory: BackendFactory | None = None,
    ) -> None:
        self._store = store
        self._twitter = twitter
        self._settings = settings
        self._backend_factory = backend_factory or self._default_backend
        self._posting: set[str] = set()
        self._posting_lock = Lock()

    @contextmanager
    def _claim_post(self, tweet_id: str) -> Iterator[None]:
        """Hold the tweet for the duration of one post so it cannot go out twice."""
        with self._posting_lock:
            if tweet_id in self._posting:
                raise ConflictError("Reply is already being posted")
            self._posting.add(tweet_id)
        try:
            yield
        finally:
            with self._posting_lock:
                self._posting.discard(tweet_id)

    def _default_backend(self, api_key: str) -> CompletionBackend:
        return TextGenerator(
            api_key,
            model=self._settings.openai_model,
            timeout=self._settings.external_call_timeout_seconds,
        )

    def completion_backend(self, api_key: str) -> CompletionBackend:
        return self._backend_factory(api_key)

    def response_generator(self, api_key: str) -> ResponseGenerator:
        return ResponseGenerator(self.completion_backend(api_key))

    # --- Status & Configuration ---

    def get_status(self) -> BotStatus:
        config = self._store.get_bot_config()
        connected = self._twitter.is_configured()
        return BotStatus(
            active=config.bot_active,
            connected=connected,
            username=self._twitter.username if connected else "",
            description=BOT_DESCRIPTION,
            auto_post=config.auto_post,
            openai_configured=bool(config.openai_api_key),
        )

    async def restore_connections(self) -> None:
        """Reconnect to Twitter with stored credentials, if any."""
        config = self._store.get_bot_config()
        if not config.has_twitter_credentials():
            return
        try:
            await self.connect_twitter(
                config.twitter_access_token,
                config.twitter_access_secret,
                config.twitter_api_key,
                config.twitter_api_secret,
            )
        except (ConfigurationError, ExternalServiceError) as exc:
            logger.warning("Could not restore Twitter connection: %s", exc)

    async def connect_twitter(
        self,
        access_token: str,
        access_secret: str,
        api_key: str,
        api_secret: str,
    ) -> str:
        username = await self._twitter.configure(access_token, access_secret, api_key, api_secret)
        self._store.update_twitter_credentials(
            access_token, access_secret, api_key, api_secret, username
        )
        return username

    async def configure_openai(self, api_key: str) -> None:
        """Store the key once a test generation with it succeeds."""
        try:
            await self.response_generator(api_key).generate(
                "Test message", "testuser", ResponseMode.WITTY
            )
        except GenerationFailedError as exc:
            raise ConfigurationError("Invalid OpenAI API key") from exc
        self._store.update_openai_key(api_key)

    def toggle(self) -> bool:
        active = self._store.toggle_bot_active()
        logger.info("Bot %s", "activated" if active else "paused")
        return active

    # --- Manual Replies ---

    async def generate_for_mention(self, tweet_id: str, mode: ResponseMode) -> Mention:
        """Draft a reply in ``mode``; the mention's status is not changed."""
        mention = self._store.get_mention_by_tweet_id(tweet_id)
        if mention is None:
            raise NotFoundError("Mention not found")
        config = self._store.get_bot_config()
        if not config.openai_api_key:
            raise ConfigurationError("OpenAI API key not configured")

        reply = await self.response_generator(config.openai_api_key).generate(
            mention.content, mention.author_username, mode
        )
        return self._store.update_mention_draft(tweet_id, reply, mode)

    async def respond_to_mention(self, tweet_id: str) -> Mention:
        """Post the stored draft for ``tweet_id``."""
        with self._claim_post(tweet_id):
            mention = self._store.get_mention_by_tweet_id(tweet_id)
            if mention is None or not mention.response_content:
                raise NotFoundError("Mention or response not found")
            if mention.response_status is ResponseStatus.SENT:
                raise ConflictError("Response was already sent")
            if not self._twitter.is_configured():
                raise ConfigurationError("Twitter not configured")

            try:
                reply_id = await self._twitter.post_reply(tweet_id, mention.response_content)
            except ExternalServiceError:
                self._store.mark_mention_failed(tweet_id)
                raise
            return self._store.mark_mention_sent(tweet_id, reply_id)

    # --- Ingestion ---

    async def ingest_once(self) -> IngestionReport:
        """Run one polling pass over the most recent mentions."""
        config = self._store.get_bot_config()
        if not config.bot_active or not self._twitter.is_configured():
            return IngestionReport(ran=False)

        fetched = await self._twitter.fetch_recent_mentions(self._settings.mention_batch_size)
        report = IngestionReport(fetched=len(fetched))
        for item in fetched:
            try:
                await self._ingest_item(item, config, report)
            except Exception:
                report.errors += 1
                logger.exception("Failed to process mention %s", item.tweet_id)

        logger.info(
            "Ingestion pass: fetched=%d ingested=%d skipped=%d drafted=%d sent=%d failed=%d errors=%d",
            report.fetched,
            report.ingested,
            report.skipped,
            report.drafted,
            report.sent,
            report.failed,
            report.errors,
        )
        return report

    async def _ingest_item(self, item: FetchedMention, config: BotConfig, report: IngestionReport) -> None:
        with self._store.transaction() as store:
            if store.get_mention_by_tweet_id(item.tweet_id) is not None:
                report.skipped += 1
                return
            store.create_mention(item)
        report.ingested += 1

        if not config.openai_api_key:
            return
        generator = self.response_generator(config.openai_api_key)
        classification = await generator.classify(item.text)
        try:
            reply = await generator.generate(item.text, item.author_username, classification.mode)
        except GenerationFailedError as exc:
            logger.warning("No reply generated for mention %s: %s", item.tweet_id, exc)
            return
        self._store.update_mention_draft(item.tweet_id, reply, classification.mode)
        report.drafted += 1

        if not config.auto_post:
            return
        try:
            with self._claim_post(item.tweet_id):
                await self._post_draft(item.tweet_id, reply, report)
        except ConflictError as exc:
            logger.info("Not auto-posting %s: %s", item.tweet_id, exc)

    async def _post_draft(self, tweet_id: str, reply: str, report: IngestionReport) -> None:
        if self._store.get_mention_by_tweet_id(tweet_id).response_status is ResponseStatus.SENT:
            raise ConflictError("Response was already sent")
        try:
            reply_id = await self._twitter.post_reply(tweet_id, reply)
        except Exception as exc:
            logger.warning("Posting reply to %s failed: %s", tweet_id, exc)
            self._store.mark_mention_failed(tweet_id)
            report.failed += 1
            return
        self._store.mark_mention_sent(tweet_id, reply_id)
        report.sent += 1
