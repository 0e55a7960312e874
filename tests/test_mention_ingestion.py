import asyncio
from types import SimpleNamespace

import pytest
import requests
import tweepy

from answerthem.core.bot_manager import BotManager
from answerthem.core.entity_store import EntityStore
from answerthem.core.errors import (
    ConfigurationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
)
from answerthem.core.models import BotConfig, ResponseMode, ResponseStatus
from answerthem.core.services.mention_poller import MentionPoller
from answerthem.core.twitter_client import TwitterClient
from answerthem.utils.settings import Settings

from conftest import FakeBackend, FakeTwitter, make_fetched


def _fake_get_me(self, **kwargs):
    return SimpleNamespace(data=SimpleNamespace(username="answerthembot"))


def _network_down(self, **kwargs):
    raise requests.exceptions.ConnectionError("network down")


class GatedTwitter(FakeTwitter):
    """Holds every post until ``gate`` is set."""

    def __init__(self):
        super().__init__()
        self.gate = None
        self.waiting = False

    async def post_reply(self, tweet_id, text):
        self.waiting = True
        await self.gate.wait()
        return await super().post_reply(tweet_id, text)


class TestIngestOnce:
    """One polling pass"""

    def test_inactive_bot_does_nothing(self, store, twitter, bot):
        store.toggle_bot_active()
        twitter.mentions = [make_fetched("t1")]
        report = asyncio.run(bot.ingest_once())
        assert report.ran is False
        assert twitter.fetch_calls == 0
        assert store.get_recent_mentions() == []

    def test_unconfigured_twitter_does_nothing(self, store, settings, backend):
        manager = BotManager(store, FakeTwitter(configured=False), settings, lambda key: backend)
        report = asyncio.run(manager.ingest_once())
        assert report.ran is False

    def test_roast_request_is_answered_once(self, store, twitter, backend, bot):
        backend.classification = {"command": "roast", "confidence": 0.95}
        backend.reply = "Your tweet is the roast."
        twitter.mentions = [make_fetched("t1", text="roast me")]

        report = asyncio.run(bot.ingest_once())
        assert report.ingested == 1
        assert report.sent == 1

        mention = store.get_mention_by_tweet_id("t1")
        assert mention.response_status is ResponseStatus.SENT
        assert mention.response_mode is ResponseMode.ROAST
        assert mention.response_content == "Your tweet is the roast."
        assert mention.response_id == "reply-t1"

        second = asyncio.run(bot.ingest_once())
        assert second.skipped == 1
        assert second.ingested == 0
        assert len(twitter.posted) == 1
        assert len(store.get_recent_mentions()) == 1
        assert store.get_stats().total_responses == 1

    def test_stats_match_sent_mentions(self, store, twitter, backend, bot):
        twitter.mentions = [make_fetched(f"t{i}", minutes=i) for i in range(4)]
        twitter.fail_posts_for = {"t2"}
        asyncio.run(bot.ingest_once())

        mentions = store.get_recent_mentions()
        sent = [m for m in mentions if m.response_status is ResponseStatus.SENT]
        stats = store.get_stats()
        assert stats.total_responses == len(sent) == 3
        assert sum(stats.mode_counts.values()) == stats.total_responses

    def test_post_failure_is_isolated(self, store, twitter, bot):
        twitter.mentions = [make_fetched("t1"), make_fetched("t2", minutes=1)]
        twitter.fail_posts_for = {"t1"}
        report = asyncio.run(bot.ingest_once())

        assert report.failed == 1
        assert report.sent == 1
        assert store.get_mention_by_tweet_id("t1").response_status is ResponseStatus.FAILED
        assert store.get_mention_by_tweet_id("t2").response_status is ResponseStatus.SENT

    def test_unexpected_error_is_isolated(self, store, twitter, bot, monkeypatch):
        twitter.mentions = [make_fetched("t1"), make_fetched("t2", minutes=1)]
        real_update = store.update_mention_draft

        def flaky_update(tweet_id, content, mode):
            if tweet_id == "t1":
                raise RuntimeError("boom")
            return real_update(tweet_id, content, mode)

        monkeypatch.setattr(store, "update_mention_draft", flaky_update)
        report = asyncio.run(bot.ingest_once())
        assert report.errors == 1
        assert store.get_mention_by_tweet_id("t2").response_status is ResponseStatus.SENT

    def test_generation_failure_leaves_pending(self, store, twitter, backend, bot):
        twitter.mentions = [make_fetched("t1")]
        backend.reply = ""
        report = asyncio.run(bot.ingest_once())
        assert report.ingested == 1
        assert report.drafted == 0
        mention = store.get_mention_by_tweet_id("t1")
        assert mention.response_status is ResponseStatus.PENDING
        assert mention.response_content is None

    def test_without_openai_key_only_stores(self, twitter, settings, backend):
        store = EntityStore(BotConfig(bot_active=True))
        manager = BotManager(store, twitter, settings, lambda key: backend)
        twitter.mentions = [make_fetched("t1")]
        report = asyncio.run(manager.ingest_once())
        assert report.ingested == 1
        assert store.get_mention_by_tweet_id("t1").response_content is None
        assert twitter.posted == []

        second = asyncio.run(manager.ingest_once())
        assert second.skipped == 1
        assert second.ingested == 0
        assert len(store.get_recent_mentions()) == 1
        mention = store.get_mention_by_tweet_id("t1")
        assert mention.response_content is None
        assert mention.response_mode is None

    def test_auto_post_disabled_keeps_drafts(self, twitter, backend):
        store = EntityStore(BotConfig(openai_api_key="sk-test", bot_active=True, auto_post=False))
        manager = BotManager(store, twitter, Settings(enable_poller=False), lambda key: backend)
        twitter.mentions = [make_fetched("t1")]
        report = asyncio.run(manager.ingest_once())
        assert report.drafted == 1
        assert report.sent == 0
        mention = store.get_mention_by_tweet_id("t1")
        assert mention.response_status is ResponseStatus.PENDING
        assert mention.response_content == backend.reply


class TestManualReplies:
    """Manual generate and respond actions"""

    def test_generate_unknown_mention(self, bot):
        with pytest.raises(NotFoundError):
            asyncio.run(bot.generate_for_mention("missing", ResponseMode.WITTY))

    def test_generate_without_key(self, twitter, settings, backend):
        store = EntityStore()
        store.create_mention(make_fetched("t1"))
        manager = BotManager(store, twitter, settings, lambda key: backend)
        with pytest.raises(ConfigurationError):
            asyncio.run(manager.generate_for_mention("t1", ResponseMode.WITTY))

    def test_generate_overwrites_draft_only(self, store, backend, bot):
        store.create_mention(make_fetched("t1"))
        store.update_mention_draft("t1", "First draft", ResponseMode.WITTY)
        store.mark_mention_failed("t1")
        backend.reply = "Let's all calm down."

        mention = asyncio.run(bot.generate_for_mention("t1", ResponseMode.PEACE))
        assert mention.response_content == "Let's all calm down."
        assert mention.response_mode is ResponseMode.PEACE
        assert mention.response_status is ResponseStatus.FAILED

    def test_respond_without_draft(self, store, bot):
        store.create_mention(make_fetched("t1"))
        with pytest.raises(NotFoundError):
            asyncio.run(bot.respond_to_mention("t1"))

    def test_respond_without_twitter(self, store, settings, backend):
        store.create_mention(make_fetched("t1"))
        store.update_mention_draft("t1", "Hi", ResponseMode.WITTY)
        manager = BotManager(store, FakeTwitter(configured=False), settings, lambda key: backend)
        with pytest.raises(ConfigurationError):
            asyncio.run(manager.respond_to_mention("t1"))

    def test_respond_failure_marks_failed(self, store, twitter, bot):
        store.create_mention(make_fetched("t1"))
        store.update_mention_draft("t1", "Hi", ResponseMode.WITTY)
        twitter.fail_posts_for = {"t1"}
        with pytest.raises(ExternalServiceError):
            asyncio.run(bot.respond_to_mention("t1"))
        assert store.get_mention_by_tweet_id("t1").response_status is ResponseStatus.FAILED
        assert store.get_stats().total_responses == 0

    def test_retry_after_failure(self, store, twitter, bot):
        store.create_mention(make_fetched("t1"))
        store.update_mention_draft("t1", "Hi", ResponseMode.DEBATE)
        store.mark_mention_failed("t1")

        mention = asyncio.run(bot.respond_to_mention("t1"))
        assert mention.response_status is ResponseStatus.SENT
        assert store.get_stats().mode_counts[ResponseMode.DEBATE] == 1

        with pytest.raises(ConflictError):
            asyncio.run(bot.respond_to_mention("t1"))
        assert len(twitter.posted) == 1

    def test_concurrent_responds_post_once(self, store, settings, backend):
        twitter = GatedTwitter()
        manager = BotManager(store, twitter, settings, lambda key: backend)
        store.create_mention(make_fetched("t1"))
        store.update_mention_draft("t1", "Hi", ResponseMode.WITTY)

        async def scenario():
            twitter.gate = asyncio.Event()
            first = asyncio.create_task(manager.respond_to_mention("t1"))
            await asyncio.sleep(0)
            with pytest.raises(ConflictError):
                await manager.respond_to_mention("t1")
            twitter.gate.set()
            return await first

        mention = asyncio.run(scenario())
        assert mention.response_status is ResponseStatus.SENT
        assert len(twitter.posted) == 1
        assert store.get_stats().total_responses == 1

    def test_respond_while_auto_posting(self, store, settings, backend):
        twitter = GatedTwitter()
        twitter.mentions = [make_fetched("t1")]
        manager = BotManager(store, twitter, settings, lambda key: backend)

        async def scenario():
            twitter.gate = asyncio.Event()
            polling = asyncio.create_task(manager.ingest_once())
            while not twitter.waiting:
                await asyncio.sleep(0)
            with pytest.raises(ConflictError):
                await manager.respond_to_mention("t1")
            twitter.gate.set()
            return await polling

        report = asyncio.run(asyncio.wait_for(scenario(), timeout=5))
        assert report.sent == 1
        assert len(twitter.posted) == 1
        assert store.get_mention_by_tweet_id("t1").response_status is ResponseStatus.SENT

    def test_network_failure_on_post_marks_failed(self, store, settings, backend, monkeypatch):
        monkeypatch.setattr(tweepy.Client, "get_me", _fake_get_me)
        monkeypatch.setattr(tweepy.Client, "create_tweet", _network_down)
        manager = BotManager(store, TwitterClient(timeout=5), settings, lambda key: backend)
        asyncio.run(manager.connect_twitter("at", "as", "ak", "aks"))
        store.create_mention(make_fetched("t1"))
        store.update_mention_draft("t1", "Hi", ResponseMode.WITTY)

        with pytest.raises(ExternalServiceError):
            asyncio.run(manager.respond_to_mention("t1"))
        assert store.get_mention_by_tweet_id("t1").response_status is ResponseStatus.FAILED


class TestConfiguration:
    """Connecting external services"""

    def test_connect_twitter_stores_credentials(self, store, bot):
        username = asyncio.run(bot.connect_twitter("at", "as", "ak", "aks"))
        assert username == "answerthembot"
        assert store.get_bot_config().twitter_access_token == "at"

    def test_configure_openai_rejects_bad_key(self, twitter, settings, backend):
        store = EntityStore()
        backend.fail = True
        manager = BotManager(store, twitter, settings, lambda key: backend)
        with pytest.raises(ConfigurationError):
            asyncio.run(manager.configure_openai("sk-bad"))
        assert store.get_bot_config().openai_api_key is None

    def test_configure_openai_stores_key(self, twitter, settings, backend):
        store = EntityStore()
        manager = BotManager(store, twitter, settings, lambda key: backend)
        asyncio.run(manager.configure_openai("sk-good"))
        assert store.get_bot_config().openai_api_key == "sk-good"
        assert manager.get_status().openai_configured is True

    def test_restore_with_rejected_credentials(self, settings, backend):
        store = EntityStore()
        store.update_twitter_credentials("at", "as", "ak", "aks", "old")
        twitter = FakeTwitter(configured=False)
        twitter.reject_credentials = True
        manager = BotManager(store, twitter, settings, lambda key: backend)
        asyncio.run(manager.restore_connections())
        assert manager.get_status().connected is False

    def test_restore_with_network_down(self, settings, backend, monkeypatch):
        monkeypatch.setattr(tweepy.Client, "get_me", _network_down)
        store = EntityStore()
        store.update_twitter_credentials("at", "as", "ak", "aks", "old")
        manager = BotManager(store, TwitterClient(timeout=5), settings, lambda key: backend)
        asyncio.run(manager.restore_connections())
        assert manager.get_status().connected is False

    def test_connect_with_network_down(self, store, settings, backend, monkeypatch):
        monkeypatch.setattr(tweepy.Client, "get_me", _network_down)
        manager = BotManager(store, TwitterClient(timeout=5), settings, lambda key: backend)
        with pytest.raises(ExternalServiceError):
            asyncio.run(manager.connect_twitter("at", "as", "ak", "aks"))
        assert store.get_bot_config().twitter_access_token is None


class TestMentionPoller:
    """Background polling loop"""

    def test_failed_pass_is_logged(self):
        async def failing():
            raise RuntimeError("Twitter is down")

        poller = MentionPoller(failing, interval_seconds=0)
        assert asyncio.run(poller.run_once()) is None
        assert poller.completed_passes == 1

    def test_loop_survives_errors(self):
        calls = []

        async def flaky():
            calls.append(1)
            raise RuntimeError("boom")

        async def scenario():
            poller = MentionPoller(flaky, interval_seconds=0)
            poller.start()
            while poller.completed_passes < 3:
                await asyncio.sleep(0)
            assert poller.is_running()
            await poller.stop()
            return poller

        poller = asyncio.run(asyncio.wait_for(scenario(), timeout=5))
        assert len(calls) >= 3
        assert poller.is_running() is False
