from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from answerthem.core.bot_manager import BotManager
from answerthem.core.entity_store import EntityStore
from answerthem.core.errors import ConfigurationError, ExternalServiceError
from answerthem.core.models import BotConfig, FetchedMention
from answerthem.server.api_server import create_api_app
from answerthem.utils.settings import Settings

BASE_TIME = datetime(2024, 5, 1, 12, 0, 0)


def make_fetched(tweet_id, text="@answerthembot hello", author="alice", minutes=0):
    return FetchedMention(
        tweet_id=tweet_id,
        text=text,
        created_at=BASE_TIME + timedelta(minutes=minutes),
        author_username=author,
        author_name=author.title(),
    )


class FakeTwitter:
    """In-memory stand-in for the Twitter client."""

    def __init__(self, configured=True, username="answerthembot"):
        self.configured = configured
        self._username = username if configured else ""
        self.mentions = []
        self.posted = []
        self.fail_posts_for = set()
        self.fetch_calls = 0
        self.reject_credentials = False

    @property
    def username(self):
        return self._username

    def is_configured(self):
        return self.configured

    async def configure(self, access_token, access_secret, api_key, api_secret):
        if self.reject_credentials:
            raise ConfigurationError("Invalid Twitter credentials")
        self.configured = True
        self._username = "answerthembot"
        return self._username

    async def fetch_recent_mentions(self, count):
        self.fetch_calls += 1
        return list(self.mentions[:count])

    async def post_reply(self, tweet_id, text):
        if tweet_id in self.fail_posts_for:
            raise ExternalServiceError("Twitter request failed")
        self.posted.append((tweet_id, text))
        return f"reply-{tweet_id}"


class FakeBackend:
    """Completion backend returning canned text and JSON."""

    def __init__(self, reply="Nice try!", classification=None, questions=None):
        self.reply = reply
        self.classification = classification or {"command": "witty", "confidence": 0.9}
        self.questions = questions or {"questions": []}
        self.fail = False
        self.prompts = []

    async def complete(self, system_prompt, user_prompt, max_tokens=None):
        if self.fail:
            raise ExternalServiceError("OpenAI request failed")
        self.prompts.append(user_prompt)
        return self.reply

    async def complete_json(self, system_prompt, user_prompt):
        if self.fail:
            raise ExternalServiceError("OpenAI request failed")
        self.prompts.append(user_prompt)
        if '"questions"' in system_prompt:
            return self.questions
        return self.classification


@pytest.fixture
def settings():
    return Settings(enable_poller=False, mention_batch_size=10, auto_post=True)


@pytest.fixture
def store():
    return EntityStore(BotConfig(openai_api_key="sk-test", bot_active=True))


@pytest.fixture
def twitter():
    return FakeTwitter()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def bot(store, twitter, settings, backend):
    return BotManager(store, twitter, settings, backend_factory=lambda api_key: backend)


@pytest.fixture
def app(store, twitter, settings, backend):
    return create_api_app(
        store=store,
        settings=settings,
        twitter_client=twitter,
        backend_factory=lambda api_key: backend,
    )


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
