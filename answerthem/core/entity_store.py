"""In-memory entity store shared by the API handlers and the mention poller."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from threading import RLock

from answerthem.constants.bot_constants import RECENT_MENTIONS_LIMIT
from answerthem.core.models import (
    Answer,
    BotConfig,
    Difficulty,
    FetchedMention,
    Mention,
    Participant,
    Question,
    QuestionDraft,
    Quiz,
    QuizType,
    ResponseMode,
    ResponseStats,
    User,
)
from answerthem.core.services.mention_repository import MentionRepository
from answerthem.core.services.quiz_repository import QuizRepository
from answerthem.core.services.user_repository import UserRepository


class EntityStore:
    """Facade over the user, mention and quiz repositories.

    Every call takes the same re-entrant lock. Callers that need a
    read-check-write sequence to be atomic wrap it in ``transaction()``.
    """

    def __init__(self, bot_config: BotConfig | None = None) -> None:
        self._lock = RLock()

        # Services
        self._users = UserRepository()
        self._mentions = MentionRepository()
        self._quizzes = QuizRepository()
        self._bot_config = bot_config or BotConfig()

    @contextmanager
    def transaction(self) -> Iterator[EntityStore]:
        with self._lock:
            yield self

    # --- Users & Sessions ---

    def create_user(self, username: str, password: str) -> User:
        with self._lock:
            return self._users.create_user(username, password)

    def get_user(self, user_id: int) -> User | None:
        with self._lock:
            return self._users.get_user(user_id)

    def get_user_by_username(self, username: str) -> User | None:
        with self._lock:
            return self._users.get_user_by_username(username)

    def authenticate(self, username: str, password: str) -> User | None:
        with self._lock:
            return self._users.authenticate(username, password)

    def create_session(self, user_id: int) -> str:
        with self._lock:
            return self._users.create_session(user_id)

    def get_user_by_session(self, token: str) -> User | None:
        with self._lock:
            return self._users.get_user_by_session(token)

    def delete_session(self, token: str) -> None:
        with self._lock:
            self._users.delete_session(token)

    # --- Bot Configuration ---

    def get_bot_config(self) -> BotConfig:
        with self._lock:
            return replace(self._bot_config)

    def update_twitter_credentials(
        self,
        access_token: str,
        access_secret: str,
        api_key: str,
        api_secret: str,
        username: str,
    ) -> BotConfig:
        with self._lock:
            self._bot_config = replace(
                self._bot_config,
                twitter_access_token=access_token,
                twitter_access_secret=access_secret,
                twitter_api_key=api_key,
                twitter_api_secret=api_secret,
                twitter_username=username,
            )
            return replace(self._bot_config)

    def update_openai_key(self, api_key: str) -> BotConfig:
        with self._lock:
            self._bot_config = replace(self._bot_config, openai_api_key=api_key)
            return replace(self._bot_config)

    def toggle_bot_active(self) -> bool:
        with self._lock:
            active = not self._bot_config.bot_active
            self._bot_config = replace(self._bot_config, bot_active=active)
            return active

    # --- Mentions & Stats ---

    def get_recent_mentions(self, count: int = RECENT_MENTIONS_LIMIT) -> list[Mention]:
        with self._lock:
            return self._mentions.get_recent_mentions(count)

    def get_mention_by_tweet_id(self, tweet_id: str) -> Mention | None:
        with self._lock:
            return self._mentions.get_mention_by_tweet_id(tweet_id)

    def create_mention(self, fetched: FetchedMention) -> Mention:
        with self._lock:
            return self._mentions.create_mention(fetched)

    def update_mention_draft(self, tweet_id: str, content: str, mode: ResponseMode) -> Mention:
        with self._lock:
            return self._mentions.update_mention_draft(tweet_id, content, mode)

    def mark_mention_sent(self, tweet_id: str, response_id: str) -> Mention:
        """Mark the reply as posted and count it in the stats, atomically."""
        with self._lock:
            return self._mentions.mark_mention_sent(tweet_id, response_id)

    def mark_mention_failed(self, tweet_id: str) -> Mention:
        with self._lock:
            return self._mentions.mark_mention_failed(tweet_id)

    def get_stats(self) -> ResponseStats:
        with self._lock:
            return self._mentions.get_stats()

    def reset_daily(self, today: date | None = None) -> ResponseStats:
        with self._lock:
            return self._mentions.reset_daily(today)

    # --- Quizzes & Questions ---

    def create_quiz(
        self,
        creator_id: int,
        title: str,
        description: str = "",
        quiz_type: QuizType = QuizType.COUPLES,
        difficulty: Difficulty = Difficulty.MEDIUM,
        is_public: bool = True,
    ) -> Quiz:
        with self._lock:
            return self._quizzes.create_quiz(
                creator_id, title, description, quiz_type, difficulty, is_public
            )

    def get_quiz(self, quiz_id: int) -> Quiz | None:
        with self._lock:
            return self._quizzes.get_quiz(quiz_id)

    def get_quiz_by_code(self, code: str) -> Quiz | None:
        with self._lock:
            return self._quizzes.get_quiz_by_code(code)

    def get_quizzes(self, limit: int | None = None, public_only: bool = False) -> list[Quiz]:
        with self._lock:
            return self._quizzes.get_quizzes(limit, public_only)

    def get_quizzes_by_creator(self, creator_id: int) -> list[Quiz]:
        with self._lock:
            return self._quizzes.get_quizzes_by_creator(creator_id)

    def add_question(self, quiz_id: int, draft: QuestionDraft) -> Question:
        with self._lock:
            return self._quizzes.add_question(quiz_id, draft)

    def get_question(self, question_id: int) -> Question | None:
        with self._lock:
            return self._quizzes.get_question(question_id)

    def get_questions(self, quiz_id: int) -> list[Question]:
        with self._lock:
            return self._quizzes.get_questions(quiz_id)

    # --- Participants & Answers ---

    def create_participant(
        self, quiz_id: int, display_name: str, user_id: int | None = None
    ) -> Participant:
        with self._lock:
            return self._quizzes.create_participant(quiz_id, display_name, user_id)

    def get_participant(self, participant_id: int) -> Participant | None:
        with self._lock:
            return self._quizzes.get_participant(participant_id)

    def get_participant_for_user(self, quiz_id: int, user_id: int) -> Participant | None:
        with self._lock:
            return self._quizzes.get_participant_for_user(quiz_id, user_id)

    def get_participants(self, quiz_id: int) -> list[Participant]:
        with self._lock:
            return self._quizzes.get_participants(quiz_id)

    def increment_score(self, participant_id: int) -> Participant:
        with self._lock:
            return self._quizzes.increment_score(participant_id)

    def create_answer(
        self,
        participant_id: int,
        question_id: int,
        selected_option_id: int,
        is_correct: bool,
    ) -> Answer:
        with self._lock:
            return self._quizzes.create_answer(
                participant_id, question_id, selected_option_id, is_correct
            )

    def get_answer(self, participant_id: int, question_id: int) -> Answer | None:
        with self._lock:
            return self._quizzes.get_answer(participant_id, question_id)

    def get_answers_for_participant(self, participant_id: int) -> list[Answer]:
        with self._lock:
            return self._quizzes.get_answers_for_participant(participant_id)
