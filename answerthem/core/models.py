"""Domain models for the mention bot and the quiz service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class ResponseMode(str, Enum):
    """Tone of a generated reply."""

    WITTY = "witty"
    ROAST = "roast"
    DEBATE = "debate"
    PEACE = "peace"


class ResponseStatus(str, Enum):
    """Delivery state of a mention's reply."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class QuizType(str, Enum):
    COUPLES = "couples"
    FRIENDS = "friends"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass(slots=True)
class User:
    """Registered account able to create quizzes."""

    id: int
    username: str
    password_hash: str
    created_at: datetime


@dataclass(slots=True)
class BotConfig:
    """Single-tenant configuration record for the mention bot."""

    twitter_access_token: str | None = None
    twitter_access_secret: str | None = None
    twitter_api_key: str | None = None
    twitter_api_secret: str | None = None
    twitter_username: str | None = None
    openai_api_key: str | None = None
    bot_active: bool = False
    auto_post: bool = True

    def has_twitter_credentials(self) -> bool:
        return all(
            (
                self.twitter_access_token,
                self.twitter_access_secret,
                self.twitter_api_key,
                self.twitter_api_secret,
            )
        )


@dataclass(slots=True)
class FetchedMention:
    """A mention as returned by the social-media client, before it is stored."""

    tweet_id: str
    text: str
    created_at: datetime
    author_username: str
    author_name: str | None = None
    author_profile_image: str | None = None


@dataclass(slots=True)
class Mention:
    """Stored mention plus the state of the bot's reply to it."""

    id: int
    tweet_id: str
    author_username: str
    content: str
    created_at: datetime
    author_name: str | None = None
    author_profile_image: str | None = None
    response_id: str | None = None
    response_content: str | None = None
    response_mode: ResponseMode | None = None
    response_status: ResponseStatus = ResponseStatus.PENDING
    response_sent_at: datetime | None = None


def _empty_mode_counts() -> dict[ResponseMode, int]:
    return {mode: 0 for mode in ResponseMode}


@dataclass(slots=True)
class ResponseStats:
    """Aggregate counters for replies that were actually posted."""

    total_responses: int = 0
    today_responses: int = 0
    mode_counts: dict[ResponseMode, int] = field(default_factory=_empty_mode_counts)
    stats_date: date = field(default_factory=date.today)


@dataclass(slots=True)
class Classification:
    """Result of mapping free text onto a reply mode."""

    mode: ResponseMode
    confidence: float


@dataclass(slots=True)
class IngestionReport:
    """Counters describing one pass of the mention ingestion loop."""

    ran: bool = True
    fetched: int = 0
    ingested: int = 0
    skipped: int = 0
    drafted: int = 0
    sent: int = 0
    failed: int = 0
    errors: int = 0


@dataclass(slots=True)
class Quiz:
    id: int
    title: str
    description: str
    creator_id: int
    code: str
    created_at: datetime
    quiz_type: QuizType = QuizType.COUPLES
    difficulty: Difficulty = Difficulty.MEDIUM
    is_public: bool = True


@dataclass(slots=True)
class QuestionOption:
    id: int
    text: str


@dataclass(slots=True)
class Question:
    """Multiple-choice question; ``correct_option_id`` names one of ``options``."""

    id: int
    quiz_id: int
    text: str
    options: list[QuestionOption]
    correct_option_id: int
    explanation: str | None = None
    created_at: datetime | None = None

    def has_option(self, option_id: int) -> bool:
        return any(option.id == option_id for option in self.options)


@dataclass(slots=True)
class Participant:
    id: int
    quiz_id: int
    display_name: str
    joined_at: datetime
    user_id: int | None = None
    score: int = 0


@dataclass(frozen=True, slots=True)
class Answer:
    """Recorded answer. Correctness is fixed at submission time."""

    id: int
    participant_id: int
    question_id: int
    selected_option_id: int
    is_correct: bool
    answered_at: datetime


@dataclass(slots=True)
class AnswerResult:
    answer: Answer
    is_correct: bool
    correct_option_id: int
    explanation: str | None
    score: int


@dataclass(slots=True)
class LeaderboardEntry:
    """Ranked snapshot of a participant's score."""

    rank: int
    participant_id: int
    display_name: str
    score: int
    user_id: int | None = None


@dataclass(slots=True)
class QuestionDraft:
    """Question content before it is stored; produced by forms or the generator."""

    text: str
    options: list[QuestionOption]
    correct_option_id: int
    explanation: str | None = None
