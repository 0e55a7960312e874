"""Request bodies accepted by the HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from answerthem.constants.quiz_constants import (
    DEFAULT_GENERATED_QUESTION_COUNT,
    DESCRIPTION_MAX_LENGTH,
    DISPLAY_NAME_MAX_LENGTH,
    MAX_GENERATED_QUESTION_COUNT,
    MAX_OPTIONS_PER_QUESTION,
    MIN_OPTIONS_PER_QUESTION,
    TITLE_MAX_LENGTH,
    TITLE_MIN_LENGTH,
)
from answerthem.core.models import Difficulty, QuizType, ResponseMode


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConnectPayload(CamelModel):
    access_token: str = Field(min_length=1)
    access_secret: str = Field(min_length=1)
    api_key: str = Field(min_length=1)
    api_secret: str = Field(min_length=1)


class OpenAIPayload(CamelModel):
    api_key: str = Field(min_length=1)


class GeneratePayload(CamelModel):
    tweet_id: str = Field(min_length=1)
    mode: ResponseMode


class RespondPayload(CamelModel):
    tweet_id: str = Field(min_length=1)


class CredentialsPayload(CamelModel):
    username: str
    password: str


class QuizPayload(CamelModel):
    title: str = Field(min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH)
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH)
    type: QuizType = QuizType.COUPLES
    difficulty: Difficulty = Difficulty.MEDIUM
    is_public: bool = True


class PersonalityQuizPayload(QuizPayload):
    personality_text: str = Field(min_length=1, max_length=DESCRIPTION_MAX_LENGTH)
    count: int = Field(
        default=DEFAULT_GENERATED_QUESTION_COUNT, ge=1, le=MAX_GENERATED_QUESTION_COUNT
    )


class OptionPayload(CamelModel):
    id: int
    text: str


class QuestionPayload(CamelModel):
    """Either a hand-written question or a request to generate ``count`` of them."""

    generate: bool = False
    count: int = Field(
        default=DEFAULT_GENERATED_QUESTION_COUNT, ge=1, le=MAX_GENERATED_QUESTION_COUNT
    )
    text: str | None = None
    options: list[OptionPayload] | None = Field(
        default=None, min_length=MIN_OPTIONS_PER_QUESTION, max_length=MAX_OPTIONS_PER_QUESTION
    )
    correct_option_id: int | None = None
    explanation: str | None = None


class JoinPayload(CamelModel):
    quiz_id: int | None = None
    code: str = Field(min_length=1)
    display_name: str | None = Field(default=None, max_length=DISPLAY_NAME_MAX_LENGTH)


class AnswerPayload(CamelModel):
    participant_id: int
    question_id: int
    selected_option_id: int
