"""AI-assisted question writing for relationship quizzes."""

from __future__ import annotations

import json
import logging
from typing import Any

from answerthem.constants.quiz_constants import (
    GENERATED_OPTIONS_PER_QUESTION,
    MAX_GENERATED_QUESTION_COUNT,
    MAX_OPTIONS_PER_QUESTION,
    MIN_OPTIONS_PER_QUESTION,
)
from answerthem.core.errors import GenerationFailedError
from answerthem.core.models import QuestionDraft, QuestionOption, Quiz
from answerthem.core.response_generator import CompletionBackend

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You write fun multiple-choice questions for relationship quizzes that friends and couples "
    "play to find out how well they know each other. "
    'Respond with JSON in this format: { "questions": [ { "text": string, "options": [string, ...], '
    '"correctOptionIndex": number, "explanation": string } ] }. '
    f"Every question has exactly {GENERATED_OPTIONS_PER_QUESTION} options and correctOptionIndex is "
    "the zero-based index of the correct option."
)


def build_question_prompt(quiz: Quiz, count: int, personality_text: str | None = None) -> str:
    lines = [
        f"Quiz title: {quiz.title}",
        f"Quiz description: {quiz.description or 'none'}",
        f"Audience: {quiz.quiz_type.value}",
        f"Difficulty: {quiz.difficulty.value}",
        f"Write {count} new questions.",
    ]
    if personality_text:
        lines.append(
            "Personalise the questions using this description of the participants:\n"
            f"{personality_text.strip()}"
        )
    return "\n".join(lines)


def parse_generated_questions(payload: dict[str, Any]) -> list[QuestionDraft]:
    """Turn the model's JSON into drafts, dropping any malformed question."""
    drafts: list[QuestionDraft] = []
    for item in payload.get("questions") or []:
        if not isinstance(item, dict):
            continue
        text = item.get("text")
        options = item.get("options")
        correct_index = item.get("correctOptionIndex")
        if not isinstance(text, str) or not text.strip():
            continue
        if not isinstance(options, list) or not MIN_OPTIONS_PER_QUESTION <= len(options) <= MAX_OPTIONS_PER_QUESTION:
            continue
        if not all(isinstance(option, str) and option.strip() for option in options):
            continue
        if isinstance(correct_index, bool) or not isinstance(correct_index, int):
            continue
        if not 0 <= correct_index < len(options):
            continue
        explanation = item.get("explanation")
        drafts.append(
            QuestionDraft(
                text=text,
                options=[QuestionOption(id=index + 1, text=option) for index, option in enumerate(options)],
                correct_option_id=correct_index + 1,
                explanation=explanation if isinstance(explanation, str) else None,
            )
        )
    return drafts


class QuestionGenerator:
    """Asks the language model for quiz questions."""

    def __init__(self, backend: CompletionBackend) -> None:
        self._backend = backend

    async def generate(self, quiz: Quiz, count: int, personality_text: str | None = None) -> list[QuestionDraft]:
        count = max(1, min(MAX_GENERATED_QUESTION_COUNT, count))
        prompt = build_question_prompt(quiz, count, personality_text)
        try:
            payload = await self._backend.complete_json(_SYSTEM_PROMPT, prompt)
        except Exception as exc:
            raise GenerationFailedError("Failed to generate questions") from exc

        drafts = parse_generated_questions(payload)[:count]
        if not drafts:
            logger.warning("Question generation returned nothing usable: %s", json.dumps(payload)[:200])
            raise GenerationFailedError("Question generation returned no usable questions")
        return drafts
