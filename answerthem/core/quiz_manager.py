"""Business logic for creating, joining and scoring relationship quizzes."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
import hmac
import logging

from answerthem.constants.quiz_constants import DEFAULT_GENERATED_QUESTION_COUNT
from answerthem.core.entity_store import EntityStore
from answerthem.core.errors import (
    ConfigurationError,
    ConflictError,
    InvalidCodeError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from answerthem.core.models import (
    Answer,
    AnswerResult,
    Difficulty,
    LeaderboardEntry,
    Participant,
    Question,
    QuestionDraft,
    Quiz,
    QuizType,
    User,
)
from answerthem.core.name_assigner import NameAssigner
from answerthem.core.question_generator import QuestionGenerator
from answerthem.core.services.scoreboard import build_leaderboard

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class QuizDetail:
    quiz: Quiz
    creator: User | None
    questions: list[Question]
    participant_count: int


@dataclass(slots=True)
class ParticipantView:
    """Everything a player's screen needs: progress, questions and standings."""

    participant: Participant
    quiz: Quiz
    questions: list[Question]
    answers: list[Answer]
    leaderboard: list[LeaderboardEntry]


class QuizManager:
    """Facade over the entity store for quiz authoring and play."""

    def __init__(
        self,
        store: EntityStore,
        generator_factory: Callable[[], QuestionGenerator | None] | None = None,
        name_assigner: NameAssigner | None = None,
    ) -> None:
        self._store = store
        self._generator_factory = generator_factory or (lambda: None)
        self._names = name_assigner or NameAssigner()

    # --- Authoring ---

    def create_quiz(
        self,
        creator: User,
        title: str,
        description: str = "",
        quiz_type: QuizType = QuizType.COUPLES,
        difficulty: Difficulty = Difficulty.MEDIUM,
        is_public: bool = True,
    ) -> Quiz:
        quiz = self._store.create_quiz(
            creator.id, title, description, quiz_type, difficulty, is_public
        )
        logger.info("Quiz %d created by user %d", quiz.id, creator.id)
        return quiz

    def list_quizzes(self, limit: int | None = None) -> list[QuizDetail]:
        return [self._detail(quiz) for quiz in self._store.get_quizzes(limit, public_only=True)]

    def list_quizzes_for(self, user: User) -> list[QuizDetail]:
        return [self._detail(quiz) for quiz in self._store.get_quizzes_by_creator(user.id)]

    def get_quiz_detail(self, quiz_id: int) -> QuizDetail:
        quiz = self._store.get_quiz(quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz not found")
        return self._detail(quiz)

    def _detail(self, quiz: Quiz) -> QuizDetail:
        return QuizDetail(
            quiz=quiz,
            creator=self._store.get_user(quiz.creator_id),
            questions=self._store.get_questions(quiz.id),
            participant_count=len(self._store.get_participants(quiz.id)),
        )

    async def add_questions(
        self,
        quiz_id: int,
        user: User,
        draft: QuestionDraft | None = None,
        generate: bool = False,
        count: int = DEFAULT_GENERATED_QUESTION_COUNT,
    ) -> list[Question]:
        """Add one hand-written question, or ``count`` generated ones."""
        if generate:
            return await self.generate_questions(quiz_id, user, count)
        if draft is None:
            raise ValidationError("A question is required unless generating.")
        return [self.add_question(quiz_id, user, draft)]

    def add_question(self, quiz_id: int, user: User, draft: QuestionDraft) -> Question:
        self._require_creator(quiz_id, user)
        return self._store.add_question(quiz_id, draft)

    async def generate_questions(
        self,
        quiz_id: int,
        user: User,
        count: int,
        personality_text: str | None = None,
    ) -> list[Question]:
        quiz = self._require_creator(quiz_id, user)
        generator = self._generator_factory()
        if generator is None:
            raise ConfigurationError("OpenAI API key not configured")

        drafts = await generator.generate(quiz, count, personality_text)
        return self._store_drafts(quiz_id, drafts)

    def _store_drafts(self, quiz_id: int, drafts: list[QuestionDraft]) -> list[Question]:
        # Drafts that slipped past the parser are dropped rather than failing the batch.
        questions: list[Question] = []
        for draft in drafts:
            try:
                questions.append(self._store.add_question(quiz_id, draft))
            except ValidationError as exc:
                logger.warning("Skipping generated question for quiz %d: %s", quiz_id, exc)
        return questions

    async def create_personality_quiz(
        self,
        creator: User,
        title: str,
        description: str,
        quiz_type: QuizType,
        difficulty: Difficulty,
        personality_text: str,
        count: int,
        is_public: bool = True,
    ) -> tuple[Quiz, list[Question]]:
        """Generate first, then store; a failed generation leaves no quiz behind."""
        if not title.strip():
            raise ValidationError("Quiz title must not be empty.")
        generator = self._generator_factory()
        if generator is None:
            raise ConfigurationError("OpenAI API key not configured")

        draft_quiz = Quiz(
            id=0,
            title=title.strip(),
            description=description.strip(),
            creator_id=creator.id,
            code="",
            created_at=datetime.utcnow(),
            quiz_type=quiz_type,
            difficulty=difficulty,
            is_public=is_public,
        )
        drafts = await generator.generate(draft_quiz, count, personality_text)

        with self._store.transaction() as store:
            quiz = store.create_quiz(creator.id, title, description, quiz_type, difficulty, is_public)
            questions = self._store_drafts(quiz.id, drafts)
        logger.info("Personality quiz %d created with %d questions", quiz.id, len(questions))
        return quiz, questions

    def _require_creator(self, quiz_id: int, user: User) -> Quiz:
        quiz = self._store.get_quiz(quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz not found")
        if quiz.creator_id != user.id:
            raise PermissionDeniedError("Only the quiz creator can add questions")
        return quiz

    # --- Play ---

    def join(
        self,
        quiz_id: int | None,
        code: str,
        display_name: str | None = None,
        user: User | None = None,
    ) -> Participant:
        """Join by code; an authenticated user always gets the same participant back.

        Without a ``quiz_id`` the code alone picks the quiz.
        """
        with self._store.transaction() as store:
            if quiz_id is None:
                quiz = store.get_quiz_by_code(code)
                if quiz is None:
                    raise InvalidCodeError("Invalid quiz code")
                quiz_id = quiz.id
            quiz = store.get_quiz(quiz_id)
            if quiz is None:
                raise NotFoundError("Quiz not found")
            if not hmac.compare_digest(code.encode("utf-8"), quiz.code.encode("utf-8")):
                raise InvalidCodeError("Invalid quiz code")

            if user is not None:
                existing = store.get_participant_for_user(quiz_id, user.id)
                if existing is not None:
                    return existing

            name = (display_name or "").strip()
            if not name:
                name = user.username if user is not None else self._names.next_name()
            participant = store.create_participant(
                quiz_id, name, user.id if user is not None else None
            )
        logger.info("Participant %d joined quiz %d", participant.id, quiz_id)
        return participant

    def submit_answer(
        self,
        participant_id: int,
        question_id: int,
        selected_option_id: int,
    ) -> AnswerResult:
        """Record an answer once; a correct answer adds exactly one point."""
        with self._store.transaction() as store:
            participant = store.get_participant(participant_id)
            if participant is None:
                raise NotFoundError("Participant not found")
            question = store.get_question(question_id)
            if question is None:
                raise NotFoundError("Question not found")
            if question.quiz_id != participant.quiz_id:
                raise ValidationError("Question does not belong to the participant's quiz")
            if not question.has_option(selected_option_id):
                raise ValidationError(f"Option {selected_option_id} is not an option of this question")
            if store.get_answer(participant_id, question_id) is not None:
                raise ConflictError("Question already answered")

            is_correct = selected_option_id == question.correct_option_id
            answer = store.create_answer(participant_id, question_id, selected_option_id, is_correct)
            if is_correct:
                participant = store.increment_score(participant_id)

            return AnswerResult(
                answer=answer,
                is_correct=is_correct,
                correct_option_id=question.correct_option_id,
                explanation=question.explanation,
                score=participant.score,
            )

    def leaderboard(self, quiz_id: int, limit: int | None = None) -> list[LeaderboardEntry]:
        with self._store.transaction() as store:
            if store.get_quiz(quiz_id) is None:
                raise NotFoundError("Quiz not found")
            return build_leaderboard(store.get_participants(quiz_id), limit)

    def participant_view(self, participant_id: int) -> ParticipantView:
        with self._store.transaction() as store:
            participant = store.get_participant(participant_id)
            if participant is None:
                raise NotFoundError("Participant not found")
            quiz = store.get_quiz(participant.quiz_id)
            if quiz is None:
                raise NotFoundError("Quiz not found")
            return ParticipantView(
                participant=participant,
                quiz=quiz,
                questions=store.get_questions(quiz.id),
                answers=store.get_answers_for_participant(participant_id),
                leaderboard=build_leaderboard(store.get_participants(quiz.id)),
            )
