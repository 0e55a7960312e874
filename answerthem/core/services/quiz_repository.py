"""Service for storing quizzes, their questions, participants and answers."""

from __future__ import annotations

from datetime import datetime
import secrets

from answerthem.constants.quiz_constants import (
    JOIN_CODE_ALPHABET,
    JOIN_CODE_LENGTH,
    MAX_OPTIONS_PER_QUESTION,
    MIN_OPTIONS_PER_QUESTION,
)
from answerthem.core.errors import NotFoundError, ValidationError
from answerthem.core.models import (
    Answer,
    Difficulty,
    Participant,
    Question,
    QuestionDraft,
    QuestionOption,
    Quiz,
    QuizType,
)


class QuizRepository:
    """Manages the quiz -> question -> participant -> answer relations."""

    def __init__(self) -> None:
        self._quizzes: dict[int, Quiz] = {}
        self._questions: dict[int, Question] = {}
        self._participants: dict[int, Participant] = {}
        self._answers: dict[int, Answer] = {}
        self._quiz_counter: int = 0
        self._question_counter: int = 0
        self._participant_counter: int = 0
        self._answer_counter: int = 0

    # --- Quizzes ---

    def create_quiz(
        self,
        creator_id: int,
        title: str,
        description: str = "",
        quiz_type: QuizType = QuizType.COUPLES,
        difficulty: Difficulty = Difficulty.MEDIUM,
        is_public: bool = True,
    ) -> Quiz:
        cleaned_title = title.strip()
        if not cleaned_title:
            raise ValidationError("Quiz title must not be empty.")

        self._quiz_counter += 1
        quiz = Quiz(
            id=self._quiz_counter,
            title=cleaned_title,
            description=description.strip(),
            creator_id=creator_id,
            code=self._new_join_code(),
            created_at=datetime.utcnow(),
            quiz_type=quiz_type,
            difficulty=difficulty,
            is_public=is_public,
        )
        self._quizzes[quiz.id] = quiz
        return quiz

    def get_quiz(self, quiz_id: int) -> Quiz | None:
        return self._quizzes.get(quiz_id)

    def get_quiz_by_code(self, code: str) -> Quiz | None:
        return next((q for q in self._quizzes.values() if q.code == code.strip().upper()), None)

    def get_quizzes(self, limit: int | None = None, public_only: bool = False) -> list[Quiz]:
        """Return quizzes newest first; ties keep insertion order."""
        quizzes = [q for q in self._quizzes.values() if q.is_public or not public_only]
        ordered = sorted(quizzes, key=lambda q: q.created_at, reverse=True)
        if limit is not None:
            return ordered[: max(0, limit)]
        return ordered

    def get_quizzes_by_creator(self, creator_id: int) -> list[Quiz]:
        mine = [q for q in self._quizzes.values() if q.creator_id == creator_id]
        return sorted(mine, key=lambda q: q.created_at, reverse=True)

    def _new_join_code(self) -> str:
        existing = {quiz.code for quiz in self._quizzes.values()}
        while True:
            code = "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH))
            if code not in existing:
                return code

    # --- Questions ---

    def add_question(self, quiz_id: int, draft: QuestionDraft) -> Question:
        if quiz_id not in self._quizzes:
            raise NotFoundError(f"Quiz {quiz_id} not found")
        prepared = self._prepare_question(draft)

        self._question_counter += 1
        question = Question(
            id=self._question_counter,
            quiz_id=quiz_id,
            text=prepared.text,
            options=prepared.options,
            correct_option_id=prepared.correct_option_id,
            explanation=prepared.explanation,
            created_at=datetime.utcnow(),
        )
        self._questions[question.id] = question
        return question

    def get_question(self, question_id: int) -> Question | None:
        return self._questions.get(question_id)

    def get_questions(self, quiz_id: int) -> list[Question]:
        return [q for q in self._questions.values() if q.quiz_id == quiz_id]

    def _prepare_question(self, draft: QuestionDraft) -> QuestionDraft:
        """Validate and normalize a question before storage."""
        cleaned_text = draft.text.strip()
        if not cleaned_text:
            raise ValidationError("Question text must not be empty.")

        options = self._validate_options(draft.options)
        if not any(option.id == draft.correct_option_id for option in options):
            raise ValidationError(
                f"Correct option {draft.correct_option_id} is not one of the question's options."
            )

        explanation = (draft.explanation or "").strip() or None
        return QuestionDraft(
            text=cleaned_text,
            options=options,
            correct_option_id=draft.correct_option_id,
            explanation=explanation,
        )

    @staticmethod
    def _validate_options(options: list[QuestionOption]) -> list[QuestionOption]:
        if not MIN_OPTIONS_PER_QUESTION <= len(options) <= MAX_OPTIONS_PER_QUESTION:
            raise ValidationError(
                f"Each question must have between {MIN_OPTIONS_PER_QUESTION} and "
                f"{MAX_OPTIONS_PER_QUESTION} options."
            )
        cleaned = [QuestionOption(id=option.id, text=option.text.strip()) for option in options]
        if any(not option.text for option in cleaned):
            raise ValidationError("Option text cannot be empty.")
        if len({option.id for option in cleaned}) != len(cleaned):
            raise ValidationError("Option identifiers must be unique within a question.")
        return cleaned

    # --- Participants ---

    def create_participant(
        self, quiz_id: int, display_name: str, user_id: int | None = None
    ) -> Participant:
        if quiz_id not in self._quizzes:
            raise NotFoundError(f"Quiz {quiz_id} not found")

        self._participant_counter += 1
        participant = Participant(
            id=self._participant_counter,
            quiz_id=quiz_id,
            display_name=display_name,
            joined_at=datetime.utcnow(),
            user_id=user_id,
        )
        self._participants[participant.id] = participant
        return participant

    def get_participant(self, participant_id: int) -> Participant | None:
        return self._participants.get(participant_id)

    def get_participant_for_user(self, quiz_id: int, user_id: int) -> Participant | None:
        return next(
            (
                p
                for p in self._participants.values()
                if p.quiz_id == quiz_id and p.user_id == user_id
            ),
            None,
        )

    def get_participants(self, quiz_id: int) -> list[Participant]:
        """Return the quiz's participants in creation order."""
        return [p for p in self._participants.values() if p.quiz_id == quiz_id]

    def increment_score(self, participant_id: int) -> Participant:
        participant = self._participants.get(participant_id)
        if participant is None:
            raise NotFoundError(f"Participant {participant_id} not found")
        participant.score += 1
        return participant

    # --- Answers ---

    def create_answer(
        self,
        participant_id: int,
        question_id: int,
        selected_option_id: int,
        is_correct: bool,
    ) -> Answer:
        if participant_id not in self._participants:
            raise NotFoundError(f"Participant {participant_id} not found")
        if question_id not in self._questions:
            raise NotFoundError(f"Question {question_id} not found")

        self._answer_counter += 1
        answer = Answer(
            id=self._answer_counter,
            participant_id=participant_id,
            question_id=question_id,
            selected_option_id=selected_option_id,
            is_correct=is_correct,
            answered_at=datetime.utcnow(),
        )
        self._answers[answer.id] = answer
        return answer

    def get_answer(self, participant_id: int, question_id: int) -> Answer | None:
        return next(
            (
                a
                for a in self._answers.values()
                if a.participant_id == participant_id and a.question_id == question_id
            ),
            None,
        )

    def get_answers_for_participant(self, participant_id: int) -> list[Answer]:
        return [a for a in self._answers.values() if a.participant_id == participant_id]
