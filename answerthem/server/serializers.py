"""Conversion of domain objects into the camelCase JSON the clients consume."""

from __future__ import annotations

from datetime import date, datetime, timezone

from answerthem.core.bot_manager import BotStatus
from answerthem.core.markdown_renderer import renderer
from answerthem.core.models import (
    Answer,
    AnswerResult,
    LeaderboardEntry,
    Mention,
    Participant,
    Question,
    ResponseStats,
    User,
)
from answerthem.core.quiz_manager import ParticipantView, QuizDetail


def _iso(value: datetime | date | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc).isoformat()
        return value.astimezone(timezone.utc).isoformat()
    return value.isoformat()


def user_payload(user: User) -> dict[str, object]:
    return {"id": user.id, "username": user.username, "createdAt": _iso(user.created_at)}


def status_payload(status: BotStatus) -> dict[str, object]:
    return {
        "active": status.active,
        "connected": status.connected,
        "username": status.username,
        "description": status.description,
        "autoPost": status.auto_post,
        "openaiConfigured": status.openai_configured,
    }


def stats_payload(stats: ResponseStats) -> dict[str, object]:
    return {
        "totalResponses": stats.total_responses,
        "todayResponses": stats.today_responses,
        "responseTypes": {mode.value: count for mode, count in stats.mode_counts.items()},
        "date": _iso(stats.stats_date),
    }


def mention_payload(mention: Mention) -> dict[str, object]:
    return {
        "id": mention.id,
        "tweetId": mention.tweet_id,
        "authorUsername": mention.author_username,
        "authorName": mention.author_name,
        "authorProfileImage": mention.author_profile_image,
        "content": mention.content,
        "createdAt": _iso(mention.created_at),
        "responseId": mention.response_id,
        "responseContent": mention.response_content,
        "responseMode": mention.response_mode.value if mention.response_mode else None,
        "responseStatus": mention.response_status.value,
        "responseSentAt": _iso(mention.response_sent_at),
    }


def question_payload(question: Question, reveal_answer: bool) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": question.id,
        "quizId": question.quiz_id,
        "text": question.text,
        "options": [{"id": option.id, "text": option.text} for option in question.options],
    }
    if reveal_answer:
        payload["correctOptionId"] = question.correct_option_id
        payload["explanation"] = question.explanation
        payload["explanationHtml"] = renderer.render_fragment(question.explanation)
    return payload


def quiz_payload(detail: QuizDetail, viewer: User | None, include_questions: bool = False) -> dict[str, object]:
    """Serialize a quiz; the join code and answers are only shown to those allowed to see them."""
    quiz = detail.quiz
    is_creator = viewer is not None and viewer.id == quiz.creator_id
    payload: dict[str, object] = {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "descriptionHtml": renderer.render_fragment(quiz.description),
        "type": quiz.quiz_type.value,
        "difficulty": quiz.difficulty.value,
        "isPublic": quiz.is_public,
        "creatorId": quiz.creator_id,
        "creatorUsername": detail.creator.username if detail.creator else None,
        "code": quiz.code if is_creator or quiz.is_public else None,
        "createdAt": _iso(quiz.created_at),
        "questionCount": len(detail.questions),
        "participantCount": detail.participant_count,
    }
    if include_questions:
        payload["questions"] = [
            question_payload(question, reveal_answer=is_creator) for question in detail.questions
        ]
    return payload


def participant_payload(participant: Participant) -> dict[str, object]:
    return {
        "id": participant.id,
        "quizId": participant.quiz_id,
        "userId": participant.user_id,
        "displayName": participant.display_name,
        "score": participant.score,
        "joinedAt": _iso(participant.joined_at),
    }


def leaderboard_payload(entries: list[LeaderboardEntry]) -> list[dict[str, object]]:
    return [
        {
            "rank": entry.rank,
            "participantId": entry.participant_id,
            "userId": entry.user_id,
            "displayName": entry.display_name,
            "score": entry.score,
        }
        for entry in entries
    ]


def answer_result_payload(result: AnswerResult) -> dict[str, object]:
    return {
        "answerId": result.answer.id,
        "questionId": result.answer.question_id,
        "selectedOptionId": result.answer.selected_option_id,
        "isCorrect": result.is_correct,
        "correctOptionId": result.correct_option_id,
        "explanation": result.explanation,
        "explanationHtml": renderer.render_fragment(result.explanation),
        "score": result.score,
    }


def _answer_payload(answer: Answer, question: Question | None) -> dict[str, object]:
    return {
        "id": answer.id,
        "questionId": answer.question_id,
        "selectedOptionId": answer.selected_option_id,
        "isCorrect": answer.is_correct,
        "correctOptionId": question.correct_option_id if question else None,
        "explanation": question.explanation if question else None,
        "answeredAt": _iso(answer.answered_at),
    }


def participant_view_payload(view: ParticipantView) -> dict[str, object]:
    """A player sees every question, but the correct option only for those already answered."""
    questions_by_id = {question.id: question for question in view.questions}
    quiz = view.quiz
    return {
        "participant": participant_payload(view.participant),
        "quiz": {
            "id": quiz.id,
            "title": quiz.title,
            "description": quiz.description,
            "descriptionHtml": renderer.render_fragment(quiz.description),
            "type": quiz.quiz_type.value,
            "difficulty": quiz.difficulty.value,
            "questions": [question_payload(q, reveal_answer=False) for q in view.questions],
        },
        "answers": [_answer_payload(a, questions_by_id.get(a.question_id)) for a in view.answers],
        "leaderboard": leaderboard_payload(view.leaderboard),
    }
