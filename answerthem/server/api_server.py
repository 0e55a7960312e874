"""FastAPI server exposing the bot dashboard and quiz endpoints."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.responses import JSONResponse
import uvicorn

from answerthem.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from answerthem.constants.bot_constants import COMMANDS, RECENT_MENTIONS_LIMIT
from answerthem.constants.network_constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    SESSION_COOKIE,
    SESSION_MAX_AGE_SECONDS,
)
from answerthem.core.bot_manager import BackendFactory, BotManager, MentionSource, bot_config_from_settings
from answerthem.core.entity_store import EntityStore
from answerthem.core.errors import AnswerThemError, AuthenticationError, ValidationError
from answerthem.core.models import QuestionDraft, QuestionOption, User
from answerthem.core.question_generator import QuestionGenerator
from answerthem.core.quiz_manager import QuizManager
from answerthem.core.services.mention_poller import MentionPoller
from answerthem.core.twitter_client import TwitterClient
from answerthem.server import serializers
from answerthem.server.schemas import (
    AnswerPayload,
    ConnectPayload,
    CredentialsPayload,
    GeneratePayload,
    JoinPayload,
    OpenAIPayload,
    PersonalityQuizPayload,
    QuestionPayload,
    QuizPayload,
    RespondPayload,
)
from answerthem.utils.settings import Settings

logger = logging.getLogger(__name__)


def _get_dependency(value):
    def dependency():
        return value

    return dependency


def _question_draft(payload: QuestionPayload) -> QuestionDraft:
    if payload.text is None or payload.options is None or payload.correct_option_id is None:
        raise ValidationError("Manual questions need text, options and correctOptionId.")
    return QuestionDraft(
        text=payload.text,
        options=[QuestionOption(id=option.id, text=option.text) for option in payload.options],
        correct_option_id=payload.correct_option_id,
        explanation=payload.explanation,
    )


def create_api_app(
    store: EntityStore | None = None,
    settings: Settings | None = None,
    twitter_client: MentionSource | None = None,
    backend_factory: BackendFactory | None = None,
) -> FastAPI:
    """Create a FastAPI application wired to one entity store and its services."""
    settings = settings or Settings()
    store = store or EntityStore(bot_config_from_settings(settings))
    twitter = twitter_client or TwitterClient(timeout=settings.external_call_timeout_seconds)
    bot = BotManager(store, twitter, settings, backend_factory)

    def question_generator() -> QuestionGenerator | None:
        api_key = store.get_bot_config().openai_api_key
        if not api_key:
            return None
        return QuestionGenerator(bot.completion_backend(api_key))

    quizzes = QuizManager(store, question_generator)
    poller = MentionPoller(bot.ingest_once, settings.poll_interval_seconds)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        await bot.restore_connections()
        if settings.enable_poller:
            poller.start()
        try:
            yield
        finally:
            await poller.stop()

    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        description=APP_ABOUT_TEXT,
        license_info={"name": APP_LICENSE},
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.bot_manager = bot
    app.state.quiz_manager = quizzes
    app.state.poller = poller

    store_dep = _get_dependency(store)
    bot_dep = _get_dependency(bot)
    quiz_dep = _get_dependency(quizzes)

    @app.exception_handler(AnswerThemError)
    async def handle_domain_error(_: Request, exc: AnswerThemError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    def current_user(request: Request, entities: EntityStore = Depends(store_dep)) -> User | None:
        token = request.cookies.get(SESSION_COOKIE)
        if not token:
            return None
        return entities.get_user_by_session(token)

    def require_user(user: User | None = Depends(current_user)) -> User:
        if user is None:
            raise AuthenticationError("Not authenticated")
        return user

    def start_session(response: Response, entities: EntityStore, user: User) -> None:
        response.set_cookie(
            key=SESSION_COOKIE,
            value=entities.create_session(user.id),
            max_age=SESSION_MAX_AGE_SECONDS,
            samesite="lax",
            httponly=True,
            secure=settings.cookie_secure,
        )

    @app.get("/health")
    def health() -> dict[str, object]:
        return {"status": "ok", "pollerRunning": poller.is_running()}

    # --- Bot dashboard ---

    @app.get("/api/status")
    def get_status(manager: BotManager = Depends(bot_dep)) -> dict[str, object]:
        return serializers.status_payload(manager.get_status())

    @app.get("/api/stats")
    def get_stats(entities: EntityStore = Depends(store_dep)) -> dict[str, object]:
        return serializers.stats_payload(entities.get_stats())

    @app.get("/api/mentions")
    def get_mentions(entities: EntityStore = Depends(store_dep)) -> list[dict[str, object]]:
        return [
            serializers.mention_payload(mention)
            for mention in entities.get_recent_mentions(RECENT_MENTIONS_LIMIT)
        ]

    @app.get("/api/commands")
    def get_commands() -> list[dict[str, str]]:
        return COMMANDS

    @app.post("/api/connect")
    async def connect_twitter(
        payload: ConnectPayload,
        manager: BotManager = Depends(bot_dep),
    ) -> dict[str, object]:
        username = await manager.connect_twitter(
            payload.access_token, payload.access_secret, payload.api_key, payload.api_secret
        )
        return {"success": True, "username": username}

    @app.post("/api/openai")
    async def configure_openai(
        payload: OpenAIPayload,
        manager: BotManager = Depends(bot_dep),
    ) -> dict[str, object]:
        await manager.configure_openai(payload.api_key)
        return {"success": True}

    @app.post("/api/toggle")
    def toggle_bot(manager: BotManager = Depends(bot_dep)) -> dict[str, object]:
        return {"active": manager.toggle()}

    @app.post("/api/generate")
    async def generate_response(
        payload: GeneratePayload,
        manager: BotManager = Depends(bot_dep),
    ) -> dict[str, object]:
        mention = await manager.generate_for_mention(payload.tweet_id, payload.mode)
        return serializers.mention_payload(mention)

    @app.post("/api/respond")
    async def send_response(
        payload: RespondPayload,
        manager: BotManager = Depends(bot_dep),
    ) -> dict[str, object]:
        mention = await manager.respond_to_mention(payload.tweet_id)
        return serializers.mention_payload(mention)

    # --- Accounts ---

    @app.post("/api/register", status_code=201)
    def register(
        payload: CredentialsPayload,
        response: Response,
        entities: EntityStore = Depends(store_dep),
    ) -> dict[str, object]:
        user = entities.create_user(payload.username, payload.password)
        start_session(response, entities, user)
        logger.info("Registered user %d", user.id)
        return serializers.user_payload(user)

    @app.post("/api/login")
    def login(
        payload: CredentialsPayload,
        response: Response,
        entities: EntityStore = Depends(store_dep),
    ) -> dict[str, object]:
        user = entities.authenticate(payload.username, payload.password)
        if user is None:
            raise AuthenticationError("Invalid username or password")
        start_session(response, entities, user)
        return serializers.user_payload(user)

    @app.post("/api/logout")
    def logout(
        request: Request,
        response: Response,
        entities: EntityStore = Depends(store_dep),
    ) -> dict[str, object]:
        token = request.cookies.get(SESSION_COOKIE)
        if token:
            entities.delete_session(token)
        response.delete_cookie(SESSION_COOKIE)
        return {"success": True}

    @app.get("/api/user")
    def get_user(user: User = Depends(require_user)) -> dict[str, object]:
        return serializers.user_payload(user)

    # --- Quizzes ---
    # Fixed paths are declared before the ``{quiz_id}`` routes they would otherwise shadow.

    @app.post("/api/quizzes", status_code=201)
    def create_quiz(
        payload: QuizPayload,
        user: User = Depends(require_user),
        manager: QuizManager = Depends(quiz_dep),
    ) -> dict[str, object]:
        quiz = manager.create_quiz(
            user, payload.title, payload.description, payload.type, payload.difficulty, payload.is_public
        )
        return serializers.quiz_payload(manager.get_quiz_detail(quiz.id), user, include_questions=True)

    @app.get("/api/quizzes")
    def list_quizzes(
        limit: int | None = None,
        user: User | None = Depends(current_user),
        manager: QuizManager = Depends(quiz_dep),
    ) -> list[dict[str, object]]:
        return [serializers.quiz_payload(detail, user) for detail in manager.list_quizzes(limit)]

    @app.get("/api/quizzes/mine")
    def list_my_quizzes(
        user: User = Depends(require_user),
        manager: QuizManager = Depends(quiz_dep),
    ) -> list[dict[str, object]]:
        return [serializers.quiz_payload(detail, user) for detail in manager.list_quizzes_for(user)]

    @app.post("/api/quizzes/generate/personality", status_code=201)
    async def create_personality_quiz(
        payload: PersonalityQuizPayload,
        user: User = Depends(require_user),
        manager: QuizManager = Depends(quiz_dep),
    ) -> dict[str, object]:
        quiz, questions = await manager.create_personality_quiz(
            user,
            payload.title,
            payload.description,
            payload.type,
            payload.difficulty,
            payload.personality_text,
            payload.count,
            payload.is_public,
        )
        return {"quizId": quiz.id, "questionCount": len(questions)}

    @app.post("/api/quizzes/join", status_code=201)
    def join_quiz(
        payload: JoinPayload,
        user: User | None = Depends(current_user),
        manager: QuizManager = Depends(quiz_dep),
    ) -> dict[str, object]:
        participant = manager.join(payload.quiz_id, payload.code, payload.display_name, user)
        return serializers.participant_payload(participant)

    @app.post("/api/quizzes/answer", status_code=201)
    def submit_answer(
        payload: AnswerPayload,
        manager: QuizManager = Depends(quiz_dep),
    ) -> dict[str, object]:
        result = manager.submit_answer(
            payload.participant_id, payload.question_id, payload.selected_option_id
        )
        return serializers.answer_result_payload(result)

    @app.get("/api/quizzes/{quiz_id}")
    def get_quiz(
        quiz_id: int,
        user: User | None = Depends(current_user),
        manager: QuizManager = Depends(quiz_dep),
    ) -> dict[str, object]:
        detail = manager.get_quiz_detail(quiz_id)
        return serializers.quiz_payload(detail, user, include_questions=True)

    @app.post("/api/quizzes/{quiz_id}/questions", status_code=201)
    async def add_questions(
        quiz_id: int,
        payload: QuestionPayload,
        user: User = Depends(require_user),
        manager: QuizManager = Depends(quiz_dep),
    ) -> list[dict[str, object]]:
        draft = None if payload.generate else _question_draft(payload)
        questions = await manager.add_questions(
            quiz_id, user, draft, generate=payload.generate, count=payload.count
        )
        return [serializers.question_payload(question, reveal_answer=True) for question in questions]

    @app.get("/api/quizzes/{quiz_id}/leaderboard")
    def get_leaderboard(
        quiz_id: int,
        limit: int | None = Query(default=None, ge=1),
        manager: QuizManager = Depends(quiz_dep),
    ) -> list[dict[str, object]]:
        return serializers.leaderboard_payload(manager.leaderboard(quiz_id, limit))

    @app.get("/api/participants/{participant_id}")
    def get_participant(
        participant_id: int,
        manager: QuizManager = Depends(quiz_dep),
    ) -> dict[str, object]:
        return serializers.participant_view_payload(manager.participant_view(participant_id))

    return app


def run_api_server(
    app: FastAPI,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    log_level: str = "info",
) -> None:
    """Serve ``app`` with uvicorn in the current thread until interrupted."""
    config = uvicorn.Config(app=app, host=host, port=port, log_level=log_level.lower())
    server = uvicorn.Server(config)
    server.run()
