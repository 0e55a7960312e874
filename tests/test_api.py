import asyncio

from fastapi.testclient import TestClient
import requests
import tweepy

from answerthem.core.entity_store import EntityStore
from answerthem.core.models import ResponseMode, ResponseStatus
from answerthem.core.twitter_client import TwitterClient
from answerthem.server.api_server import create_api_app

from conftest import make_fetched


def _register(client, username="sam", password="secret-pass"):
    response = client.post("/api/register", json={"username": username, "password": password})
    assert response.status_code == 201
    return response.json()


def _create_quiz(client, **overrides):
    payload = {"title": "How well do you know Sam?", "description": "Be *honest*.", "type": "friends"}
    payload.update(overrides)
    response = client.post("/api/quizzes", json=payload)
    assert response.status_code == 201
    return response.json()


def _add_question(client, quiz_id):
    payload = {
        "text": "Which do I prefer?",
        "options": [{"id": 1, "text": "A"}, {"id": 2, "text": "B"}],
        "correctOptionId": 2,
        "explanation": "Always B.",
    }
    response = client.post(f"/api/quizzes/{quiz_id}/questions", json=payload)
    assert response.status_code == 201
    return response.json()[0]


class TestBotEndpoints:
    """Bot dashboard endpoints"""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_status(self, client):
        data = client.get("/api/status").json()
        assert data["active"] is True
        assert data["connected"] is True
        assert data["username"] == "answerthembot"
        assert data["description"] == "Ready to respond with wit & roasts"

    def test_starts_with_network_down(self, settings, backend, monkeypatch):
        def network_down(self, **kwargs):
            raise requests.exceptions.ConnectionError("network down")

        monkeypatch.setattr(tweepy.Client, "get_me", network_down)
        store = EntityStore()
        store.update_twitter_credentials("at", "as", "ak", "aks", "answerthembot")
        app = create_api_app(
            store=store,
            settings=settings,
            twitter_client=TwitterClient(timeout=5),
            backend_factory=lambda api_key: backend,
        )
        with TestClient(app) as client:
            assert client.get("/health").status_code == 200
            assert client.get("/api/status").json()["connected"] is False

    def test_toggle(self, client):
        assert client.post("/api/toggle").json() == {"active": False}
        assert client.get("/api/status").json()["active"] is False

    def test_commands(self, client):
        commands = client.get("/api/commands").json()
        assert len(commands) == 4
        assert {c["name"] for c in commands} == {"Roast Mode", "Witty Mode", "Debate Mode", "Peace Mode"}

    def test_mentions_and_stats(self, app, client, twitter, backend):
        backend.classification = {"command": "roast", "confidence": 0.95}
        twitter.mentions = [make_fetched("t1", text="roast me")]
        asyncio.run(app.state.bot_manager.ingest_once())

        mentions = client.get("/api/mentions").json()
        assert len(mentions) == 1
        assert mentions[0]["tweetId"] == "t1"
        assert mentions[0]["responseStatus"] == "sent"

        stats = client.get("/api/stats").json()
        assert stats["totalResponses"] == 1
        assert stats["todayResponses"] == 1
        assert stats["responseTypes"]["roast"] == 1
        assert sum(stats["responseTypes"].values()) == 1

    def test_generate_unknown_tweet(self, client):
        response = client.post("/api/generate", json={"tweetId": "missing", "mode": "witty"})
        assert response.status_code == 404
        assert response.json()["detail"] == "Mention not found"

    def test_generate_invalid_mode(self, client):
        response = client.post("/api/generate", json={"tweetId": "t1", "mode": "sing"})
        assert response.status_code == 422

    def test_generate_and_respond(self, client, store, twitter, backend):
        store.create_mention(make_fetched("t1"))
        backend.reply = "Peace and love."
        generated = client.post("/api/generate", json={"tweetId": "t1", "mode": "peace"}).json()
        assert generated["responseContent"] == "Peace and love."
        assert generated["responseStatus"] == "pending"

        sent = client.post("/api/respond", json={"tweetId": "t1"})
        assert sent.status_code == 200
        assert sent.json()["responseStatus"] == "sent"
        assert client.post("/api/respond", json={"tweetId": "t1"}).status_code == 409

    def test_respond_unknown_tweet(self, client):
        response = client.post("/api/respond", json={"tweetId": "nope"})
        assert response.status_code == 404

    def test_respond_post_failure(self, client, store, twitter):
        store.create_mention(make_fetched("t1"))
        store.update_mention_draft("t1", "Hi", ResponseMode.WITTY)
        twitter.fail_posts_for = {"t1"}
        response = client.post("/api/respond", json={"tweetId": "t1"})
        assert response.status_code == 502
        assert store.get_mention_by_tweet_id("t1").response_status is ResponseStatus.FAILED

    def test_connect(self, client, twitter):
        payload = {"accessToken": "at", "accessSecret": "as", "apiKey": "ak", "apiSecret": "aks"}
        response = client.post("/api/connect", json=payload)
        assert response.json() == {"success": True, "username": "answerthembot"}

        twitter.reject_credentials = True
        assert client.post("/api/connect", json=payload).status_code == 400

    def test_connect_missing_field(self, client):
        response = client.post("/api/connect", json={"accessToken": "at"})
        assert response.status_code == 422

    def test_openai_key(self, client, backend):
        assert client.post("/api/openai", json={"apiKey": "sk-new"}).json() == {"success": True}
        backend.fail = True
        assert client.post("/api/openai", json={"apiKey": "sk-bad"}).status_code == 400


class TestAccounts:
    """Registration and sessions"""

    def test_register_login_logout(self, client):
        user = _register(client)
        assert user["username"] == "sam"
        assert client.get("/api/user").json()["id"] == user["id"]

        assert client.post("/api/logout").json() == {"success": True}
        assert client.get("/api/user").status_code == 401

        response = client.post("/api/login", json={"username": "sam", "password": "secret-pass"})
        assert response.status_code == 200
        assert client.get("/api/user").status_code == 200

    def test_bad_login(self, client):
        _register(client)
        client.cookies.clear()
        response = client.post("/api/login", json={"username": "sam", "password": "wrong-pass"})
        assert response.status_code == 401

    def test_duplicate_username(self, client):
        _register(client)
        response = client.post("/api/register", json={"username": "sam", "password": "other-pass"})
        assert response.status_code == 409


class TestQuizEndpoints:
    """Quiz play over HTTP"""

    def test_create_requires_login(self, client):
        response = client.post("/api/quizzes", json={"title": "Anonymous quiz"})
        assert response.status_code == 401

    def test_create_validates_title(self, client):
        _register(client)
        assert client.post("/api/quizzes", json={"title": "x"}).status_code == 422

    def test_full_game(self, client):
        _register(client)
        quiz = _create_quiz(client)
        assert quiz["code"]
        assert quiz["descriptionHtml"] == "<p>Be <em>honest</em>.</p>\n"
        question = _add_question(client, quiz["id"])
        assert question["correctOptionId"] == 2

        client.cookies.clear()
        wrong = "XYZ999" if quiz["code"] != "XYZ999" else "ABC123"
        response = client.post(
            "/api/quizzes/join", json={"quizId": quiz["id"], "code": wrong, "displayName": "Alex"}
        )
        assert response.status_code == 400

        response = client.post(
            "/api/quizzes/join", json={"quizId": quiz["id"], "code": quiz["code"], "displayName": "Alex"}
        )
        assert response.status_code == 201
        participant = response.json()

        answer = {"participantId": participant["id"], "questionId": question["id"], "selectedOptionId": 2}
        result = client.post("/api/quizzes/answer", json=answer)
        assert result.status_code == 201
        assert result.json()["isCorrect"] is True
        assert result.json()["score"] == 1
        assert client.post("/api/quizzes/answer", json=answer).status_code == 409

        view = client.get(f"/api/participants/{participant['id']}").json()
        assert view["participant"]["score"] == 1
        assert view["answers"][0]["correctOptionId"] == 2
        assert "correctOptionId" not in view["quiz"]["questions"][0]
        assert view["leaderboard"][0]["displayName"] == "Alex"
        assert view["leaderboard"][0]["rank"] == 1

        board = client.get(f"/api/quizzes/{quiz['id']}/leaderboard").json()
        assert board[0]["score"] == 1

    def test_join_by_code_only(self, client):
        _register(client)
        quiz = _create_quiz(client)

        client.cookies.clear()
        for name in ("Alex", "Blair"):
            response = client.post("/api/quizzes/join", json={"code": quiz["code"], "displayName": name})
            assert response.status_code == 201
            assert response.json()["quizId"] == quiz["id"]
        assert client.post("/api/quizzes/join", json={"code": "??????"}).status_code == 400

        board = client.get(f"/api/quizzes/{quiz['id']}/leaderboard", params={"limit": 1}).json()
        assert [entry["displayName"] for entry in board] == ["Alex"]
        assert len(client.get(f"/api/quizzes/{quiz['id']}/leaderboard").json()) == 2
        assert client.get(f"/api/quizzes/{quiz['id']}/leaderboard", params={"limit": 0}).status_code == 422

    def test_answers_hidden_from_other_users(self, client):
        _register(client)
        quiz = _create_quiz(client, isPublic=False)
        _add_question(client, quiz["id"])

        client.cookies.clear()
        _register(client, username="alex")
        detail = client.get(f"/api/quizzes/{quiz['id']}").json()
        assert detail["code"] is None
        assert "correctOptionId" not in detail["questions"][0]
        assert client.get("/api/quizzes").json() == []

        response = client.post(
            f"/api/quizzes/{quiz['id']}/questions",
            json={"text": "Q?", "options": [{"id": 1, "text": "A"}, {"id": 2, "text": "B"}], "correctOptionId": 1},
        )
        assert response.status_code == 403

    def test_listings(self, client):
        _register(client)
        _create_quiz(client, title="First quiz")
        _create_quiz(client, title="Second quiz")
        assert len(client.get("/api/quizzes", params={"limit": 1}).json()) == 1
        mine = client.get("/api/quizzes/mine").json()
        assert {q["title"] for q in mine} == {"First quiz", "Second quiz"}

    def test_unknown_quiz(self, client):
        assert client.get("/api/quizzes/404").status_code == 404
        assert client.get("/api/participants/404").status_code == 404

    def test_generate_questions(self, client, backend):
        backend.questions = {
            "questions": [{"text": "Q?", "options": ["A", "B", "C", "D"], "correctOptionIndex": 3}]
        }
        _register(client)
        quiz = _create_quiz(client)
        response = client.post(f"/api/quizzes/{quiz['id']}/questions", json={"generate": True, "count": 1})
        assert response.status_code == 201
        assert response.json()[0]["correctOptionId"] == 4

    def test_personality_quiz(self, client, backend):
        backend.questions = {
            "questions": [
                {"text": f"Q{i}?", "options": ["A", "B"], "correctOptionIndex": 0} for i in range(2)
            ]
        }
        _register(client)
        payload = {"title": "All about Sam", "type": "couples", "personalityText": "Loves cats", "count": 2}
        response = client.post("/api/quizzes/generate/personality", json=payload)
        assert response.status_code == 201
        data = response.json()
        assert data["questionCount"] == 2
        assert len(client.get(f"/api/quizzes/{data['quizId']}").json()["questions"]) == 2

    def test_failed_personality_quiz_is_not_stored(self, client, backend):
        backend.questions = {"questions": []}
        _register(client)
        payload = {"title": "All about Sam", "type": "couples", "personalityText": "Loves cats", "count": 2}
        response = client.post("/api/quizzes/generate/personality", json=payload)
        assert response.status_code == 502
        assert client.get("/api/quizzes").json() == []
        assert client.get("/api/quizzes/mine").json() == []
