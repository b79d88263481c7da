"""
Tests for the HTTP surface: error rendering, preflight, action dispatch
and the swipe session routes.

Authentication is replaced through dependency_overrides; the caller's
Supabase client is the in-memory fake.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from conftest import FakeSupabase, swipe_tables

from cuisineduo.web.app import app
from cuisineduo.web.auth import AuthenticatedUser
from cuisineduo.web.context import Profile, RequestContext, get_request_context


def _context(db: FakeSupabase, profile_id: str = "alice", household_id: str | None = "house-1") -> RequestContext:
    return RequestContext(
        user=AuthenticatedUser(id=profile_id, email=f"{profile_id}@example.com", access_token="token"),
        profile=Profile(id=profile_id, household_id=household_id, display_name=profile_id.title()),
        _client=db,
    )


@pytest.fixture
def db():
    return FakeSupabase(swipe_tables())


@pytest.fixture
def client(db):
    app.dependency_overrides[get_request_context] = lambda: _context(db)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def homeless_client(db):
    app.dependency_overrides[get_request_context] = lambda: _context(db, household_id=None)
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestBasics:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_preflight_answered_for_any_path(self, client):
        response = client.options("/api/chat-ai")

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"

    def test_wrong_method(self, client):
        response = client.get("/api/chat-ai")

        assert response.status_code == 405
        assert response.json() == {"error": "method_not_allowed"}

    def test_unknown_path(self, client):
        response = client.post("/api/nothing-here", json={})

        assert response.status_code == 404
        assert response.json() == {"error": "not_found"}

    def test_missing_token(self):
        response = TestClient(app).post("/api/chat-ai", json={"message": "hi"})

        assert response.status_code == 401
        assert response.json() == {"error": "missing_authorization"}

    def test_malformed_token(self):
        response = TestClient(app).post("/api/chat-ai", json={"message": "hi"}, headers={"Authorization": "Token x"})

        assert response.status_code == 401
        assert response.json() == {"error": "invalid_authorization"}

    def test_rejected_token(self):
        service = MagicMock()
        service.auth.get_user.side_effect = Exception("JWT expired")

        with patch("cuisineduo.web.auth.get_service_client", return_value=service):
            response = TestClient(app).post("/api/chat-ai", json={"message": "hi"}, headers={"Authorization": "Bearer stale"})

        assert response.status_code == 401
        assert response.json() == {"error": "invalid_token"}
        service.auth.get_user.assert_called_once_with("stale")


class TestValidation:
    """Validation failures render as <field>_required / invalid_<field>."""

    @pytest.mark.parametrize("body", [{}, {"message": ""}])
    def test_message_required(self, client, body):
        response = client.post("/api/chat-ai", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "message_required"}

    def test_camel_case_field_reported_in_snake_case(self, client):
        response = client.post("/api/swipe/sessions/session-1/votes", json={"liked": True})

        assert response.status_code == 400
        assert response.json() == {"error": "session_recipe_id_required"}

    def test_invalid_value(self, client):
        response = client.post("/api/translate-recipe", json={"lang": "de", "recipeId": "recipe-1"})

        assert response.status_code == 400
        assert response.json() == {"error": "invalid_lang"}

    def test_handler_level_check(self, client):
        response = client.post("/api/translate-recipe", json={"lang": "fr"})

        assert response.status_code == 400
        assert response.json() == {"error": "recipe_id_or_recipe_data_required"}


class TestDispatch:
    """Tests for the consolidated action endpoints."""

    @pytest.mark.parametrize("path", ["/api/inventory-ai", "/api/recipe-ai", "/api/swipe-ai", "/api/push-notifications"])
    def test_unknown_action(self, client, path):
        response = client.post(path, json={"action": "dance"})

        assert response.status_code == 400
        assert response.json() == {"error": "invalid_action"}

    def test_missing_action(self, client):
        response = client.post("/api/recipe-ai", json={"text": "pancakes"})

        assert response.json() == {"error": "invalid_action"}

    def test_action_body_validated(self, client):
        response = client.post("/api/inventory-ai", json={"action": "scan"})

        assert response.status_code == 400
        assert response.json() == {"error": "image_required"}

    def test_transcription_needs_items(self, client):
        response = client.post("/api/inventory-ai", json={
            "action": "correct-transcription",
            "text": "deux yaourts",
            "context": "scan-correction",
        })

        assert response.status_code == 400
        assert response.json() == {"error": "items_required"}

    def test_household_required(self, homeless_client):
        response = homeless_client.post("/api/swipe-ai", json={"action": "generate-suggestions", "sessionId": "s"})

        assert response.status_code == 400
        assert response.json() == {"error": "household_id_required"}

    def test_action_reaches_handler(self, client):
        mock_translate = AsyncMock(return_value={"translated_data": {"name": "Crêpes"}, "from_cache": True})

        with patch("cuisineduo.web.recipe_routes.translate_recipe", mock_translate):
            response = client.post("/api/recipe-ai", json={"action": "translate", "lang": "fr", "recipeId": "recipe-1"})

        assert response.status_code == 200
        assert response.json()["from_cache"] is True
        assert mock_translate.await_args.kwargs["recipe_id"] == "recipe-1"


class TestChatRoutes:
    def test_chat_reply(self, client):
        with patch("cuisineduo.web.chat_routes.chat_reply", AsyncMock(return_value="Une omelette ?")):
            response = client.post("/api/chat-ai", json={"message": "@miam une idée ?", "lang": "fr"})

        assert response.status_code == 200
        assert response.json() == {"response": "Une omelette ?"}

    def test_unexpected_failure_is_500(self, client):
        with patch("cuisineduo.web.chat_routes.chat_reply", AsyncMock(side_effect=RuntimeError("quota"))):
            response = client.post("/api/chat-ai", json={"message": "hi"})

        assert response.status_code == 500
        assert response.json() == {"error": "ai_operation_failed"}

    def test_giphy_unavailable(self, client):
        with patch("cuisineduo.chat.gifs.settings") as mock_settings:
            mock_settings.giphy_api_key = None
            response = client.post("/api/gif-search", json={"query": "pizza"})

        assert response.status_code == 502
        assert response.json() == {"error": "gif_search_failed"}


class TestSwipeRoutes:
    """Tests for the swipe session routes."""

    def test_get_session(self, client):
        response = client.get("/api/swipe/sessions/session-1")

        assert response.status_code == 200
        data = response.json()
        assert [r["id"] for r in data["recipes"]] == ["sr-1", "sr-2", "sr-3"]
        assert data["unvoted_recipes"] == ["sr-1", "sr-2", "sr-3"]
        assert data["is_complete"] is False

    def test_missing_session(self, client):
        response = client.get("/api/swipe/sessions/nope")

        assert response.status_code == 404
        assert response.json() == {"error": "session_not_found"}

    def test_vote(self, client, db):
        response = client.post("/api/swipe/sessions/session-1/votes", json={"sessionRecipeId": "sr-2", "liked": True})

        assert response.status_code == 200
        data = response.json()
        assert data["vote"]["vote"] is True
        assert data["session"]["unvoted_recipes"] == ["sr-1", "sr-3"]
        assert len(db.rows("swipe_votes")) == 1

    def test_vote_for_other_session_rejected(self, client, db):
        response = client.post("/api/swipe/sessions/session-1/votes", json={"session_recipe_id": "sr-x", "liked": True})

        assert response.status_code == 400
        assert response.json() == {"error": "invalid_session_recipe_id"}
        assert db.rows("swipe_votes") == []

    def test_cancel_twice(self, client, db):
        first = client.post("/api/swipe/sessions/session-1/cancel")
        second = client.post("/api/swipe/sessions/session-1/cancel")

        assert first.status_code == 200
        assert first.json()["session"]["status"] == "cancelled"
        assert first.json()["should_show_results"] is False
        assert second.status_code == 409
        assert second.json() == {"error": "invalid_transition"}

    def test_create_matched_through_action(self, client, db):
        response = client.post("/api/swipe-ai", json={
            "action": "create-final",
            "sessionId": "session-1",
            "matchedRecipeIds": ["sr-2"],
        })

        assert response.status_code == 200
        assert response.json()["created"] == 0
        assert db.rows("swipe_sessions")[0]["status"] == "completed"

    def test_create_matched_needs_matches(self, client, db):
        response = client.post("/api/swipe-ai", json={
            "action": "create-final",
            "sessionId": "session-1",
            "matchedRecipeIds": [],
        })

        assert response.status_code == 400
        assert response.json() == {"error": "matched_recipe_ids_required"}
        assert db.rows("swipe_sessions")[0]["status"] == "voting"


class TestSessionEvents:
    """Tests for the server-sent event stream of a swipe session."""

    @staticmethod
    def _realtime():
        channel = MagicMock()
        channel.subscribe = AsyncMock()
        realtime = MagicMock()
        realtime.channel.return_value = channel
        realtime.remove_channel = AsyncMock()
        return realtime, channel

    @staticmethod
    def _events(body: str) -> list[tuple[str, dict]]:
        events, name = [], None
        for line in body.splitlines():
            if line.startswith("event:"):
                name = line.split(":", 1)[1].strip()
            elif line.startswith("data:"):
                events.append((name, json.loads(line.split(":", 1)[1])))
        return events

    def test_terminal_session_streams_snapshot_then_end(self):
        db = FakeSupabase(swipe_tables(status="completed"))
        realtime, channel = self._realtime()
        app.dependency_overrides[get_request_context] = lambda: _context(db)

        try:
            with patch("cuisineduo.web.swipe_routes.get_realtime_client", AsyncMock(return_value=realtime)):
                with TestClient(app).stream("GET", "/api/swipe/sessions/session-1/events") as response:
                    assert response.status_code == 200
                    body = "".join(response.iter_text())
        finally:
            app.dependency_overrides.clear()

        events = self._events(body)
        assert [name for name, _ in events] == ["snapshot", "end"]
        assert events[0][1]["session"]["status"] == "completed"
        assert events[0][1]["is_active"] is False
        assert events[1][1] == {"status": "completed"}
        realtime.channel.assert_called_once_with("swipe-session-session-1")
        realtime.remove_channel.assert_awaited_once_with(channel)

    def test_subscribe_failure_closes_watcher(self, client):
        realtime, channel = self._realtime()
        channel.subscribe.side_effect = RuntimeError("socket closed")

        with patch("cuisineduo.web.swipe_routes.get_realtime_client", AsyncMock(return_value=realtime)), \
             patch("cuisineduo.web.swipe_routes.SwipeSessionWatcher.close", new_callable=AsyncMock) as mock_close:
            response = client.get("/api/swipe/sessions/session-1/events")

        assert response.status_code == 500
        assert response.json() == {"error": "session_load_failed"}
        mock_close.assert_awaited_once()

    def test_missing_session(self, client):
        with patch("cuisineduo.web.swipe_routes.get_realtime_client", AsyncMock()) as mock_realtime:
            response = client.get("/api/swipe/sessions/nope/events")

        assert response.status_code == 404
        assert response.json() == {"error": "session_not_found"}
        mock_realtime.assert_not_awaited()


class TestPushRoutes:
    def test_subscribe(self, client, db):
        response = client.post("/api/push/subscriptions", json={"subscription": {"endpoint": "https://push.example/a"}})

        assert response.json() == {"ok": True}
        assert db.rows("push_subscriptions")[0]["profile_id"] == "alice"

    def test_send_without_vapid_keys(self, client):
        with patch("cuisineduo.push.service.settings") as mock_settings:
            mock_settings.push_enabled = False
            response = client.post("/api/push-notifications", json={"action": "send", "title": "Dinner"})

        assert response.status_code == 500
        assert response.json() == {"error": "push_not_configured"}
