"""
API tests: auth, friends and swipe flows through the FastAPI app.
Each test gets its own in-memory database created by the app lifespan.
"""

import random
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from cinematch.api.swipe import friend_session_id, get_match_engine
from cinematch.config import settings
from cinematch.core import build_match_engine
from cinematch.main import app
from cinematch.services import TmdbClient, get_tmdb_client
from cinematch.storage import get_storage, set_storage


class NoFallback(random.Random):
    def random(self):
        return 0.99


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(settings, "database_url", "sqlite+aiosqlite://")
    set_storage(None)
    app.dependency_overrides[get_tmdb_client] = lambda: TmdbClient(api_key=None)
    app.dependency_overrides[get_match_engine] = lambda: build_match_engine(
        get_storage(), settings, rng=NoFallback()
    )
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def register(client, email, password="secret123"):
    response = client.post("/api/auth/register", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    body = response.json()
    return body["userId"], {"Authorization": f"Bearer {body['token']}"}


def befriend(client, requester_headers, addressee_email, addressee_headers):
    response = client.post(f"/api/friends/request/{addressee_email}", headers=requester_headers)
    assert response.status_code == 200, response.text
    friendship_id = response.json()["friendshipId"]
    response = client.post(f"/api/friends/accept/{friendship_id}", headers=addressee_headers)
    assert response.status_code == 200, response.text
    return friendship_id


def swipe(client, headers, session_id, movie_id, liked=True):
    return client.post(
        "/api/swipe",
        json={"movieId": movie_id, "sessionId": session_id, "isLiked": liked},
        headers=headers,
    )


class TestHealth:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAuth:
    """Tests for registration and login."""

    def test_register_and_login(self, client):
        user_id, _ = register(client, "alice@example.com")

        response = client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": "secret123"}
        )
        assert response.status_code == 200
        assert response.json()["userId"] == user_id
        assert response.json()["token"]

    def test_register_duplicate(self, client):
        register(client, "alice@example.com")
        response = client.post(
            "/api/auth/register", json={"email": "alice@example.com", "password": "other"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "User already exists"

    def test_register_duplicate_other_case(self, client):
        register(client, "alice@example.com")
        response = client.post(
            "/api/auth/register", json={"email": "Alice@Example.COM", "password": "other"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "User already exists"

    def test_register_insert_conflict(self, client):
        conflict = IntegrityError("INSERT INTO users", {}, Exception("UNIQUE constraint failed"))
        with patch.object(get_storage(), "create_user", new=AsyncMock(side_effect=conflict)):
            response = client.post(
                "/api/auth/register", json={"email": "alice@example.com", "password": "secret"}
            )
        assert response.status_code == 400
        assert response.json()["detail"] == "User already exists"

    def test_register_long_password(self, client):
        password = "x" * 100
        user_id, _ = register(client, "alice@example.com", password=password)

        response = client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": password}
        )
        assert response.status_code == 200
        assert response.json()["userId"] == user_id

    def test_register_invalid_email(self, client):
        response = client.post("/api/auth/register", json={"email": "not-an-email", "password": "x"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid email format"

    def test_register_empty_password(self, client):
        response = client.post("/api/auth/register", json={"email": "a@example.com", "password": "  "})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid password"

    def test_login_missing_fields(self, client):
        response = client.post("/api/auth/login", json={"password": "x"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Email is required"

        response = client.post("/api/auth/login", json={"email": "a@example.com"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Password is required"

    def test_login_wrong_password(self, client):
        register(client, "alice@example.com")
        response = client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": "wrong"}
        )
        assert response.status_code == 401

    def test_protected_route_requires_token(self, client):
        response = client.get("/api/friends")
        assert response.status_code in (401, 403)

        response = client.get("/api/friends", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401


class TestFriends:
    """Tests for the friend request lifecycle."""

    def test_request_accept_and_list(self, client):
        alice_id, alice = register(client, "alice@example.com")
        bob_id, bob = register(client, "bob@example.com")

        response = client.post("/api/friends/request/bob@example.com", headers=alice)
        assert response.status_code == 200
        friendship_id = response.json()["friendshipId"]

        pending = client.get("/api/friends/requests", headers=bob).json()
        assert len(pending) == 1
        assert pending[0]["requesterEmail"] == "alice@example.com"
        assert client.get("/api/friends/requests", headers=alice).json() == []

        response = client.post(f"/api/friends/accept/{friendship_id}", headers=bob)
        assert response.status_code == 200

        friends = client.get("/api/friends", headers=alice).json()
        assert [f["friendId"] for f in friends] == [bob_id]
        assert friends[0]["friendEmail"] == "bob@example.com"

        friends = client.get("/api/friends", headers=bob).json()
        assert [f["friendId"] for f in friends] == [alice_id]

    def test_request_errors(self, client):
        _, alice = register(client, "alice@example.com")
        _, bob = register(client, "bob@example.com")

        response = client.post("/api/friends/request/nobody@example.com", headers=alice)
        assert response.json()["detail"] == "User not found"

        response = client.post("/api/friends/request/alice@example.com", headers=alice)
        assert response.json()["detail"] == "Cannot add yourself as a friend"

        client.post("/api/friends/request/bob@example.com", headers=alice)
        response = client.post("/api/friends/request/bob@example.com", headers=alice)
        assert response.status_code == 400
        assert response.json()["detail"] == "Friend request already sent"

    def test_only_addressee_can_accept(self, client):
        _, alice = register(client, "alice@example.com")
        register(client, "bob@example.com")

        friendship_id = client.post(
            "/api/friends/request/bob@example.com", headers=alice
        ).json()["friendshipId"]

        response = client.post(f"/api/friends/accept/{friendship_id}", headers=alice)
        assert response.status_code == 400
        assert response.json()["detail"] == "You can only accept requests sent to you"

        response = client.post("/api/friends/accept/does-not-exist", headers=alice)
        assert response.status_code == 404

    def test_decline_then_request_again(self, client):
        _, alice = register(client, "alice@example.com")
        _, bob = register(client, "bob@example.com")

        friendship_id = client.post(
            "/api/friends/request/bob@example.com", headers=alice
        ).json()["friendshipId"]
        assert client.post(f"/api/friends/decline/{friendship_id}", headers=bob).status_code == 200

        response = client.post(f"/api/friends/accept/{friendship_id}", headers=bob)
        assert response.json()["detail"] == "Request is not pending"

        response = client.post("/api/friends/request/bob@example.com", headers=alice)
        assert response.status_code == 200

    def test_remove_friend(self, client):
        _, alice = register(client, "alice@example.com")
        _, bob = register(client, "bob@example.com")
        _, carol = register(client, "carol@example.com")
        friendship_id = befriend(client, alice, "bob@example.com", bob)

        assert client.delete(f"/api/friends/{friendship_id}", headers=carol).status_code == 400
        assert client.delete(f"/api/friends/{friendship_id}", headers=bob).status_code == 200
        assert client.get("/api/friends", headers=alice).json() == []
        assert client.delete(f"/api/friends/{friendship_id}", headers=bob).status_code == 404


class TestSwipeSessions:
    """Tests for sessions, swipes and matches over HTTP."""

    def test_friend_session_requires_accepted_friend(self, client):
        _, alice = register(client, "alice@example.com")
        bob_id, _ = register(client, "bob@example.com")

        response = client.post(
            "/api/swipe/session",
            json={"isFriendSession": True, "friendId": bob_id},
            headers=alice,
        )
        assert response.status_code == 400

        response = client.post(
            "/api/swipe/session", json={"isFriendSession": True}, headers=alice
        )
        assert response.status_code == 400

        response = client.post(
            "/api/swipe/session",
            json={"isFriendSession": True, "friendId": "ghost"},
            headers=alice,
        )
        assert response.json()["detail"] == "Friend not found."

    def test_friend_session_match(self, client):
        alice_id, alice = register(client, "alice@example.com")
        bob_id, bob = register(client, "bob@example.com")
        befriend(client, alice, "bob@example.com", bob)

        response = client.post(
            "/api/swipe/session",
            json={"isFriendSession": True, "friendEmail": "bob@example.com"},
            headers=alice,
        )
        assert response.status_code == 200
        session_id = response.json()["sessionId"]
        assert session_id == friend_session_id(alice_id, bob_id)
        assert response.json()["isFriendSession"] is True

        for movie_id in (3, 2, 1):
            result = swipe(client, alice, session_id, movie_id).json()
            assert result["isMatch"] is False
            assert result["message"] == "Swipe saved successfully"

        assert swipe(client, bob, session_id, 4).json()["isMatch"] is False
        assert swipe(client, bob, session_id, 2).json()["isMatch"] is True

        result = swipe(client, bob, session_id, 1).json()
        assert result["isMatch"] is True
        assert result["matchedMovie"]["id"] == 2
        assert result["matchedMovie"]["overview"] == "You both liked this movie!"

        status = client.get(f"/api/swipe/session/{session_id}/match", headers=alice).json()
        assert status["isMatch"] is True
        assert status["matchedMovieId"] == 2
        assert status["counterpartUserId"] == bob_id

        info = client.get(f"/api/swipe/session/{session_id}", headers=alice).json()
        assert info["matchedMovieId"] == 2
        assert info["isFriendSession"] is True

    def test_reopening_friend_session_resets_it(self, client):
        alice_id, alice = register(client, "alice@example.com")
        bob_id, bob = register(client, "bob@example.com")
        befriend(client, alice, "bob@example.com", bob)

        session_id = client.post(
            "/api/swipe/session", json={"isFriendSession": True, "friendId": bob_id}, headers=alice
        ).json()["sessionId"]
        swipe(client, alice, session_id, 5)
        assert swipe(client, bob, session_id, 5).json()["isMatch"] is True

        again = client.post(
            "/api/swipe/session", json={"isFriendSession": True, "friendId": alice_id}, headers=bob
        ).json()["sessionId"]
        assert again == session_id

        info = client.get(f"/api/swipe/session/{session_id}", headers=alice).json()
        assert info["matchedMovieId"] is None
        assert swipe(client, alice, session_id, 6).json()["isMatch"] is False

    def test_regular_session_only_creator_swipes(self, client):
        alice_id, alice = register(client, "alice@example.com")
        _, bob = register(client, "bob@example.com")

        response = client.post("/api/swipe/session", json={"isFriendSession": False}, headers=alice)
        session_id = response.json()["sessionId"]

        info = client.get(f"/api/swipe/session/{session_id}", headers=alice).json()
        assert info["user1Id"] == alice_id
        assert info["user2Id"] is None
        assert info["isFriendSession"] is False

        response = swipe(client, bob, session_id, 10)
        assert response.status_code == 400
        assert response.json()["detail"] == "You don't have access to this regular session."

    def test_regular_session_matches_other_user(self, client):
        alice_id, alice = register(client, "alice@example.com")
        bob_id, bob = register(client, "bob@example.com")

        bob_session = client.post(
            "/api/swipe/session", json={"isFriendSession": False}, headers=bob
        ).json()["sessionId"]
        swipe(client, bob, bob_session, 30)

        alice_session = client.post(
            "/api/swipe/session", json={"isFriendSession": False}, headers=alice
        ).json()["sessionId"]
        for movie_id in (10, 20, 30, 40):
            assert swipe(client, alice, alice_session, movie_id).json()["isMatch"] is False

        result = swipe(client, alice, alice_session, 50).json()
        assert result["isMatch"] is True
        assert result["matchedMovie"]["id"] == 30

        info = client.get(f"/api/swipe/session/{alice_session}", headers=alice).json()
        assert info["user2Id"] == bob_id
        assert info["matchedMovieId"] == 30

    def test_swipe_unknown_session(self, client):
        _, alice = register(client, "alice@example.com")
        response = swipe(client, alice, "missing", 1)
        assert response.status_code == 400

    def test_swipe_validation(self, client):
        _, alice = register(client, "alice@example.com")
        response = client.post(
            "/api/swipe", json={"movieId": 0, "sessionId": "s", "isLiked": True}, headers=alice
        )
        assert response.status_code == 422

    def test_session_not_found(self, client):
        _, alice = register(client, "alice@example.com")
        assert client.get("/api/swipe/session/missing", headers=alice).status_code == 404

        status = client.get("/api/swipe/session/missing/match", headers=alice).json()
        assert status["isMatch"] is False


class TestMovies:

    def test_discover_without_catalog(self, client):
        response = client.get("/api/movies/discover", params={"genre": "28", "maxRuntime": "abc"})
        assert response.status_code == 200
        assert response.json() == []
