"""Tests for authentication endpoints and dependencies."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from storybook.api.auth.passwords import hash_password, verify_password
from storybook.api.auth.tokens import create_access_token, verify_token
from storybook.api.dependencies import get_user_repository
from storybook.api.main import app

from tests.unit.conftest import make_user


class TestPasswords:
    """Tests for bcrypt helpers."""

    def test_hash_round_trip(self):
        """A hashed password verifies and a different one does not."""
        hashed = hash_password("correct horse")
        assert hashed != "correct horse"
        assert verify_password("correct horse", hashed)
        assert not verify_password("wrong horse", hashed)

    def test_malformed_hash_is_rejected(self):
        """A stored value that is not a bcrypt hash never verifies."""
        assert verify_password("anything", "not-a-hash") is False


class TestTokens:
    """Tests for JWT helpers."""

    def test_token_carries_subject(self):
        """The subject survives encoding."""
        payload = verify_token(create_access_token("user-42"))
        assert payload["sub"] == "user-42"

    def test_garbage_token_is_none(self):
        """Invalid tokens decode to None."""
        assert verify_token("not.a.jwt") is None


class TestSignup:
    """Tests for POST /api/auth/signup."""

    def test_signup_creates_user(self, anonymous_client):
        """New email creates the account and returns a token."""
        client, mocks = anonymous_client
        mocks.users.email_exists = AsyncMock(return_value=False)
        mocks.users.create_user = AsyncMock(return_value=make_user(email="new@example.com"))

        response = client.post(
            "/api/auth/signup",
            json={"email": "New@Example.com", "password": "password123", "name": "New"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["token_type"] == "bearer"
        assert verify_token(data["access_token"])["sub"] == "user-1"
        assert data["user"]["email"] == "new@example.com"
        assert "passwordHash" not in data["user"]
        email, password_hash, name = mocks.users.create_user.call_args.args
        assert email == "new@example.com"
        assert verify_password("password123", password_hash)
        assert "session" in response.cookies

    def test_duplicate_email_conflicts(self, anonymous_client):
        """An existing email is a 409 conflict."""
        client, mocks = anonymous_client
        mocks.users.email_exists = AsyncMock(return_value=True)

        response = client.post(
            "/api/auth/signup",
            json={"email": "parent@example.com", "password": "password123"},
        )

        assert response.status_code == 409
        assert response.json()["error"]["type"] == "CONFLICT"
        mocks.users.create_user.assert_not_called()

    def test_short_password_rejected(self, anonymous_client):
        """Passwords need at least 8 characters."""
        client, _ = anonymous_client

        response = client.post(
            "/api/auth/signup",
            json={"email": "parent@example.com", "password": "short"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["type"] == "VALIDATION_ERROR"

    @pytest.mark.parametrize("email", ["parent@.example..com", "parent", "parent@example"])
    def test_malformed_email_rejected(self, anonymous_client, email):
        client, mocks = anonymous_client

        response = client.post("/api/auth/signup", json={"email": email, "password": "password123"})

        assert response.status_code == 400
        assert response.json()["error"]["details"]["errors"][0]["path"] == "email"
        mocks.users.create_user.assert_not_called()


class TestLogin:
    """Tests for POST /api/auth/login."""

    def test_login_sets_cookie_and_updates_last_login(self, anonymous_client):
        """Valid credentials return a token and set the session cookie."""
        client, mocks = anonymous_client
        user = make_user()
        mocks.users.get_credentials = AsyncMock(return_value=(user, hash_password("password123")))

        response = client.post(
            "/api/auth/login", json={"email": "parent@example.com", "password": "password123"}
        )

        assert response.status_code == 200
        assert response.json()["user"]["id"] == "user-1"
        assert "session" in response.cookies
        mocks.users.update_last_login.assert_called_once_with("user-1")

    def test_wrong_password_is_401(self, anonymous_client):
        """A bad password is rejected without touching last login."""
        client, mocks = anonymous_client
        mocks.users.get_credentials = AsyncMock(return_value=(make_user(), hash_password("password123")))

        response = client.post(
            "/api/auth/login", json={"email": "parent@example.com", "password": "nope-nope"}
        )

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        mocks.users.update_last_login.assert_not_called()

    def test_unknown_email_is_401(self, anonymous_client):
        """Unknown accounts get the same answer as wrong passwords."""
        client, mocks = anonymous_client
        mocks.users.get_credentials = AsyncMock(return_value=None)

        response = client.post(
            "/api/auth/login", json={"email": "ghost@example.com", "password": "password123"}
        )

        assert response.status_code == 401


class TestMe:
    """Tests for GET /api/auth/me and the current-user dependency."""

    def test_me_returns_user(self, client_with_mocks):
        """A signed-in user sees their profile in camelCase."""
        client, _ = client_with_mocks

        response = client.get("/api/auth/me")

        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "parent@example.com"
        assert data["subscriptionPlan"] == "free"

    def test_me_requires_auth(self, anonymous_client):
        """No user means 401 with a Bearer challenge."""
        client, _ = anonymous_client

        response = client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.json()["error"]["type"] == "AUTHENTICATION_ERROR"


class TestTokenResolution:
    """The real get_optional_user reads the bearer header or the session cookie."""

    def _client(self, users):
        app.dependency_overrides[get_user_repository] = lambda: users
        return TestClient(app)

    def test_bearer_header(self):
        """A valid bearer token loads the user from the repository."""
        users = AsyncMock()
        users.get_user = AsyncMock(return_value=make_user(id="user-7"))
        try:
            with self._client(users) as client:
                token = create_access_token("user-7")
                response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        assert response.json()["id"] == "user-7"
        users.get_user.assert_called_once_with("user-7")

    def test_session_cookie(self):
        """The session cookie works without an Authorization header."""
        users = AsyncMock()
        users.get_user = AsyncMock(return_value=make_user(id="user-8"))
        try:
            with self._client(users) as client:
                client.cookies.set("session", create_access_token("user-8"))
                response = client.get("/api/auth/me")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        assert response.json()["id"] == "user-8"

    def test_invalid_token(self):
        """A token that does not verify is a 401."""
        users = AsyncMock()
        try:
            with self._client(users) as client:
                response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 401
        users.get_user.assert_not_called()

    def test_logout_clears_cookie(self, anonymous_client):
        """Logout expires the session cookie."""
        client, _ = anonymous_client

        response = client.post("/api/auth/logout")

        assert response.status_code == 200
        assert "session=" in response.headers["set-cookie"]
