"""
Integration tests for the authentication routes mounted at /api/auth.

Tests cover:
- Registration, including validation and duplicate emails
- Login with valid and invalid credentials
- Current user lookup with bearer tokens
- Refresh token rotation
- Logout
- JSON body handling
"""

import pytest


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.integration
class TestRegister:
    """Tests for POST /api/auth/register."""

    def test_register_returns_created_user(self, client):
        response = client.post(
            "/api/auth/register",
            json={"email": "Jane@Example.com", "password": "Password123", "name": "Jane"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["email"] == "jane@example.com"
        assert body["name"] == "Jane"
        assert body["is_active"] is True
        assert body["id"]
        assert "created_at" in body

    def test_register_never_returns_password(self, client):
        response = client.post(
            "/api/auth/register",
            json={"email": "jane@example.com", "password": "Password123"},
        )

        body = response.json()
        assert "password" not in body
        assert "password_hash" not in body

    def test_duplicate_email_conflict(self, client, registered_user):
        response = client.post(
            "/api/auth/register",
            json={"email": "JANE@example.com", "password": "Password456"},
        )

        assert response.status_code == 409
        assert response.json() == {"detail": "Email already registered"}

    @pytest.mark.parametrize(
        "password",
        [
            "short1",
            "onlyletters",
            "1234567890",
            "a1" * 65,
            "a1" + "x" * 70 + "AAAA",
            "a1" + "\u00e9" * 40,
        ],
    )
    def test_weak_password_rejected(self, client, password):
        response = client.post(
            "/api/auth/register",
            json={"email": "jane@example.com", "password": password},
        )

        assert response.status_code == 422
        assert any(error["loc"][-1] == "password" for error in response.json()["detail"])

    def test_invalid_email_rejected(self, client):
        response = client.post(
            "/api/auth/register",
            json={"email": "not-an-email", "password": "Password123"},
        )

        assert response.status_code == 422
        assert any(error["loc"][-1] == "email" for error in response.json()["detail"])


@pytest.mark.integration
class TestLogin:
    """Tests for POST /api/auth/login."""

    def test_login_returns_tokens(self, client, registered_user, settings):
        response = client.post(
            "/api/auth/login",
            json={"email": registered_user["email"], "password": registered_user["password"]},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == settings.jwt_access_token_expire_minutes * 60
        assert body["access_token"].count(".") == 2
        assert body["refresh_token"].count(".") == 2

    def test_wrong_password(self, client, registered_user):
        response = client.post(
            "/api/auth/login",
            json={"email": registered_user["email"], "password": "Wrong12345"},
        )

        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid email or password"}
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_suffix_past_bcrypt_limit_does_not_authenticate(self, client):
        password = "a1" + "x" * 70
        registered = client.post(
            "/api/auth/register", json={"email": "long@example.com", "password": password}
        )
        assert registered.status_code == 201

        response = client.post(
            "/api/auth/login",
            json={"email": "long@example.com", "password": password + "ZZZZ"},
        )

        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid email or password"}
        assert client.post(
            "/api/auth/login",
            json={"email": "long@example.com", "password": password},
        ).status_code == 200

    def test_unknown_email_same_response(self, client, registered_user):
        unknown = client.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": "Password123"},
        )
        wrong = client.post(
            "/api/auth/login",
            json={"email": registered_user["email"], "password": "Wrong12345"},
        )

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json()

    def test_missing_fields(self, client):
        response = client.post("/api/auth/login", json={"email": "jane@example.com"})
        assert response.status_code == 422


@pytest.mark.integration
class TestMe:
    """Tests for GET /api/auth/me."""

    def test_me_with_access_token(self, client, registered_user, tokens):
        response = client.get("/api/auth/me", headers=bearer(tokens["access_token"]))

        assert response.status_code == 200
        assert response.json()["email"] == registered_user["email"]

    def test_me_without_token(self, client):
        response = client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json() == {"detail": "Missing authentication credentials"}
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_me_with_garbage_token(self, client):
        response = client.get("/api/auth/me", headers=bearer("garbage"))

        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid authentication token"}

    def test_me_with_refresh_token(self, client, tokens):
        response = client.get("/api/auth/me", headers=bearer(tokens["refresh_token"]))
        assert response.status_code == 401

    def test_me_with_basic_auth(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Basic dXNlcjpwYXNz"})
        assert response.status_code == 401
        assert response.json() == {"detail": "Missing authentication credentials"}
        assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.integration
class TestRefresh:
    """Tests for POST /api/auth/refresh."""

    def test_refresh_rotates(self, client, tokens):
        response = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

        assert response.status_code == 200
        rotated = response.json()
        assert rotated["refresh_token"] != tokens["refresh_token"]

        me = client.get("/api/auth/me", headers=bearer(rotated["access_token"]))
        assert me.status_code == 200

    def test_refresh_token_single_use(self, client, tokens):
        first = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        second = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

        assert first.status_code == 200
        assert second.status_code == 401
        assert second.json() == {"detail": "Invalid authentication token"}

    def test_refresh_with_access_token(self, client, tokens):
        response = client.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})
        assert response.status_code == 401

    def test_refresh_with_garbage(self, client):
        response = client.post("/api/auth/refresh", json={"refresh_token": "garbage"})
        assert response.status_code == 401


@pytest.mark.integration
class TestLogout:
    """Tests for POST /api/auth/logout."""

    def test_logout_revokes_refresh_token(self, client, tokens):
        response = client.post("/api/auth/logout", json={"refresh_token": tokens["refresh_token"]})

        assert response.status_code == 204
        assert response.content == b""

        refresh = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert refresh.status_code == 401

    def test_logout_is_idempotent(self, client, tokens):
        client.post("/api/auth/logout", json={"refresh_token": tokens["refresh_token"]})
        again = client.post("/api/auth/logout", json={"refresh_token": tokens["refresh_token"]})
        assert again.status_code == 204

    def test_logout_with_garbage_token(self, client):
        response = client.post("/api/auth/logout", json={"refresh_token": "garbage"})
        assert response.status_code == 204


@pytest.mark.integration
class TestJsonBodies:
    """Tests for JSON request body handling."""

    def test_malformed_json(self, client):
        response = client.post(
            "/api/auth/login",
            content=b'{"email": "jane@example.com", "password": ',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 422
        assert isinstance(response.json()["detail"], list)

    def test_non_object_body(self, client):
        response = client.post("/api/auth/login", json=["jane@example.com", "Password123"])
        assert response.status_code == 422

    def test_empty_body(self, client):
        response = client.post("/api/auth/login")
        assert response.status_code == 422


@pytest.mark.integration
class TestFullFlow:
    """End-to-end flow through every auth route."""

    def test_register_login_me_refresh_logout(self, client):
        credentials = {"email": "flow@example.com", "password": "FlowPass123"}

        assert client.post("/api/auth/register", json=credentials).status_code == 201

        login = client.post("/api/auth/login", json=credentials)
        assert login.status_code == 200
        pair = login.json()

        me = client.get("/api/auth/me", headers=bearer(pair["access_token"]))
        assert me.json()["email"] == "flow@example.com"

        refreshed = client.post("/api/auth/refresh", json={"refresh_token": pair["refresh_token"]})
        assert refreshed.status_code == 200
        new_pair = refreshed.json()

        logout = client.post("/api/auth/logout", json={"refresh_token": new_pair["refresh_token"]})
        assert logout.status_code == 204

        after = client.post("/api/auth/refresh", json={"refresh_token": new_pair["refresh_token"]})
        assert after.status_code == 401
