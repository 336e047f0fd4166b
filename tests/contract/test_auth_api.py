"""
Contract tests for the HTTP API.

Tests verify the published contract:
- Request/response schemas
- OpenAPI paths, methods and status codes

These tests validate the Pydantic models and the generated OpenAPI
document without sending requests.
"""

import pytest
from pydantic import ValidationError

from api.src.models.auth import (
    HealthResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserRecord,
    UserResponse,
)


# ============================================================================
# SCHEMA VALIDATION TESTS
# ============================================================================


class TestRegisterRequestContract:
    """Contract tests for the register request body."""

    def test_valid(self):
        request = RegisterRequest(email="jane@example.com", password="Password123")
        assert request.name is None

    def test_rejects_missing_password(self):
        with pytest.raises(ValidationError) as exc_info:
            RegisterRequest(email="jane@example.com")

        assert any(e["loc"] == ("password",) for e in exc_info.value.errors())

    def test_rejects_empty_name(self):
        with pytest.raises(ValidationError):
            RegisterRequest(email="jane@example.com", password="Password123", name="")

    def test_password_limited_to_72_bytes(self):
        RegisterRequest(email="jane@example.com", password="a1" + "x" * 70)

        with pytest.raises(ValidationError):
            RegisterRequest(email="jane@example.com", password="a1" + "x" * 71)

        # 38 characters but 74 bytes
        with pytest.raises(ValidationError):
            RegisterRequest(email="jane@example.com", password="a1" + "é" * 36)


class TestLoginRequestContract:
    """Contract tests for the login request body."""

    def test_valid(self):
        request = LoginRequest(email="jane@example.com", password="x")
        assert request.email == "jane@example.com"

    def test_login_does_not_enforce_password_policy(self):
        LoginRequest(email="jane@example.com", password="weak")

    def test_rejects_bad_email(self):
        with pytest.raises(ValidationError) as exc_info:
            LoginRequest(email="jane", password="Password123")

        assert any(e["loc"] == ("email",) for e in exc_info.value.errors())


class TestTokenResponseContract:
    """Contract tests for the token pair response."""

    def test_defaults_token_type(self):
        response = TokenResponse(
            access_token="eyJhbGciOiJIUzI1NiJ9.abc",
            refresh_token="eyJhbGciOiJIUzI1NiJ9.def",
            expires_in=900,
        )
        assert response.token_type == "bearer"

    def test_rejects_non_positive_expires_in(self):
        with pytest.raises(ValidationError) as exc_info:
            TokenResponse(
                access_token="eyJhbGciOiJIUzI1NiJ9.abc",
                refresh_token="eyJhbGciOiJIUzI1NiJ9.def",
                expires_in=0,
            )

        assert any(e["loc"] == ("expires_in",) for e in exc_info.value.errors())

    def test_refresh_request_requires_token(self):
        with pytest.raises(ValidationError):
            RefreshRequest(refresh_token="")


class TestUserResponseContract:
    """Contract tests for the public user representation."""

    def test_from_record_drops_password_hash(self):
        record = UserRecord(email="jane@example.com", password_hash="$2b$04$secret")

        response = UserResponse.from_record(record)
        dumped = response.model_dump()

        assert dumped["id"] == str(record.id)
        assert "password_hash" not in dumped
        assert set(dumped) == {"id", "email", "name", "is_active", "created_at"}


class TestHealthResponseContract:
    """Contract tests for the health payload."""

    def test_field_order(self):
        payload = HealthResponse(status="ok", message="Server is running")
        assert payload.model_dump_json() == '{"status":"ok","message":"Server is running"}'


# ============================================================================
# OPENAPI CONTRACT TESTS
# ============================================================================


@pytest.fixture
def openapi(app):
    return app.openapi()


class TestOpenAPIContract:
    """Contract tests for the generated OpenAPI document."""

    @pytest.mark.parametrize(
        "path,method,status",
        [
            ("/health", "get", "200"),
            ("/api/auth/register", "post", "201"),
            ("/api/auth/login", "post", "200"),
            ("/api/auth/refresh", "post", "200"),
            ("/api/auth/logout", "post", "204"),
            ("/api/auth/me", "get", "200"),
        ],
    )
    def test_operation_published(self, openapi, path, method, status):
        operation = openapi["paths"][path][method]
        assert status in operation["responses"]

    def test_register_documents_conflict(self, openapi):
        assert "409" in openapi["paths"]["/api/auth/register"]["post"]["responses"]

    def test_auth_routes_document_unauthorized(self, openapi):
        assert "401" in openapi["paths"]["/api/auth/login"]["post"]["responses"]

    def test_metrics_hidden_from_schema(self, openapi):
        assert "/metrics" not in openapi["paths"]

    def test_me_requires_bearer(self, openapi):
        schemes = openapi["components"]["securitySchemes"]
        assert any(s["type"] == "http" and s["scheme"] == "bearer" for s in schemes.values())
