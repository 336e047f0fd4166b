"""Shared pytest fixtures."""

import pytest
from fastapi.testclient import TestClient

from api.src.config import Settings
from api.src.main import create_app
from api.src.repositories import RefreshTokenRepository, UserRepository
from api.src.services.auth_service import AuthService

TEST_SECRET_KEY = "test-secret-key-do-not-use-in-production-0123"
FRONTEND_URL = "http://localhost:3000"


def make_settings(**overrides) -> Settings:
    """Settings isolated from the process environment and any .env file."""
    values = {
        "port": 5000,
        "frontend_url": FRONTEND_URL,
        "jwt_secret_key": TEST_SECRET_KEY,
        "password_bcrypt_rounds": 4,
        "log_level": "WARNING",
        "environment": "development",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings_factory():
    """Build Settings with overrides, e.g. settings_factory(frontend_url=...)."""
    return make_settings


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    """FastAPI test client with lifespan events."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def user_repo() -> UserRepository:
    return UserRepository()


@pytest.fixture
def token_repo() -> RefreshTokenRepository:
    return RefreshTokenRepository()


@pytest.fixture
def auth_service(user_repo, token_repo, settings) -> AuthService:
    return AuthService(user_repo, token_repo, settings=settings)


@pytest.fixture
def registered_user(client):
    """Register a user through the API and return its credentials."""
    credentials = {"email": "jane@example.com", "password": "Password123", "name": "Jane"}
    response = client.post("/api/auth/register", json=credentials)
    assert response.status_code == 201
    return credentials


@pytest.fixture
def tokens(client, registered_user):
    """Login as the registered user and return the token response body."""
    response = client.post(
        "/api/auth/login",
        json={"email": registered_user["email"], "password": registered_user["password"]},
    )
    assert response.status_code == 200
    return response.json()
