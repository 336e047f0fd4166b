"""In-memory repositories for users and refresh tokens."""

from api.src.repositories.user_repo import UserRepository
from api.src.repositories.token_repo import RefreshTokenRepository

__all__ = ["UserRepository", "RefreshTokenRepository"]
