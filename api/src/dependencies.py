"""
FastAPI dependency injection for settings, services and authentication.

Provides injectable dependencies for:
- Application settings
- Repository and service instances held on ``app.state``
- Bearer token extraction
- Current user resolution

All dependencies read per-application state from the request, so several
applications built by ``create_app`` can coexist in one process.
"""

import structlog
from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from api.src.config import Settings
from api.src.exceptions import InvalidTokenError
from api.src.models.auth import UserRecord
from api.src.repositories.user_repo import UserRepository
from api.src.services.auth_service import AuthService

logger = structlog.get_logger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    """Settings the running application was built with."""
    return request.app.state.settings


def get_user_repository(request: Request) -> UserRepository:
    return request.app.state.user_repo


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def get_token_from_header(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> str:
    """
    Extract JWT token from Authorization header.

    Args:
        credentials: HTTP bearer credentials

    Returns:
        JWT token string

    Raises:
        HTTPException: If no Bearer token was sent (HTTPBearer treats
            other schemes as missing)
    """
    if not credentials:
        logger.warning("auth_missing_credentials")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication credentials",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_token_from_header),
    auth_service: AuthService = Depends(get_auth_service)
) -> UserRecord:
    """
    Get current authenticated user from JWT access token.

    Raises:
        HTTPException: If token is invalid or user not found or inactive

    Example:
        @router.get("/profile")
        async def get_profile(user: UserRecord = Depends(get_current_user)):
            return {"email": user.email}
    """
    try:
        return await auth_service.get_current_user(token)
    except InvalidTokenError as e:
        logger.warning("auth_invalid_token", reason=e.reason)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"}
        )
