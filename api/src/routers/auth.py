"""
Authentication router.

Provides REST API endpoints for:
- User registration
- Login (access + refresh token pair)
- Refresh token rotation
- Logout (refresh token revocation)
- Current user lookup

Mounted under the configured auth prefix (``/api/auth`` by default).
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status

from api.src.dependencies import get_auth_service, get_client_ip, get_current_user
from api.src.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    UserAlreadyExistsError,
)
from api.src.models.auth import (
    ErrorResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserRecord,
    UserResponse,
)
from api.src.services.auth_service import AuthService

logger = structlog.get_logger(__name__)

router = APIRouter(
    tags=["Authentication"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        422: {"description": "Validation Error"}
    }
)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    responses={409: {"model": ErrorResponse, "description": "Email already registered"}}
)
async def register(
    register_request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
    client_ip: str = Depends(get_client_ip)
) -> UserResponse:
    """
    Create a user account.

    **Error Responses:**
    - 409: Email already registered
    - 422: Validation error (bad email, weak password)
    """
    logger.info("register_attempt", email=register_request.email, ip_address=client_ip)

    try:
        user = await auth_service.register(register_request)
    except UserAlreadyExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

    return UserResponse.from_record(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Login"
)
async def login(
    login_request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
    client_ip: str = Depends(get_client_ip)
) -> TokenResponse:
    """
    Authenticate with email and password.

    Returns an access token and a refresh token. The error response does
    not say whether the email or the password was wrong.
    """
    logger.info("login_attempt", email=login_request.email, ip_address=client_ip)

    try:
        return await auth_service.login(login_request)
    except InvalidCredentialsError as e:
        logger.warning("login_failed", email=login_request.email, ip_address=client_ip)
        raise _unauthorized(e.message)


@router.post(
    "/refresh",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Refresh tokens"
)
async def refresh(
    refresh_request: RefreshRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> TokenResponse:
    """Exchange a refresh token for a new pair. The old refresh token stops working."""
    try:
        return await auth_service.refresh(refresh_request.refresh_token)
    except InvalidTokenError as e:
        raise _unauthorized(e.message)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Logout",
    response_class=Response
)
async def logout(
    refresh_request: RefreshRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> Response:
    """Revoke a refresh token. Always succeeds."""
    await auth_service.logout(refresh_request.refresh_token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current user"
)
async def me(current_user: UserRecord = Depends(get_current_user)) -> UserResponse:
    """Return the user identified by the bearer access token."""
    return UserResponse.from_record(current_user)
