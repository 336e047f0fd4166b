"""
Authentication service for user accounts and JWT token management.

Provides:
- Password hashing and verification (passlib + bcrypt)
- JWT access and refresh token creation and validation (python-jose)
- Registration, login, refresh token rotation and logout
- Current user resolution from bearer tokens
"""

import structlog
from typing import Optional, Tuple
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4
from passlib.context import CryptContext
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from api.src.config import Settings, get_settings
from api.src.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    UserAlreadyExistsError,
)
from api.src.models.auth import (
    BCRYPT_MAX_PASSWORD_BYTES,
    LoginRequest,
    RegisterRequest,
    TokenPayload,
    TokenResponse,
    TokenType,
    UserRecord,
)
from api.src.repositories.token_repo import RefreshTokenRepository
from api.src.repositories.user_repo import UserRepository
from shared.metrics import AuthMetrics

logger = structlog.get_logger(__name__)


class AuthService:
    """Service for authentication operations."""

    def __init__(
        self,
        user_repo: UserRepository,
        token_repo: RefreshTokenRepository,
        settings: Optional[Settings] = None,
        metrics: Optional[AuthMetrics] = None
    ):
        """
        Initialize auth service.

        Args:
            user_repo: User repository
            token_repo: Refresh token repository
            settings: Settings to use (defaults to the cached settings)
            metrics: Optional auth metrics collector
        """
        self.user_repo = user_repo
        self.token_repo = token_repo
        self.settings = settings or get_settings()
        self.metrics = metrics

        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=self.settings.password_bcrypt_rounds
        )

    # ========================================================================
    # Passwords
    # ========================================================================

    def hash_password(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password
        """
        try:
            hashed = self.pwd_context.hash(password)
            logger.debug("password_hashed")
            return hashed
        except Exception as e:
            logger.error("password_hash_failed", error=str(e))
            raise

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Malformed hashes and passwords longer than bcrypt reads count as
        a mismatch.

        Args:
            plain_password: Plain text password
            hashed_password: Hashed password

        Returns:
            True if password matches, False otherwise
        """
        if len(plain_password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            logger.debug("password_too_long_for_bcrypt")
            return False

        try:
            verified = self.pwd_context.verify(plain_password, hashed_password)
            logger.debug("password_verified", verified=verified)
            return verified
        except (ValueError, TypeError) as e:
            logger.error("password_verify_failed", error=str(e))
            return False

    # ========================================================================
    # Tokens
    # ========================================================================

    def _encode(self, claims: dict) -> str:
        return jwt.encode(
            claims,
            self.settings.jwt_secret_key,
            algorithm=self.settings.jwt_algorithm
        )

    def create_access_token(
        self,
        user: UserRecord,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """
        Create JWT access token.

        Args:
            user: User the token is issued to
            expires_delta: Custom expiration time (optional)

        Returns:
            JWT token string
        """
        if expires_delta is None:
            expires_delta = timedelta(minutes=self.settings.jwt_access_token_expire_minutes)

        now = datetime.now(timezone.utc)
        expire = now + expires_delta

        token = self._encode({
            "sub": str(user.id),
            "email": user.email,
            "type": TokenType.ACCESS.value,
            "exp": int(expire.timestamp()),
            "iat": int(now.timestamp()),
            "iss": self.settings.jwt_issuer,
            "aud": self.settings.jwt_audience,
        })

        logger.debug(
            "access_token_created",
            user_id=str(user.id),
            expires_in=expires_delta.total_seconds()
        )
        return token

    def create_refresh_token(
        self,
        user_id: UUID,
        expires_delta: Optional[timedelta] = None,
        jti: Optional[str] = None
    ) -> Tuple[str, str, datetime]:
        """
        Create JWT refresh token.

        The caller is responsible for recording the returned jti.

        Args:
            user_id: User ID
            expires_delta: Custom expiration time (optional)
            jti: Token ID to embed (generated when omitted)

        Returns:
            Tuple of (token, jti, expires_at)
        """
        if expires_delta is None:
            expires_delta = timedelta(days=self.settings.jwt_refresh_token_expire_days)

        now = datetime.now(timezone.utc)
        expire = now + expires_delta
        jti = jti or uuid4().hex

        token = self._encode({
            "sub": str(user_id),
            "jti": jti,
            "type": TokenType.REFRESH.value,
            "exp": int(expire.timestamp()),
            "iat": int(now.timestamp()),
            "iss": self.settings.jwt_issuer,
            "aud": self.settings.jwt_audience,
        })

        logger.debug("refresh_token_created", user_id=str(user_id), jti=jti)
        return token, jti, expire

    def decode_token(self, token: str, expected_type: TokenType) -> TokenPayload:
        """
        Decode and validate JWT token.

        Verifies signature, expiry, issuer, audience and the ``type`` claim.

        Args:
            token: JWT token string
            expected_type: Token type the caller accepts

        Returns:
            Token payload

        Raises:
            InvalidTokenError: If the token is invalid for any reason
        """
        try:
            claims = jwt.decode(
                token,
                self.settings.jwt_secret_key,
                algorithms=[self.settings.jwt_algorithm],
                audience=self.settings.jwt_audience,
                issuer=self.settings.jwt_issuer,
            )
            payload = TokenPayload(**claims)
        except ExpiredSignatureError:
            logger.info("token_expired", expected_type=expected_type.value)
            raise InvalidTokenError("expired")
        except JWTError as e:
            logger.warning("token_decode_failed", error=str(e))
            raise InvalidTokenError("malformed")
        except ValidationError as e:
            logger.warning("token_claims_invalid", error=str(e))
            raise InvalidTokenError("claims")

        if payload.type != expected_type:
            logger.warning(
                "token_type_mismatch",
                expected=expected_type.value,
                actual=payload.type.value
            )
            raise InvalidTokenError("type")

        return payload

    async def _issue_tokens(
        self,
        user: UserRecord,
        jti: Optional[str] = None
    ) -> Tuple[TokenResponse, str]:
        access_token = self.create_access_token(user)
        refresh_token, jti, expires_at = self.create_refresh_token(user.id, jti=jti)
        await self.token_repo.add(jti, user.id, expires_at)

        response = TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="bearer",
            expires_in=self.settings.access_token_expires_in
        )
        return response, jti

    def _record(self, event: str, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.auth_events.labels(event=event, outcome=outcome).inc()

    # ========================================================================
    # Operations
    # ========================================================================

    async def register(self, request: RegisterRequest) -> UserRecord:
        """
        Register a new user.

        Args:
            request: Registration data

        Returns:
            Created user

        Raises:
            UserAlreadyExistsError: If the email is already registered
        """
        if await self.user_repo.get_user_by_email(request.email):
            self._record("register", "conflict")
            raise UserAlreadyExistsError(request.email)

        password_hash = await run_in_threadpool(self.hash_password, request.password)

        try:
            user = await self.user_repo.create_user(
                email=request.email,
                password_hash=password_hash,
                name=request.name
            )
        except ValueError:
            # lost a race with a concurrent registration
            self._record("register", "conflict")
            raise UserAlreadyExistsError(request.email)

        self._record("register", "success")
        logger.info("user_registered", user_id=str(user.id), email=user.email)
        return user

    async def authenticate_user(self, request: LoginRequest) -> UserRecord:
        """
        Authenticate user with email and password.

        Args:
            request: Login credentials

        Returns:
            Authenticated user

        Raises:
            InvalidCredentialsError: On unknown email, wrong password or
                inactive user
        """
        user = await self.user_repo.get_user_by_email(request.email)

        if not user:
            # keep response time independent of whether the email exists
            await run_in_threadpool(self.pwd_context.dummy_verify)
            logger.warning("authentication_failed_user_not_found", email=request.email)
            raise InvalidCredentialsError()

        verified = await run_in_threadpool(
            self.verify_password, request.password, user.password_hash
        )
        if not verified:
            logger.warning("authentication_failed_invalid_password", user_id=str(user.id))
            raise InvalidCredentialsError()

        if not user.is_active:
            logger.warning("authentication_failed_user_inactive", user_id=str(user.id))
            raise InvalidCredentialsError()

        logger.info("user_authenticated", user_id=str(user.id))
        return user

    async def login(self, request: LoginRequest) -> TokenResponse:
        """
        Login user and issue an access/refresh token pair.

        Raises:
            InvalidCredentialsError: If authentication fails
        """
        try:
            user = await self.authenticate_user(request)
        except InvalidCredentialsError:
            self._record("login", "failure")
            raise

        response, _ = await self._issue_tokens(user)

        self._record("login", "success")
        logger.info("login_success", user_id=str(user.id))
        return response

    async def refresh(self, refresh_token: str) -> TokenResponse:
        """
        Exchange a refresh token for a new token pair.

        The presented token is revoked and linked to its replacement, so
        each refresh token can be used once.

        Raises:
            InvalidTokenError: If the token is invalid, unknown, revoked,
                expired or belongs to a missing or inactive user
        """
        try:
            payload = self.decode_token(refresh_token, TokenType.REFRESH)
            record = await self.token_repo.get(payload.jti or "")

            if record is None:
                logger.warning("refresh_token_unknown", jti=payload.jti)
                raise InvalidTokenError("unknown")

            if record.is_revoked:
                # a rotated token came back; treat the whole session as compromised
                logger.warning("refresh_token_reused", jti=record.jti, user_id=str(record.user_id))
                await self.token_repo.revoke_all_for_user(record.user_id)
                raise InvalidTokenError("revoked")

            if record.is_expired():
                logger.info("refresh_token_expired", jti=record.jti)
                raise InvalidTokenError("expired")

            user = await self.user_repo.get_user_by_id(record.user_id)
            if not user or not user.is_active:
                logger.warning("refresh_user_unavailable", user_id=str(record.user_id))
                raise InvalidTokenError("user")

            new_jti = uuid4().hex
            if not await self.token_repo.revoke(record.jti, replaced_by=new_jti):
                # another rotation of the same token won the race
                logger.warning("refresh_token_already_rotated", jti=record.jti)
                raise InvalidTokenError("revoked")

            response, _ = await self._issue_tokens(user, jti=new_jti)

        except InvalidTokenError:
            self._record("refresh", "failure")
            raise

        self._record("refresh", "success")
        logger.info("token_refreshed", user_id=str(user.id), jti=record.jti, new_jti=new_jti)
        return response

    async def logout(self, refresh_token: str) -> bool:
        """
        Revoke a refresh token.

        Idempotent: invalid, unknown or already revoked tokens are ignored.

        Returns:
            True if a token was revoked, False otherwise
        """
        try:
            payload = self.decode_token(refresh_token, TokenType.REFRESH)
        except InvalidTokenError:
            logger.info("logout_ignored_invalid_token")
            self._record("logout", "ignored")
            return False

        revoked = await self.token_repo.revoke(payload.jti or "")
        self._record("logout", "success" if revoked else "ignored")
        logger.info("logout", user_id=payload.sub, revoked=revoked)
        return revoked

    async def get_current_user(self, token: str) -> UserRecord:
        """
        Get current user from an access token.

        Args:
            token: JWT access token string

        Returns:
            Current user

        Raises:
            InvalidTokenError: If the token is invalid or the user is
                missing or inactive
        """
        payload = self.decode_token(token, TokenType.ACCESS)

        try:
            user_id = UUID(payload.sub)
        except ValueError:
            logger.warning("get_current_user_failed_invalid_user_id", user_id=payload.sub)
            raise InvalidTokenError("subject")

        user = await self.user_repo.get_user_by_id(user_id)

        if not user:
            logger.warning("get_current_user_failed_user_not_found", user_id=str(user_id))
            raise InvalidTokenError("user")

        if not user.is_active:
            logger.warning("get_current_user_failed_user_inactive", user_id=str(user_id))
            raise InvalidTokenError("user")

        logger.debug("current_user_retrieved", user_id=str(user.id))
        return user
