"""
Authentication and user models.

Provides Pydantic schemas for:
- Stored user and refresh token records
- Authentication requests and responses
- JWT token payloads
- Password validation
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4
import re

from pydantic import BaseModel, Field, EmailStr, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenType(str, Enum):
    """Value of the ``type`` claim carried by every issued JWT."""
    ACCESS = "access"
    REFRESH = "refresh"


# ============================================================================
# Stored Records
# ============================================================================


class UserRecord(BaseModel):
    """
    User account as held by the user repository.

    Carries the password hash and must never be returned to clients;
    use UserResponse for that.
    """
    id: UUID = Field(default_factory=uuid4)
    email: str
    name: Optional[str] = None
    password_hash: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class RefreshTokenRecord(BaseModel):
    """Server-side state of an issued refresh token."""
    jti: str
    user_id: UUID
    expires_at: datetime
    created_at: datetime = Field(default_factory=utcnow)
    revoked_at: Optional[datetime] = None
    replaced_by: Optional[str] = None

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) >= self.expires_at


# ============================================================================
# Pydantic Request Models
# ============================================================================


# bcrypt ignores everything past this many bytes
BCRYPT_MAX_PASSWORD_BYTES = 72


def _validate_password_strength(v: str) -> str:
    """
    Validate password complexity.

    Requirements:
    - At least 8 characters and at most 72 bytes as UTF-8
    - At least one letter
    - At least one digit
    """
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters long")

    if len(v.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
        raise ValueError(
            f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes when UTF-8 encoded"
        )

    if not re.search(r"[A-Za-z]", v):
        raise ValueError("Password must contain at least one letter")

    if not re.search(r"\d", v):
        raise ValueError("Password must contain at least one digit")

    return v


class RegisterRequest(BaseModel):
    """Registration request schema with password validation."""
    email: EmailStr = Field(
        ...,
        description="Email address"
    )
    password: str = Field(
        ...,
        description="Password (8 characters to 72 UTF-8 bytes, letters and digits)"
    )
    name: Optional[str] = Field(
        None,
        min_length=1,
        max_length=100,
        description="Display name"
    )

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _validate_password_strength(v)

    model_config = {
        "json_schema_extra": {
            "example": {
                "email": "jane@example.com",
                "password": "SecurePassword123",
                "name": "Jane"
            }
        }
    }


class LoginRequest(BaseModel):
    """Login request schema."""
    email: EmailStr = Field(
        ...,
        description="Email address"
    )
    password: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Password"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "email": "jane@example.com",
                "password": "SecurePassword123"
            }
        }
    }


class RefreshRequest(BaseModel):
    """Refresh and logout request schema."""
    refresh_token: str = Field(
        ...,
        min_length=1,
        description="Refresh token previously issued by login or refresh"
    )


# ============================================================================
# Pydantic Response Models
# ============================================================================


class TokenResponse(BaseModel):
    """JWT token pair response schema."""
    access_token: str = Field(
        ...,
        min_length=10,
        description="JWT access token"
    )
    refresh_token: str = Field(
        ...,
        min_length=10,
        description="JWT refresh token"
    )
    token_type: str = Field(
        default="bearer",
        description="Token type"
    )
    expires_in: int = Field(
        ...,
        gt=0,
        description="Access token expiration time in seconds"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "refresh_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "token_type": "bearer",
                "expires_in": 900
            }
        }
    }


class UserResponse(BaseModel):
    """User information response schema."""
    id: str = Field(
        ...,
        description="User ID (UUID)"
    )
    email: str = Field(
        ...,
        description="Email address"
    )
    name: Optional[str] = Field(
        None,
        description="Display name"
    )
    is_active: bool = Field(
        ...,
        description="Active status"
    )
    created_at: datetime = Field(
        ...,
        description="Creation timestamp"
    )

    @classmethod
    def from_record(cls, user: UserRecord) -> "UserResponse":
        return cls(
            id=str(user.id),
            email=user.email,
            name=user.name,
            is_active=user.is_active,
            created_at=user.created_at,
        )

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": "550e8400-e29b-41d4-a716-446655440000",
                "email": "jane@example.com",
                "name": "Jane",
                "is_active": True,
                "created_at": "2025-01-15T10:30:00Z"
            }
        }
    }


class ErrorResponse(BaseModel):
    """Error response schema."""
    detail: str = Field(
        ...,
        min_length=1,
        description="Error message"
    )


class HealthResponse(BaseModel):
    """Health check response schema."""
    status: str = Field(..., description="Always 'ok'")
    message: str = Field(..., description="Human readable status")


# ============================================================================
# Token Models
# ============================================================================


class TokenPayload(BaseModel):
    """
    Decoded JWT claims.

    ``email`` is only present on access tokens and ``jti`` only on
    refresh tokens.
    """
    sub: str = Field(
        ...,
        description="Subject (user ID)"
    )
    type: TokenType = Field(
        ...,
        description="Token type"
    )
    exp: int = Field(
        ...,
        description="Expiration timestamp (Unix epoch)"
    )
    iat: int = Field(
        ...,
        description="Issued at timestamp (Unix epoch)"
    )
    email: Optional[str] = Field(
        None,
        description="User email (access tokens)"
    )
    jti: Optional[str] = Field(
        None,
        description="Token ID (refresh tokens)"
    )
    iss: Optional[str] = Field(
        None,
        description="Issuer"
    )
    aud: Optional[str] = Field(
        None,
        description="Audience"
    )
