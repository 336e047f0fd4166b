"""
FastAPI application configuration using Pydantic Settings.

Provides centralized configuration for:
- Server binding (host, port)
- CORS (allowed frontend origin)
- Authentication (JWT and password hashing settings)
- Logging and monitoring

All settings support environment variable overrides and .env file loading.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Variable names are unprefixed and case-insensitive, so ``PORT`` maps to
    ``port`` and ``FRONTEND_URL`` maps to ``frontend_url``.

    Environment variables are loaded from:
    1. System environment
    2. .env file in the current directory
    3. Default values defined below
    """

    # =========================================================================
    # API Settings
    # =========================================================================

    app_name: str = Field(
        default="Auth Backend API",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="API version"
    )
    auth_prefix: str = Field(
        default="/api/auth",
        description="Mount point of the authentication routes"
    )

    debug: bool = Field(
        default=False,
        description="Debug mode - enables verbose logging and error traces"
    )
    environment: str = Field(
        default="development",
        description="Environment: development|staging|production"
    )

    host: str = Field(
        default="0.0.0.0",
        description="API bind host"
    )
    port: int = Field(
        default=5000,
        description="API bind port",
        gt=0,
        lt=65536
    )

    # =========================================================================
    # CORS Settings
    # =========================================================================

    frontend_url: str = Field(
        default="http://localhost:3000",
        description="The single browser origin allowed to call this API"
    )
    cors_allow_credentials: bool = Field(
        default=True,
        description="Allow credentials (cookies, authorization headers) in CORS"
    )
    cors_allow_methods: List[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        description="Allowed HTTP methods"
    )
    cors_allow_headers: List[str] = Field(
        default=["*"],
        description="Allowed HTTP headers"
    )
    cors_max_age: int = Field(
        default=600,
        description="CORS preflight cache duration (seconds)"
    )

    # =========================================================================
    # JWT Authentication Settings
    # =========================================================================

    jwt_secret_key: str = Field(
        default="change-this-secret-key-in-production-minimum-32-chars",
        description="Secret key for JWT token signing (MUST be changed in production)",
        min_length=32
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm (HS256, HS384, HS512)"
    )
    jwt_access_token_expire_minutes: int = Field(
        default=15,
        description="Access token expiration time in minutes",
        gt=0,
        le=1440  # Max 24 hours
    )
    jwt_refresh_token_expire_days: int = Field(
        default=7,
        description="Refresh token expiration time in days",
        gt=0,
        le=90
    )
    jwt_issuer: str = Field(
        default="auth-backend-api",
        description="JWT issuer claim"
    )
    jwt_audience: str = Field(
        default="auth-backend-users",
        description="JWT audience claim"
    )

    # =========================================================================
    # Password Hashing Settings
    # =========================================================================

    password_bcrypt_rounds: int = Field(
        default=12,
        description="BCrypt hash rounds (higher = slower but more secure)",
        ge=4,
        le=14
    )

    # =========================================================================
    # Monitoring and Logging
    # =========================================================================

    metrics_enabled: bool = Field(
        default=True,
        description="Enable Prometheus metrics"
    )
    metrics_endpoint: str = Field(
        default="/metrics",
        description="Metrics endpoint path"
    )

    log_level: str = Field(
        default="INFO",
        description="Log level: DEBUG|INFO|WARNING|ERROR|CRITICAL"
    )
    log_format: str = Field(
        default="json",
        description="Log format: json|text"
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}, got: {v}")
        return v_upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed = ["development", "staging", "production"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of {allowed}, got: {v}")
        return v_lower

    @field_validator("frontend_url")
    @classmethod
    def validate_frontend_url(cls, v: str) -> str:
        """Browsers send Origin without a trailing slash."""
        v = v.strip().rstrip("/")
        if not v:
            raise ValueError("frontend_url must not be empty")
        return v

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        """Validate JWT algorithm is a supported HMAC algorithm."""
        allowed = ["HS256", "HS384", "HS512"]
        if v not in allowed:
            raise ValueError(f"jwt_algorithm must be one of {allowed}, got: {v}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        allowed = ["json", "text"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"log_format must be one of {allowed}, got: {v}")
        return v_lower

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def cors_origins(self) -> List[str]:
        """Allowed CORS origins."""
        return [self.frontend_url]

    @property
    def access_token_expires_in(self) -> int:
        """Access token lifetime in seconds."""
        return self.jwt_access_token_expire_minutes * 60

    # =========================================================================
    # Model Config
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once and shared
    across the application.

    Returns:
        Settings: Cached settings instance

    Example:
        >>> from api.src.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.port)
        5000
    """
    return Settings()


def clear_settings_cache():
    """
    Clear the settings cache.

    Useful for testing when you need to reload settings with different
    environment variables.
    """
    get_settings.cache_clear()
