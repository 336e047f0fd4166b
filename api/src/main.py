"""
FastAPI application entry point for the Auth Backend API.

This module provides the application factory with:
- Environment configuration
- CORS restricted to the configured frontend origin
- JSON request bodies validated by Pydantic
- Request logging with correlation IDs and Prometheus metrics
- Health endpoint and the mounted authentication routes
- Uvicorn startup
"""

import structlog
import uvicorn
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.src import __version__
from api.src.config import Settings, get_settings
from api.src.middleware import RequestLoggingMiddleware
from api.src.repositories import RefreshTokenRepository, UserRepository
from api.src.routers import auth, health
from api.src.services.auth_service import AuthService
from shared.logging import configure_logging
from shared.metrics import get_metrics_handler, setup_metrics

logger = structlog.get_logger(__name__)


def configure_app_logging(settings: Settings) -> None:
    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.log_format == "json",
        service_name=settings.app_name,
        environment=settings.environment,
    )


# ============================================================================
# Lifespan Management
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log startup and shutdown. Resources are built eagerly by create_app."""
    settings: Settings = app.state.settings
    configure_app_logging(settings)

    logger.info(
        "server_running",
        message=f"Server running on http://localhost:{settings.port}",
        host=settings.host,
        port=settings.port,
        frontend_url=settings.frontend_url,
        version=settings.app_version,
        environment=settings.environment
    )

    yield

    logger.info("application_shutdown_complete")


# ============================================================================
# Exception Handlers
# ============================================================================

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors, including malformed JSON bodies."""
    errors = jsonable_encoder(exc.errors())
    logger.warning(
        "validation_error",
        path=request.url.path,
        errors=errors
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": errors}
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        path=request.url.path,
        status_code=exc.status_code,
        detail=exc.detail
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None)
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(
        "unexpected_exception",
        path=request.url.path,
        error=str(exc),
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


# ============================================================================
# Application Factory
# ============================================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to build with (defaults to the cached settings
            read from the environment)

    Returns:
        Configured application
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Authentication backend: health check and email/password auth routes.",
        lifespan=lifespan,
        debug=settings.debug,
    )

    # Per-application state
    registry = CollectorRegistry()
    http_metrics, auth_metrics = setup_metrics(registry)

    app.state.settings = settings
    app.state.metrics_registry = registry
    app.state.user_repo = UserRepository()
    app.state.token_repo = RefreshTokenRepository()
    app.state.auth_service = AuthService(
        app.state.user_repo,
        app.state.token_repo,
        settings=settings,
        metrics=auth_metrics
    )

    # ========================================================================
    # Middleware Configuration (last added runs first)
    # ========================================================================

    app.add_middleware(
        RequestLoggingMiddleware,
        metrics=http_metrics if settings.metrics_enabled else None
    )

    logger.debug("configuring_cors", origins=settings.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        expose_headers=["X-Correlation-ID"],
        max_age=settings.cors_max_age,
    )

    # ========================================================================
    # Exception Handlers
    # ========================================================================

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # ========================================================================
    # Routers
    # ========================================================================

    app.include_router(health.router)
    app.include_router(auth.router, prefix=settings.auth_prefix)

    if settings.metrics_enabled:
        metrics_handler = get_metrics_handler(registry)

        @app.get(settings.metrics_endpoint, tags=["Monitoring"], include_in_schema=False)
        async def metrics() -> Response:
            """Prometheus metrics in text exposition format."""
            return Response(content=metrics_handler(), media_type=CONTENT_TYPE_LATEST)

    return app


def run(settings: Optional[Settings] = None) -> None:
    """
    Run the application with Uvicorn, listening on the configured port.
    """
    settings = settings or get_settings()
    configure_app_logging(settings)

    logger.info(
        "starting_uvicorn_server",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        version=__version__
    )

    # reload needs an import string; otherwise serve an app built from these settings
    target = "api.src.main:app" if settings.debug else create_app(settings)

    uvicorn.run(
        target,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=False,
    )


app = create_app()


if __name__ == "__main__":
    run()
