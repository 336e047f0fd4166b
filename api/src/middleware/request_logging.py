"""
Request logging and metrics middleware.

Assigns every request a correlation ID (taken from ``X-Correlation-ID`` or
freshly generated), binds it to the structlog context, records Prometheus
request metrics and echoes the ID back on the response.
"""

import time
import uuid
from typing import Callable, Optional

import structlog
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from shared.logging import bind_context, unbind_context
from shared.metrics import HTTPMetrics

logger = structlog.get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def _endpoint_label(request: Request) -> str:
    # route template keeps label cardinality bounded
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path or "unmatched"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request logging and metrics."""

    def __init__(self, app: ASGIApp, metrics: Optional[HTTPMetrics] = None):
        super().__init__(app)
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log details."""
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"

        bind_context(correlation_id=correlation_id)

        if self.metrics:
            # route is not resolved yet, so only the method is known here
            self.metrics.requests_in_progress.labels(method=method).inc()

        start_time = time.perf_counter()

        logger.info(
            "request_started",
            method=method,
            path=path,
            client_ip=client_ip
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.perf_counter() - start_time
            self._observe(request, method, status.HTTP_500_INTERNAL_SERVER_ERROR, duration)
            logger.error(
                "request_failed",
                method=method,
                path=path,
                error=str(e),
                duration=f"{duration:.3f}s",
                exc_info=True
            )
            # the app-level 500 handler runs outside CORS and this middleware
            response = JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"detail": "Internal server error"}
            )
            response.headers[CORRELATION_HEADER] = correlation_id
            return response
        else:
            duration = time.perf_counter() - start_time
            self._observe(request, method, response.status_code, duration)

            logger.info(
                "request_completed",
                method=method,
                path=path,
                status_code=response.status_code,
                duration=f"{duration:.3f}s"
            )

            response.headers[CORRELATION_HEADER] = correlation_id
            return response
        finally:
            if self.metrics:
                self.metrics.requests_in_progress.labels(method=method).dec()
            unbind_context("correlation_id")

    def _observe(self, request: Request, method: str, status_code: int, duration: float) -> None:
        if not self.metrics:
            return
        endpoint = _endpoint_label(request)
        self.metrics.requests_total.labels(
            method=method,
            endpoint=endpoint,
            status=status_code
        ).inc()
        self.metrics.request_duration.labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)
