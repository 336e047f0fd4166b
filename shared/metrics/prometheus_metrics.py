"""Prometheus metrics definitions and helpers.

Provides HTTP and authentication metric definitions for the API.
"""

from typing import Callable

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    REGISTRY,
    CollectorRegistry,
)


class HTTPMetrics:
    """HTTP request metrics."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize HTTP metrics.

        Args:
            registry: Prometheus registry to use
        """
        self.requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status"],
            registry=registry,
        )

        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
            registry=registry,
        )

        self.requests_in_progress = Gauge(
            "http_requests_in_progress",
            "HTTP requests currently in progress",
            ["method"],
            registry=registry,
        )


class AuthMetrics:
    """Authentication outcome metrics."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize auth metrics.

        Args:
            registry: Prometheus registry to use
        """
        # event: register|login|refresh|logout
        self.auth_events = Counter(
            "auth_events_total",
            "Authentication events by outcome",
            ["event", "outcome"],
            registry=registry,
        )


def setup_metrics(registry: CollectorRegistry = REGISTRY) -> tuple[HTTPMetrics, AuthMetrics]:
    """Setup and return metric instances.

    Each application gets its own registry so that building several apps
    in one process (tests) does not register duplicate collectors.

    Returns:
        Tuple of (HTTPMetrics, AuthMetrics)
    """
    return HTTPMetrics(registry), AuthMetrics(registry)


def get_metrics_handler(registry: CollectorRegistry = REGISTRY) -> Callable[[], bytes]:
    """Get metrics handler for HTTP endpoint.

    Returns:
        Function that generates Prometheus metrics output
    """

    def metrics_handler() -> bytes:
        return generate_latest(registry)

    return metrics_handler
