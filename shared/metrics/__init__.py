"""Metrics module using Prometheus."""

from .prometheus_metrics import (
    HTTPMetrics,
    AuthMetrics,
    setup_metrics,
    get_metrics_handler,
)

__all__ = [
    "HTTPMetrics",
    "AuthMetrics",
    "setup_metrics",
    "get_metrics_handler",
]
