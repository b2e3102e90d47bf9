"""Observability: HTTP request metrics."""

from reqlife.observability.latency_metrics import (
    HttpMetrics,
    get_http_metrics,
    reset_http_metrics,
)

__all__ = [
    "HttpMetrics",
    "get_http_metrics",
    "reset_http_metrics",
]
