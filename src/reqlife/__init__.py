"""reqlife - HTTP request lifecycle and retry core.

Drives one logical request through open, headers, body and done/error/
abort/timeout; times each phase; retries retryable failures with
exponential backoff.

Note: version is sourced from package metadata (pyproject.toml).
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from reqlife.config import HttpClientParams, HttpRequestOptions
from reqlife.core import FailureCause, LifecyclePhase, Outcome, ResponseType, TransportEvent
from reqlife.errors import (
    ConfigError,
    HttpClientError,
    RequestFailedError,
    TransportStateError,
)
from reqlife.net.client import HttpClient
from reqlife.net.duration import format_duration
from reqlife.net.executor import AttemptContext, RequestExecutor
from reqlife.net.retry_policy import (
    RetryPolicy,
    retry_idempotent_server_errors,
    retry_network_errors,
)
from reqlife.net.types import Response


def _pkg_version() -> str:
    try:
        return version("reqlife")
    except PackageNotFoundError:
        return "0.0.0"


__version__ = _pkg_version()

__all__ = [
    "AttemptContext",
    "ConfigError",
    "FailureCause",
    "HttpClient",
    "HttpClientError",
    "HttpClientParams",
    "HttpRequestOptions",
    "LifecyclePhase",
    "Outcome",
    "RequestExecutor",
    "RequestFailedError",
    "Response",
    "ResponseType",
    "RetryPolicy",
    "TransportEvent",
    "TransportStateError",
    "__version__",
    "format_duration",
    "retry_idempotent_server_errors",
    "retry_network_errors",
]
