"""Client configuration: defaults, per-call overrides, environment loading.

``HttpClientParams`` holds the client-wide defaults; ``HttpRequestOptions``
carries per-call overrides where ``None`` means "use the default".

Environment variables (all optional, read by ``HttpClientParams.from_env``)::

    REQLIFE_HOSTNAME            Target host (required unless passed explicitly)
    REQLIFE_PORT                Port (default: 443 with SSL, 80 without)
    REQLIFE_SSL                 1/true/yes/on or 0/false/no/off (default: on)
    REQLIFE_TIMEOUT_MS          Transport timeout per attempt, 0 = none (default: 0)
    REQLIFE_RETRIES             Retry budget per logical request (default: 0)
    REQLIFE_SLOW_THRESHOLD_MS   Slow-request warning threshold (default: 200)
    REQLIFE_BACKOFF_BASE_MS     Backoff unit (default: 250)
    REQLIFE_MAX_BACKOFF_MS      Optional backoff cap (default: uncapped)

Unset or blank variables fall back to defaults; unparseable values raise
``ConfigError``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from reqlife.core import ResponseType
from reqlife.errors import ConfigError
from reqlife.net.retry_policy import DEFAULT_BACKOFF_BASE_MS, retry_network_errors

if TYPE_CHECKING:
    from reqlife.net.retry_policy import IsRetryable
    from reqlife.net.transport import RequestBody

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 0
DEFAULT_RETRIES = 0
DEFAULT_SLOW_THRESHOLD_MS = 200

ENV_PREFIX = "REQLIFE_"

_TRUE_WORDS: frozenset[str] = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS: frozenset[str] = frozenset({"0", "false", "no", "off"})


# ── Environment helpers ───────────────────────────────────────────────────


def _env_value(name: str) -> str | None:
    """Return the stripped value of ``name``, or None when unset/blank."""
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def parse_bool(name: str, default: bool) -> bool:
    """Read a boolean flag (case-insensitive)."""
    value = _env_value(name)
    if value is None:
        return default
    word = value.lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ConfigError(f"invalid boolean value for {name}: {value!r}")


def parse_int(name: str, default: int | None, *, min_value: int = 0) -> int | None:
    """Read an integer with an inclusive lower bound."""
    value = _env_value(name)
    if value is None:
        return default
    try:
        result = int(value)
    except ValueError:
        raise ConfigError(f"invalid integer value for {name}: {value!r}") from None
    if result < min_value:
        raise ConfigError(f"{name}={result} is below minimum {min_value}")
    return result


# ── Config types ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class HttpClientParams:
    """Client-wide defaults.

    Attributes:
        hostname: Target host name.
        port: Target port.
        ssl: Use https when True.
        headers: Headers sent with every request.
        timeout_ms: Transport timeout per attempt (0 = no timeout).
        retries: Retry budget per logical request.
        is_retryable: Default retry predicate.
        slow_threshold_ms: Attempts slower than this are logged as warnings.
        backoff_base_ms: Backoff unit; delay = base * 2**attempt_number.
        max_backoff_ms: Optional cap on a single backoff delay.
    """

    hostname: str
    port: int
    ssl: bool
    headers: dict[str, str] = field(default_factory=dict)
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    retries: int = DEFAULT_RETRIES
    is_retryable: IsRetryable = retry_network_errors
    slow_threshold_ms: int = DEFAULT_SLOW_THRESHOLD_MS
    backoff_base_ms: int = DEFAULT_BACKOFF_BASE_MS
    max_backoff_ms: int | None = None

    def __post_init__(self) -> None:
        """Validate parameters."""
        if not self.hostname:
            raise ConfigError("hostname must not be empty")
        if not 1 <= self.port <= 65535:
            raise ConfigError(f"port must be in 1..65535, got {self.port}")
        if self.timeout_ms < 0:
            raise ConfigError("timeout_ms must be >= 0")
        if self.retries < 0:
            raise ConfigError("retries must be >= 0")
        if self.slow_threshold_ms < 0:
            raise ConfigError("slow_threshold_ms must be >= 0")

    @property
    def scheme(self) -> str:
        return "https" if self.ssl else "http"

    @property
    def base_url(self) -> str:
        """Origin that request paths are appended to."""
        return f"{self.scheme}://{self.hostname}:{self.port}"

    @classmethod
    def from_env(cls, hostname: str | None = None, *, prefix: str = ENV_PREFIX) -> HttpClientParams:
        """Build params from ``{prefix}*`` environment variables.

        Args:
            hostname: Explicit host; overrides ``{prefix}HOSTNAME``.
            prefix: Environment variable prefix.

        Raises:
            ConfigError: On a missing hostname or an invalid value.
        """
        host = hostname or _env_value(f"{prefix}HOSTNAME")
        if not host:
            raise ConfigError(f"{prefix}HOSTNAME is not set")

        ssl = parse_bool(f"{prefix}SSL", True)
        port = parse_int(f"{prefix}PORT", 443 if ssl else 80, min_value=1)
        timeout_ms = parse_int(f"{prefix}TIMEOUT_MS", DEFAULT_TIMEOUT_MS)
        retries = parse_int(f"{prefix}RETRIES", DEFAULT_RETRIES)
        slow_ms = parse_int(f"{prefix}SLOW_THRESHOLD_MS", DEFAULT_SLOW_THRESHOLD_MS)
        backoff_ms = parse_int(f"{prefix}BACKOFF_BASE_MS", DEFAULT_BACKOFF_BASE_MS)
        max_backoff_ms = parse_int(f"{prefix}MAX_BACKOFF_MS", None)

        params = cls(
            hostname=host,
            port=port,  # type: ignore[arg-type]
            ssl=ssl,
            timeout_ms=timeout_ms,  # type: ignore[arg-type]
            retries=retries,  # type: ignore[arg-type]
            slow_threshold_ms=slow_ms,  # type: ignore[arg-type]
            backoff_base_ms=backoff_ms,  # type: ignore[arg-type]
            max_backoff_ms=max_backoff_ms,
        )
        logger.debug(
            "Loaded HTTP client config from environment",
            extra={"prefix": prefix, "hostname": host, "port": port, "ssl": ssl},
        )
        return params


@dataclass(frozen=True)
class HttpRequestOptions:
    """Per-call overrides. ``None`` fields fall back to client defaults.

    ``headers`` are merged key-wise over the client headers.
    """

    body: RequestBody | None = None
    headers: dict[str, str] | None = None
    timeout_ms: int | None = None
    retries: int | None = None
    is_retryable: IsRetryable | None = None
    slow_threshold_ms: int | None = None
    response_type: ResponseType = ResponseType.TEXT

    def __post_init__(self) -> None:
        """Validate overrides."""
        if self.timeout_ms is not None and self.timeout_ms < 0:
            raise ConfigError("timeout_ms must be >= 0")
        if self.retries is not None and self.retries < 0:
            raise ConfigError("retries must be >= 0")
        if self.slow_threshold_ms is not None and self.slow_threshold_ms < 0:
            raise ConfigError("slow_threshold_ms must be >= 0")
