"""Retry predicate and backoff policy.

Provides:
- ``RetryPolicy``: frozen config pairing a retryability predicate with an
  exponential backoff calculator.
- ``retry_network_errors()``: default predicate (transport errors and
  timeouts only).
- ``retry_idempotent_server_errors()``: also retries 5xx responses.

Design:
- Deterministic: no jitter, so delays are reproducible in tests.
- Uncapped by default (``max_delay_ms=None``); a cap is opt-in.
- The retry budget is NOT part of the policy. The executor decrements
  ``retries_remaining`` and only asks the policy while budget remains.

This module has NO side-effects (no metrics, no I/O).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from reqlife.core import FailureCause

if TYPE_CHECKING:
    from collections.abc import Callable

    from reqlife.net.types import Response

    IsRetryable = Callable[[FailureCause, Response | None], bool]

DEFAULT_BACKOFF_BASE_MS = 250
DEFAULT_BACKOFF_MULTIPLIER = 2.0

# Causes retried by the default predicate
_NETWORK_CAUSES: frozenset[FailureCause] = frozenset(
    {
        FailureCause.TRANSPORT_ERROR,
        FailureCause.TIMED_OUT,
    }
)


def retry_network_errors(cause: FailureCause, response: Response | None = None) -> bool:
    """Retry transport errors and timeouts; never aborts or status errors."""
    return cause in _NETWORK_CAUSES


def retry_idempotent_server_errors(cause: FailureCause, response: Response | None = None) -> bool:
    """Retry network failures plus 5xx responses.

    Only safe for idempotent requests: the server may already have acted
    on the first attempt.
    """
    if cause in _NETWORK_CAUSES:
        return True
    return (
        cause == FailureCause.STATUS_ERROR
        and response is not None
        and 500 <= response.status_code < 600
    )


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry decisions.

    Attributes:
        is_retryable: Predicate(cause, partial_response) deciding retryability.
        base_delay_ms: Delay unit in milliseconds.
        backoff_multiplier: Growth factor per attempt.
        max_delay_ms: Optional cap on a single delay (None = uncapped).
    """

    is_retryable: IsRetryable = retry_network_errors
    base_delay_ms: int = DEFAULT_BACKOFF_BASE_MS
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER
    max_delay_ms: int | None = None

    def __post_init__(self) -> None:
        """Validate policy parameters."""
        if self.base_delay_ms < 0:
            raise ValueError("base_delay_ms must be >= 0")
        if self.backoff_multiplier < 1.0:
            raise ValueError("backoff_multiplier must be >= 1.0")
        if self.max_delay_ms is not None and self.max_delay_ms < self.base_delay_ms:
            raise ValueError("max_delay_ms must be >= base_delay_ms")

    def should_retry(self, cause: FailureCause, response: Response | None = None) -> bool:
        """Ask the predicate whether this failure is worth another attempt."""
        return self.is_retryable(cause, response)

    def compute_delay_ms(self, attempt_number: int) -> int:
        """Compute the delay before the attempt after ``attempt_number``.

        Attempt numbers are 1-based, so with defaults the first retry waits
        500ms, then 1000ms, 2000ms, ...
        """
        delay = int(self.base_delay_ms * (self.backoff_multiplier**attempt_number))
        if self.max_delay_ms is not None:
            return min(delay, self.max_delay_ms)
        return delay
