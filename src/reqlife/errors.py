"""reqlife exception hierarchy.

Exception hierarchy:
- HttpClientError (base)
  - RequestFailedError (logical request failed after the retry budget/policy said stop)
  - TransportStateError (transport driven out of order: send before open, etc.)
  - ConfigError (invalid parameters or environment values)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from reqlife.core import FailureCause
    from reqlife.net.transport import Transport
    from reqlife.net.types import Response


class HttpClientError(Exception):
    """Base exception for all reqlife errors."""

    pass


class RequestFailedError(HttpClientError):
    """Terminal failure of a logical request.

    Raised once per logical request, after the last attempt. Carries the
    cause of that attempt and, for ``STATUS_ERROR``, the server response.

    Attributes:
        method: HTTP method of the request.
        path: Request path.
        cause: Classified failure cause of the final attempt.
        response: Partial response (only for ``FailureCause.STATUS_ERROR``).
        transport: Transport handle used by the final attempt.
        request_id: Request id of the final attempt (diagnostics only).
        attempt_number: Number of the final attempt (1-based).
    """

    def __init__(
        self,
        method: str,
        path: str,
        cause: FailureCause,
        *,
        response: Response | None = None,
        transport: Transport | None = None,
        request_id: int = 0,
        attempt_number: int = 1,
    ) -> None:
        self.method = method
        self.path = path
        self.cause = cause
        self.response = response
        self.transport = transport
        self.request_id = request_id
        self.attempt_number = attempt_number
        status = f" status={response.status_code}" if response is not None else ""
        super().__init__(
            f"HTTP {method} {path} failed: cause={cause.value}{status} attempts={attempt_number}"
        )

    @property
    def status_code(self) -> int | None:
        """Status code of the partial response, if any."""
        return self.response.status_code if self.response is not None else None


class TransportStateError(HttpClientError):
    """Transport operation called in the wrong lifecycle phase."""

    def __init__(self, op: str, phase: str) -> None:
        self.op = op
        self.phase = phase
        super().__init__(f"Cannot {op}: transport is in phase {phase}")


class ConfigError(HttpClientError):
    """Raised when client configuration or an environment variable is invalid."""
