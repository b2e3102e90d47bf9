"""Response type returned by the executor."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from reqlife.net.timer import TimingReport

if TYPE_CHECKING:
    from reqlife.net.transport import ResponsePayload, Transport


@dataclass(frozen=True)
class Response:
    """Completed HTTP exchange.

    Attributes:
        status_code: HTTP status code.
        headers: Lower-cased header name -> value (last duplicate wins).
        raw_headers: Header lines in order, original casing, duplicates kept.
        body: Payload as the transport returned it (str or bytes).
        json_data: Parsed JSON body; only meaningful when ``has_json``.
        has_json: True if the body was JSON and parsed successfully.
        request_id: Id of the attempt that produced this response.
        attempt_number: 1-based attempt number within the logical request.
        timing: Phase durations of that attempt.
        transport: Transport handle of that attempt.
    """

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    raw_headers: list[tuple[str, str]] = field(default_factory=list)
    body: ResponsePayload = ""
    json_data: Any = None
    has_json: bool = False
    request_id: int = 0
    attempt_number: int = 1
    timing: TimingReport = field(default_factory=TimingReport)
    transport: Transport | None = field(default=None, repr=False, compare=False)

    @property
    def ok(self) -> bool:
        """True for status codes below 400."""
        return self.status_code < 400
