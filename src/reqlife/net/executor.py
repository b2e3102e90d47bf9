"""Request lifecycle and retry state machine.

One logical request runs as a sequence of attempts. Each attempt:

1. allocates a request id and a fresh transport,
2. attaches the phase timer and the terminal-signal listeners,
3. opens the transport, sets headers, sends,
4. waits for a terminal signal and settles it through an ``OutcomeLatch``,
5. turns the outcome into a response or a ``FailureCause``.

A failing transport reports ``DONE`` right before its error/abort/timeout
event, so ``DONE`` never completes an attempt directly. The attempt waits a
short settle window first; a failure signal that lands inside the window
sets the latch and wins. After the latch is set every other terminal signal
is ignored.

Failures go through the attempt's ``RetryPolicy`` while retry budget
remains. Attempts are strictly sequential; a retry only starts after the
backoff delay of the previous failure.

Design:
- Attempt state is an immutable ``AttemptContext``; retries derive a new one.
- Injectable transport factory, request id counter, sleep and metrics.
- No cancellation API: an attempt ends only through a transport signal.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from reqlife.config import DEFAULT_SLOW_THRESHOLD_MS
from reqlife.core import (
    BODYLESS_METHODS,
    FailureCause,
    LifecyclePhase,
    Outcome,
    ResponseType,
    TransportEvent,
)
from reqlife.errors import RequestFailedError
from reqlife.net.headers import is_json_content_type, parse_header_blob
from reqlife.net.request_ids import get_request_id_counter
from reqlife.net.retry_policy import RetryPolicy
from reqlife.net.timer import PhaseTimer, TimingReport
from reqlife.net.types import Response

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from reqlife.net.request_ids import RequestIdCounter
    from reqlife.net.transport import RequestBody, ResponsePayload, Transport, TransportEventInfo
    from reqlife.observability.latency_metrics import HttpMetrics

logger = logging.getLogger(__name__)

# Grace period after DONE during which error/abort/timeout may still arrive
DONE_SETTLE_MS = 10

_FAILURE_OUTCOMES: dict[TransportEvent, Outcome] = {
    TransportEvent.ERROR: Outcome.ERRORED,
    TransportEvent.ABORT: Outcome.ABORTED,
    TransportEvent.TIMEOUT: Outcome.TIMED_OUT,
}

_OUTCOME_CAUSES: dict[Outcome, FailureCause] = {
    Outcome.ERRORED: FailureCause.TRANSPORT_ERROR,
    Outcome.ABORTED: FailureCause.ABORTED,
    Outcome.TIMED_OUT: FailureCause.TIMED_OUT,
}

_FAILURE_MESSAGES: dict[TransportEvent, str] = {
    TransportEvent.ERROR: "An error occurred while trying to make an HTTP request",
    TransportEvent.ABORT: "Outgoing HTTP request was aborted",
    TransportEvent.TIMEOUT: "Outgoing HTTP request timed out",
}

# Response types whose payload is text that may hold JSON
_PARSEABLE_TYPES: frozenset[ResponseType] = frozenset({ResponseType.TEXT, ResponseType.JSON})


@dataclass(frozen=True)
class AttemptContext:
    """Everything one attempt needs. Immutable; retries derive a new one.

    Attributes:
        method: Upper-case HTTP method.
        path: Request path (appended to the executor base URL).
        body: Request body (sent only for methods that carry one).
        headers: Merged request headers.
        timeout_ms: Transport timeout (0 = none).
        retries_remaining: Retries left after this attempt.
        retry_policy: Retry predicate and backoff.
        slow_threshold_ms: Slow-request threshold for timing.
        attempt_number: 1-based attempt number in the logical request.
        response_type: Requested payload representation.
    """

    method: str
    path: str
    body: RequestBody | None = None
    headers: dict[str, str] = field(default_factory=dict)
    timeout_ms: int = 0
    retries_remaining: int = 0
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    slow_threshold_ms: int = DEFAULT_SLOW_THRESHOLD_MS
    attempt_number: int = 1
    response_type: ResponseType = ResponseType.TEXT

    def __post_init__(self) -> None:
        if self.attempt_number < 1:
            raise ValueError("attempt_number must be >= 1")
        if self.retries_remaining < 0:
            raise ValueError("retries_remaining must be >= 0")
        object.__setattr__(self, "method", self.method.upper())

    @property
    def carries_body(self) -> bool:
        return self.method not in BODYLESS_METHODS

    def next_attempt(self) -> AttemptContext:
        """Context for the retry of this attempt."""
        return replace(
            self,
            retries_remaining=self.retries_remaining - 1,
            attempt_number=self.attempt_number + 1,
        )


class OutcomeLatch:
    """Write-once terminal outcome of one attempt.

    ``signal()`` wakes the waiter without deciding anything (used for
    ``DONE``); ``set()`` decides the outcome if nothing decided it yet.
    """

    def __init__(self) -> None:
        self._outcome = Outcome.PENDING
        self._signalled = asyncio.Event()

    @property
    def outcome(self) -> Outcome:
        return self._outcome

    def set(self, outcome: Outcome) -> bool:
        """Set the outcome. Returns False if it was already set."""
        if self._outcome is not Outcome.PENDING:
            return False
        self._outcome = outcome
        self._signalled.set()
        return True

    def signal(self) -> None:
        self._signalled.set()

    async def wait(self) -> None:
        await self._signalled.wait()


@dataclass(frozen=True)
class _AttemptResult:
    """What one attempt produced: a response, a cause, or both (status error)."""

    request_id: int
    transport: Transport
    timing: TimingReport
    response: Response | None = None
    cause: FailureCause | None = None


class RequestExecutor:
    """Runs logical requests against one origin.

    Usage::

        executor = RequestExecutor("https://api.example.com:443", make_transport)
        response = await executor.execute(AttemptContext(method="GET", path="/v1/items"))

    Args:
        base_url: ``scheme://host:port`` that paths are appended to.
        transport_factory: Returns a fresh transport per attempt.
        request_ids: Id source (default: process-global counter).
        sleep_func: Async sleep used for backoff delays (injectable for tests).
        metrics: Optional HttpMetrics to record into.
        settle_ms: Settle window after DONE.
    """

    def __init__(
        self,
        base_url: str,
        transport_factory: Callable[[], Transport],
        *,
        request_ids: RequestIdCounter | None = None,
        sleep_func: Callable[[float], Awaitable[None]] | None = None,
        metrics: HttpMetrics | None = None,
        settle_ms: float = DONE_SETTLE_MS,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._transport_factory = transport_factory
        self._request_ids = request_ids or get_request_id_counter()
        self._sleep = sleep_func or asyncio.sleep
        self._metrics = metrics
        self._settle_ms = settle_ms

    @property
    def base_url(self) -> str:
        return self._base_url

    async def execute(self, ctx: AttemptContext) -> Response:
        """Run ``ctx`` and its retries until one succeeds or the chain gives up.

        Raises:
            RequestFailedError: With the cause (and partial response for
                status errors) of the final attempt.
        """
        while True:
            result = await self._attempt(ctx)
            if result.cause is None and result.response is not None:
                return result.response

            cause = result.cause or FailureCause.TRANSPORT_ERROR
            if ctx.retries_remaining > 0 and ctx.retry_policy.should_retry(cause, result.response):
                delay_ms = ctx.retry_policy.compute_delay_ms(ctx.attempt_number)
                logger.debug(
                    "Retrying outbound HTTP request",
                    extra={
                        "request_id": result.request_id,
                        "attempt": ctx.attempt_number,
                        "cause": cause.value,
                        "retries_remaining": ctx.retries_remaining,
                        "delay_ms": delay_ms,
                    },
                )
                self._record_retry(ctx.method, cause)
                await self._sleep(delay_ms / 1000.0)
                ctx = ctx.next_attempt()
                continue

            logger.info(
                "Outbound HTTP request failed",
                extra={
                    "request_id": result.request_id,
                    "attempt": ctx.attempt_number,
                    "url": self._base_url,
                    "method": ctx.method,
                    "path": ctx.path,
                    "cause": cause.value,
                    **result.timing.as_log_fields(),
                },
            )
            self._record_fail(ctx.method, cause)
            raise RequestFailedError(
                ctx.method,
                ctx.path,
                cause,
                response=result.response,
                transport=result.transport,
                request_id=result.request_id,
                attempt_number=ctx.attempt_number,
            )

    async def _attempt(self, ctx: AttemptContext) -> _AttemptResult:
        """Run one physical attempt to a terminal outcome."""
        request_id = self._request_ids.allocate()
        transport = self._transport_factory()
        transport.response_type = ctx.response_type

        timer = PhaseTimer(ctx.slow_threshold_ms)
        timer.observe(transport)
        latch = OutcomeLatch()

        logger.debug(
            "Starting outgoing HTTP request",
            extra={
                "request_id": request_id,
                "attempt": ctx.attempt_number,
                "url": self._base_url,
                "method": ctx.method,
                "path": ctx.path,
                "timeout_ms": ctx.timeout_ms,
            },
        )

        if ctx.timeout_ms:
            transport.timeout_ms = ctx.timeout_ms

        def on_phase(info: TransportEventInfo) -> None:
            if info.phase == LifecyclePhase.DONE:
                latch.signal()

        def on_failure(info: TransportEventInfo) -> None:
            if latch.set(_FAILURE_OUTCOMES[info.event]):
                logger.warning(_FAILURE_MESSAGES[info.event], extra={"request_id": request_id})
            else:
                logger.debug(
                    "Ignoring transport event after outcome was settled",
                    extra={
                        "request_id": request_id,
                        "event": info.event.value,
                        "outcome": latch.outcome.value,
                    },
                )

        # Observers go on before open() so OPENED is seen
        transport.add_listener(TransportEvent.READY_STATE_CHANGE, on_phase)
        for event in _FAILURE_OUTCOMES:
            transport.add_listener(event, on_failure)

        transport.open(ctx.method, f"{self._base_url}{ctx.path}")
        for name, value in ctx.headers.items():
            transport.set_request_header(name, value)
        transport.send(ctx.body if ctx.carries_body else None)

        outcome = await self._settle(latch)
        timing = timer.report()

        if outcome is not Outcome.COMPLETED:
            return _AttemptResult(
                request_id=request_id,
                transport=transport,
                timing=timing,
                cause=_OUTCOME_CAUSES[outcome],
            )

        response = self._build_response(transport, ctx, request_id, timing)
        if response.status_code >= 400:
            return _AttemptResult(
                request_id=request_id,
                transport=transport,
                timing=timing,
                response=response,
                cause=FailureCause.STATUS_ERROR,
            )
        return _AttemptResult(
            request_id=request_id, transport=transport, timing=timing, response=response
        )

    async def _settle(self, latch: OutcomeLatch) -> Outcome:
        """Wait for a terminal signal and return the settled outcome."""
        await latch.wait()
        if latch.outcome is Outcome.PENDING:
            # Only DONE so far; give a trailing failure event the chance to win
            await asyncio.sleep(self._settle_ms / 1000.0)
            latch.set(Outcome.COMPLETED)
        return latch.outcome

    def _build_response(
        self,
        transport: Transport,
        ctx: AttemptContext,
        request_id: int,
        timing: TimingReport,
    ) -> Response:
        data = transport.response
        if data is None:
            data = b"" if ctx.response_type == ResponseType.BYTES else ""
        status = transport.status

        log = logger.warning if timing.was_slow else logger.debug
        log(
            "Outbound HTTP request complete",
            extra={
                "request_id": request_id,
                "attempt": ctx.attempt_number,
                "url": self._base_url,
                "method": ctx.method,
                "path": ctx.path,
                "status": status,
                "content_length": _content_length(data),
                **timing.as_log_fields(),
            },
        )
        self._record_request(ctx.method, status, timing.total_ms)

        headers, raw_headers = parse_header_blob(transport.get_all_response_headers())

        json_data: Any = None
        has_json = False
        if is_json_content_type(headers.get("content-type")) and (
            ctx.response_type in _PARSEABLE_TYPES
        ):
            try:
                json_data = json.loads(data)
                has_json = True
            except ValueError:
                logger.warning(
                    "HTTP response content-type was JSON, but the payload was unparsable",
                    extra={"request_id": request_id},
                )

        return Response(
            status_code=status,
            headers=headers,
            raw_headers=raw_headers,
            body=data,
            json_data=json_data,
            has_json=has_json,
            request_id=request_id,
            attempt_number=ctx.attempt_number,
            timing=timing,
            transport=transport,
        )

    def _record_request(self, method: str, status: int, latency_ms: float) -> None:
        if self._metrics is not None:
            self._metrics.record_request(method, status_class(status))
            self._metrics.record_latency(method, latency_ms)

    def _record_retry(self, method: str, cause: FailureCause) -> None:
        if self._metrics is not None:
            self._metrics.record_retry(method, cause.value)

    def _record_fail(self, method: str, cause: FailureCause) -> None:
        if self._metrics is not None:
            self._metrics.record_fail(method, cause.value)


def status_class(status_code: int) -> str:
    """Map status code to class string for metrics."""
    if 200 <= status_code < 300:
        return "2xx"
    if 300 <= status_code < 400:
        return "3xx"
    if 400 <= status_code < 500:
        return "4xx"
    if 500 <= status_code < 600:
        return "5xx"
    return "other"


def _content_length(data: ResponsePayload | bytearray | memoryview) -> int:
    """Payload size for logs: bytes for binary payloads, characters for text."""
    if isinstance(data, memoryview):
        return data.nbytes
    return len(data)
