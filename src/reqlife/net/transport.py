"""Transport contract.

A transport performs the network I/O for exactly one attempt and reports
progress through listener callbacks:

- ``READY_STATE_CHANGE`` on every lifecycle phase transition
- ``ERROR`` / ``ABORT`` / ``TIMEOUT`` when the exchange fails

A failing transport first moves to ``DONE`` and then emits its failure
event, so listeners must not treat ``DONE`` alone as success.

Callbacks run on the event loop thread and must not block.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, Union

from reqlife.core import LifecyclePhase, ResponseType, TransportEvent
from reqlife.errors import TransportStateError

if TYPE_CHECKING:
    from collections.abc import Callable

RequestBody = Union[str, bytes, bytearray, memoryview]
ResponsePayload = Union[str, bytes]


@dataclass(frozen=True)
class TransportEventInfo:
    """Payload passed to transport listeners.

    Attributes:
        event: Event class that fired.
        phase: Transport ready state at emission time.
        timestamp_ms: Monotonic timestamp in milliseconds (transport clock).
    """

    event: TransportEvent
    phase: LifecyclePhase
    timestamp_ms: float


class Transport(Protocol):
    """Protocol for a single-use request transport.

    Injectable so the executor can be driven by a real network client
    (``HttpxTransport``) or by a scripted one in tests.
    """

    timeout_ms: int
    response_type: ResponseType

    @property
    def ready_state(self) -> LifecyclePhase:
        """Current lifecycle phase."""
        ...

    @property
    def status(self) -> int:
        """Response status code (0 until headers are received)."""
        ...

    @property
    def response(self) -> ResponsePayload | None:
        """Response payload in the representation ``response_type`` asked for."""
        ...

    def open(self, method: str, url: str) -> None:
        """Prepare the request. Moves the transport to ``OPENED``."""
        ...

    def set_request_header(self, name: str, value: str) -> None:
        """Set a request header. Only valid after ``open()``."""
        ...

    def send(self, body: RequestBody | None = None) -> None:
        """Start the exchange. Returns immediately; progress arrives as events."""
        ...

    def abort(self) -> None:
        """Abort an in-flight exchange. Emits ``ABORT``."""
        ...

    def get_all_response_headers(self) -> str:
        """Response headers as CRLF-separated ``Name: value`` lines."""
        ...

    def add_listener(
        self, event: TransportEvent, callback: Callable[[TransportEventInfo], None]
    ) -> None:
        """Register a callback for an event class."""
        ...

    def remove_listener(
        self, event: TransportEvent, callback: Callable[[TransportEventInfo], None]
    ) -> None:
        """Unregister a previously added callback."""
        ...


class EventSource:
    """Listener bookkeeping and phase tracking shared by transports.

    Subclasses call ``_set_phase()`` for lifecycle transitions and
    ``_emit()`` for failure events.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.monotonic
        self._listeners: dict[TransportEvent, list[Callable[[TransportEventInfo], None]]] = {
            event: [] for event in TransportEvent
        }
        self._phase = LifecyclePhase.UNSENT

    @property
    def ready_state(self) -> LifecyclePhase:
        return self._phase

    def add_listener(
        self, event: TransportEvent, callback: Callable[[TransportEventInfo], None]
    ) -> None:
        self._listeners[event].append(callback)

    def remove_listener(
        self, event: TransportEvent, callback: Callable[[TransportEventInfo], None]
    ) -> None:
        if callback in self._listeners[event]:
            self._listeners[event].remove(callback)

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def _set_phase(self, phase: LifecyclePhase) -> None:
        """Advance the ready state and notify listeners.

        Raises:
            TransportStateError: If ``phase`` would move the state backwards.
        """
        if phase < self._phase:
            raise TransportStateError(f"enter {phase.name}", self._phase.name)
        if phase == self._phase:
            return
        self._phase = phase
        self._emit(TransportEvent.READY_STATE_CHANGE)

    def _emit(self, event: TransportEvent) -> None:
        info = TransportEventInfo(event=event, phase=self._phase, timestamp_ms=self._now_ms())
        # Copy: listeners may unregister themselves while being notified
        for callback in list(self._listeners[event]):
            callback(info)

    def _require_phase(self, op: str, *allowed: LifecyclePhase) -> None:
        if self._phase not in allowed:
            raise TransportStateError(op, self._phase.name)
