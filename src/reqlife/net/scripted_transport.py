"""Scripted transport for testing.

Replays a fixed sequence of lifecycle phases and failure events after
``send()``, with a virtual clock so timing reports are deterministic.

Used for:
- Unit testing the executor without a network
- Reproducing DONE/error races at exact orderings
- Simulating hung transports (empty script)

Example:
    transport = ScriptedTransport.completing(status=200, body='{"ok": true}',
                                             headers=[("Content-Type", "application/json")])
    transport = ScriptedTransport.failing(TransportEvent.TIMEOUT)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from reqlife.core import LifecyclePhase, ResponseType, TransportEvent
from reqlife.errors import TransportStateError
from reqlife.net.headers import format_header_blob
from reqlife.net.transport import EventSource

if TYPE_CHECKING:
    from collections.abc import Sequence

    from reqlife.net.transport import RequestBody, ResponsePayload


@dataclass(frozen=True)
class ScriptStep:
    """One scripted signal.

    Attributes:
        signal: Phase to enter, or failure event to emit.
        delay_ms: Real time to wait before emitting (lets other tasks run).
        elapsed_ms: Virtual time that passes before emitting (timestamps only).
    """

    signal: LifecyclePhase | TransportEvent
    delay_ms: float = 0.0
    elapsed_ms: float = 0.0


class ScriptedTransport(EventSource):
    """Transport that plays back ``script`` once ``send()`` is called.

    ``open()`` enters OPENED immediately, like a real transport. The
    script then runs in its own task, yielding to the event loop between
    steps. Failure steps emit their event without touching the phase, so a
    script decides whether DONE comes before, after, or not at all.
    """

    def __init__(
        self,
        script: Sequence[ScriptStep],
        *,
        status: int = 200,
        headers: Sequence[tuple[str, str]] = (),
        body: str | bytes = "",
        start_ms: float = 1000.0,
    ) -> None:
        self._virtual_ms = start_ms
        super().__init__(clock=lambda: self._virtual_ms / 1000.0)
        self.timeout_ms = 0
        self.response_type = ResponseType.TEXT

        self._script = list(script)
        self._status = status
        self._response_headers = list(headers)
        self._body = body
        self._task: asyncio.Task[None] | None = None
        self._failed = False

        # Recorded for assertions
        self.method: str | None = None
        self.url: str | None = None
        self.request_headers: dict[str, str] = {}
        self.sent = False
        self.sent_body: RequestBody | None = None
        self.aborted = False

    # --- Factories ---

    @classmethod
    def completing(
        cls,
        *,
        status: int = 200,
        headers: Sequence[tuple[str, str]] = (),
        body: str | bytes = "",
        headers_ms: float = 5.0,
        download_ms: float = 5.0,
    ) -> ScriptedTransport:
        """Transport that receives a full response."""
        script = [
            ScriptStep(LifecyclePhase.HEADERS_RECEIVED, elapsed_ms=headers_ms),
            ScriptStep(LifecyclePhase.LOADING),
            ScriptStep(LifecyclePhase.DONE, elapsed_ms=download_ms),
        ]
        return cls(script, status=status, headers=headers, body=body)

    @classmethod
    def failing(cls, event: TransportEvent, *, delay_ms: float = 0.0) -> ScriptedTransport:
        """Transport that reaches DONE and then emits ``event``."""
        script = [
            ScriptStep(LifecyclePhase.DONE),
            ScriptStep(event, delay_ms=delay_ms),
        ]
        return cls(script, status=0)

    @classmethod
    def hanging(cls) -> ScriptedTransport:
        """Transport that never emits anything after OPENED."""
        return cls([])

    # --- Transport protocol ---

    @property
    def status(self) -> int:
        if self._phase < LifecyclePhase.HEADERS_RECEIVED or self._failed:
            return 0
        return self._status

    @property
    def response(self) -> ResponsePayload | None:
        if self._phase != LifecyclePhase.DONE or self._failed:
            return None
        if self.response_type == ResponseType.BYTES:
            return self._body.encode() if isinstance(self._body, str) else self._body
        return self._body.decode() if isinstance(self._body, bytes) else self._body

    def open(self, method: str, url: str) -> None:
        self._require_phase("open", LifecyclePhase.UNSENT)
        self.method = method
        self.url = url
        self._set_phase(LifecyclePhase.OPENED)

    def set_request_header(self, name: str, value: str) -> None:
        self._require_phase("set request header", LifecyclePhase.OPENED)
        if self.sent:
            raise TransportStateError("set request header", "SENT")
        self.request_headers[name] = value

    def send(self, body: RequestBody | None = None) -> None:
        self._require_phase("send", LifecyclePhase.OPENED)
        if self.sent:
            raise TransportStateError("send", "SENT")
        self.sent = True
        self.sent_body = body
        self._task = asyncio.get_running_loop().create_task(self._play())

    def abort(self) -> None:
        if self._task is None or self._task.done():
            return
        self.aborted = True
        self._task.cancel()
        self._failed = True
        self._set_phase(LifecyclePhase.DONE)
        self._emit(TransportEvent.ABORT)

    def get_all_response_headers(self) -> str:
        if self._phase < LifecyclePhase.HEADERS_RECEIVED or self._failed:
            return ""
        return format_header_blob(self._response_headers)

    # --- Playback ---

    async def _play(self) -> None:
        for step in self._script:
            await asyncio.sleep(step.delay_ms / 1000.0)
            self._virtual_ms += step.elapsed_ms
            if isinstance(step.signal, TransportEvent):
                self._failed = True
                self._emit(step.signal)
            else:
                self._set_phase(step.signal)


class ScriptedTransportFactory:
    """Transport factory handing out prepared transports in order.

    Pass as ``transport_factory``; ``created`` lists the transports the
    executor actually used, one per attempt.
    """

    def __init__(self, *transports: ScriptedTransport) -> None:
        self._pending = list(transports)
        self.created: list[ScriptedTransport] = []

    def __call__(self) -> ScriptedTransport:
        if not self._pending:
            raise TransportStateError("create transport", "EXHAUSTED")
        transport = self._pending.pop(0)
        self.created.append(transport)
        return transport
