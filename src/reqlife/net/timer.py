"""Per-attempt phase timing.

``PhaseTimer`` listens to a transport's lifecycle events and records when
the request was opened, when headers arrived and when it finished. The
timestamps come from the transport events, so they share the transport
clock domain.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from reqlife.core import LifecyclePhase, TransportEvent
from reqlife.net.duration import format_duration

if TYPE_CHECKING:
    from reqlife.net.transport import Transport, TransportEventInfo


@dataclass
class TimingSample:
    """Raw phase timestamps in milliseconds (None until observed)."""

    opened_at: float | None = None
    headers_at: float | None = None
    done_at: float | None = None


@dataclass(frozen=True)
class TimingReport:
    """Durations derived from a ``TimingSample``.

    Attributes:
        total_ms: done - opened (0.0 if either end was not observed).
        headers_latency_ms: headers - opened, None unless both observed.
        content_download_ms: done - headers, None unless both observed.
        was_slow: total_ms exceeded the slow threshold.
    """

    total_ms: float = 0.0
    headers_latency_ms: float | None = None
    content_download_ms: float | None = None
    was_slow: bool = False

    def as_log_fields(self) -> dict[str, str | bool]:
        """Render durations as human-readable strings for log records."""
        fields: dict[str, str | bool] = {"duration": format_duration(self.total_ms)}
        if self.headers_latency_ms is not None:
            fields["headers_received"] = format_duration(self.headers_latency_ms)
        if self.content_download_ms is not None:
            fields["content_download"] = format_duration(self.content_download_ms)
        fields["was_slow"] = self.was_slow
        return fields


class PhaseTimer:
    """Records lifecycle timestamps for one attempt.

    Purely observational: never touches the transport beyond registering
    a listener.
    """

    def __init__(self, slow_threshold_ms: float) -> None:
        self.slow_threshold_ms = slow_threshold_ms
        self.sample = TimingSample()

    def observe(self, transport: Transport) -> None:
        """Subscribe to ``transport`` lifecycle events."""
        transport.add_listener(TransportEvent.READY_STATE_CHANGE, self._on_phase)

    def _on_phase(self, info: TransportEventInfo) -> None:
        if info.phase == LifecyclePhase.OPENED:
            self.sample.opened_at = info.timestamp_ms
        elif info.phase == LifecyclePhase.HEADERS_RECEIVED:
            self.sample.headers_at = info.timestamp_ms
        elif info.phase == LifecyclePhase.DONE:
            self.sample.done_at = info.timestamp_ms
        # UNSENT and LOADING carry no timing boundary

    def report(self) -> TimingReport:
        """Derive durations from whatever timestamps were observed."""
        opened = self.sample.opened_at
        headers = self.sample.headers_at
        done = self.sample.done_at

        total = done - opened if opened is not None and done is not None else 0.0
        headers_latency = headers - opened if opened is not None and headers is not None else None
        download = done - headers if headers is not None and done is not None else None

        return TimingReport(
            total_ms=total,
            headers_latency_ms=headers_latency,
            content_download_ms=download,
            was_slow=total > self.slow_threshold_ms,
        )
