"""Tests for reqlife.net.timer (PhaseTimer, TimingReport)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from reqlife.core import LifecyclePhase, TransportEvent
from reqlife.net.timer import PhaseTimer, TimingReport
from reqlife.net.transport import TransportEventInfo

if TYPE_CHECKING:
    from collections.abc import Callable


class StubTransport:
    """Captures listeners so tests can fire phase events by hand."""

    def __init__(self) -> None:
        self.listeners: dict[TransportEvent, list[Callable[[TransportEventInfo], None]]] = {}

    def add_listener(
        self, event: TransportEvent, callback: Callable[[TransportEventInfo], None]
    ) -> None:
        self.listeners.setdefault(event, []).append(callback)

    def fire(self, phase: LifecyclePhase, at_ms: float) -> None:
        info = TransportEventInfo(TransportEvent.READY_STATE_CHANGE, phase, at_ms)
        for callback in self.listeners.get(TransportEvent.READY_STATE_CHANGE, []):
            callback(info)


def _observed(slow_threshold_ms: float = 200) -> tuple[PhaseTimer, StubTransport]:
    timer = PhaseTimer(slow_threshold_ms)
    transport = StubTransport()
    timer.observe(transport)  # type: ignore[arg-type]
    return timer, transport


class TestPhaseTimer:
    def test_full_lifecycle(self) -> None:
        timer, transport = _observed()
        transport.fire(LifecyclePhase.OPENED, 100.0)
        transport.fire(LifecyclePhase.HEADERS_RECEIVED, 130.0)
        transport.fire(LifecyclePhase.LOADING, 131.0)
        transport.fire(LifecyclePhase.DONE, 180.0)

        assert timer.report() == TimingReport(
            total_ms=80.0,
            headers_latency_ms=30.0,
            content_download_ms=50.0,
            was_slow=False,
        )

    def test_unsent_and_loading_not_recorded(self) -> None:
        timer, transport = _observed()
        transport.fire(LifecyclePhase.UNSENT, 1.0)
        transport.fire(LifecyclePhase.LOADING, 2.0)
        assert timer.sample.opened_at is None
        assert timer.sample.headers_at is None
        assert timer.sample.done_at is None

    def test_missing_headers_omits_sub_latencies(self) -> None:
        """Transport failed before headers: only total is reported."""
        timer, transport = _observed()
        transport.fire(LifecyclePhase.OPENED, 10.0)
        transport.fire(LifecyclePhase.DONE, 40.0)

        report = timer.report()
        assert report.total_ms == 30.0
        assert report.headers_latency_ms is None
        assert report.content_download_ms is None

    def test_missing_done_total_is_zero(self) -> None:
        timer, transport = _observed()
        transport.fire(LifecyclePhase.OPENED, 10.0)
        transport.fire(LifecyclePhase.HEADERS_RECEIVED, 25.0)

        report = timer.report()
        assert report.total_ms == 0.0
        assert report.headers_latency_ms == 15.0
        assert report.content_download_ms is None
        assert report.was_slow is False

    def test_slow_flag_strictly_greater(self) -> None:
        timer, transport = _observed(slow_threshold_ms=100)
        transport.fire(LifecyclePhase.OPENED, 0.0)
        transport.fire(LifecyclePhase.DONE, 100.0)
        assert timer.report().was_slow is False

        timer, transport = _observed(slow_threshold_ms=100)
        transport.fire(LifecyclePhase.OPENED, 0.0)
        transport.fire(LifecyclePhase.DONE, 100.5)
        assert timer.report().was_slow is True


class TestTimingReportLogFields:
    def test_all_fields(self) -> None:
        report = TimingReport(
            total_ms=1500.0, headers_latency_ms=500.0, content_download_ms=1000.0, was_slow=True
        )
        assert report.as_log_fields() == {
            "duration": "1sec 500.000ms",
            "headers_received": "500.000ms",
            "content_download": "1sec 0.00000ms",
            "was_slow": True,
        }

    def test_absent_latencies_omitted(self) -> None:
        fields = TimingReport(total_ms=12.5).as_log_fields()
        assert fields == {"duration": "12.5000ms", "was_slow": False}
