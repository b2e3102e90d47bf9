"""HTTP request, retry and latency metrics.

Provides Prometheus-format counters and histogram for outbound requests:
- reqlife_http_requests_total{method,status_class}
- reqlife_http_retries_total{method,cause}
- reqlife_http_fail_total{method,cause}
- reqlife_http_latency_ms histogram {method,le} + _sum + _count

Labels use ``method`` and ``status_class``/``cause`` only; paths are never
used as labels.

Recording is optional: the executor only records when a metrics instance
is injected, and metrics never influence retry decisions.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# Metric names (stable contract)
METRIC_HTTP_REQUESTS = "reqlife_http_requests_total"
METRIC_HTTP_RETRIES = "reqlife_http_retries_total"
METRIC_HTTP_FAIL = "reqlife_http_fail_total"
METRIC_HTTP_LATENCY = "reqlife_http_latency_ms"

# Fixed histogram buckets (ms)
LATENCY_BUCKETS_MS: tuple[float, ...] = (
    10.0,
    25.0,
    50.0,
    100.0,
    200.0,
    500.0,
    1000.0,
    2500.0,
    5000.0,
    10000.0,
)


def _counter_lines(
    name: str,
    help_text: str,
    label_names: tuple[str, str],
    values: dict[tuple[str, str], int],
) -> list[str]:
    """Render one labelled counter family."""
    first, second = label_names
    lines = [f"# HELP {name} {help_text}", f"# TYPE {name} counter"]
    if not values:
        lines.append(f'{name}{{{first}="none",{second}="none"}} 0')
        return lines
    for (a, b), count in sorted(values.items()):
        lines.append(f'{name}{{{first}="{a}",{second}="{b}"}} {count}')
    return lines


@dataclass
class HttpMetrics:
    """Counters and latency histogram for outbound HTTP requests.

    Thread-safe via simple dict operations (GIL protection).
    """

    requests: dict[tuple[str, str], int] = field(default_factory=dict)
    retries: dict[tuple[str, str], int] = field(default_factory=dict)
    fails: dict[tuple[str, str], int] = field(default_factory=dict)
    latency_buckets: dict[str, dict[float, int]] = field(default_factory=dict)
    latency_sum: dict[str, float] = field(default_factory=dict)
    latency_count: dict[str, int] = field(default_factory=dict)

    def record_request(self, method: str, status_class: str) -> None:
        """Record a completed attempt (any status)."""
        key = (method, status_class)
        self.requests[key] = self.requests.get(key, 0) + 1

    def record_retry(self, method: str, cause: str) -> None:
        """Record a scheduled retry."""
        key = (method, cause)
        self.retries[key] = self.retries.get(key, 0) + 1

    def record_fail(self, method: str, cause: str) -> None:
        """Record a logical request that failed for good."""
        key = (method, cause)
        self.fails[key] = self.fails.get(key, 0) + 1

    def record_latency(self, method: str, latency_ms: float) -> None:
        """Record the total duration of a completed attempt."""
        buckets = self.latency_buckets.setdefault(method, dict.fromkeys(LATENCY_BUCKETS_MS, 0))
        for bucket in LATENCY_BUCKETS_MS:
            if latency_ms <= bucket:
                buckets[bucket] += 1
        self.latency_sum[method] = self.latency_sum.get(method, 0.0) + latency_ms
        self.latency_count[method] = self.latency_count.get(method, 0) + 1

    def _histogram_lines(self) -> list[str]:
        name = METRIC_HTTP_LATENCY
        lines = [
            f"# HELP {name} Outbound HTTP attempt duration in milliseconds",
            f"# TYPE {name} histogram",
        ]
        if not self.latency_buckets:
            lines.append(f'{name}_bucket{{method="none",le="+Inf"}} 0')
            lines.append(f'{name}_sum{{method="none"}} 0')
            lines.append(f'{name}_count{{method="none"}} 0')
            return lines

        for method in sorted(self.latency_buckets):
            buckets = self.latency_buckets[method]
            count = self.latency_count.get(method, 0)
            for bucket in LATENCY_BUCKETS_MS:
                lines.append(f'{name}_bucket{{method="{method}",le="{bucket}"}} {buckets[bucket]}')
            lines.append(f'{name}_bucket{{method="{method}",le="+Inf"}} {count}')
            lines.append(f'{name}_sum{{method="{method}"}} {self.latency_sum.get(method, 0.0)}')
            lines.append(f'{name}_count{{method="{method}"}} {count}')
        return lines

    def to_prometheus_lines(self) -> list[str]:
        """Render Prometheus text-format lines."""
        lines: list[str] = []
        lines.extend(
            _counter_lines(
                METRIC_HTTP_REQUESTS,
                "Completed outbound HTTP attempts by method and status class",
                ("method", "status_class"),
                self.requests,
            )
        )
        lines.extend(
            _counter_lines(
                METRIC_HTTP_RETRIES,
                "Scheduled outbound HTTP retries by method and cause",
                ("method", "cause"),
                self.retries,
            )
        )
        lines.extend(
            _counter_lines(
                METRIC_HTTP_FAIL,
                "Outbound HTTP requests that failed after retries by method and cause",
                ("method", "cause"),
                self.fails,
            )
        )
        lines.extend(self._histogram_lines())
        return lines

    def reset(self) -> None:
        """Reset all counters (for testing)."""
        self.requests.clear()
        self.retries.clear()
        self.fails.clear()
        self.latency_buckets.clear()
        self.latency_sum.clear()
        self.latency_count.clear()


# Global singleton
_metrics: HttpMetrics | None = None


def get_http_metrics() -> HttpMetrics:
    """Get or create global HTTP metrics."""
    global _metrics  # noqa: PLW0603
    if _metrics is None:
        _metrics = HttpMetrics()
    return _metrics


def reset_http_metrics() -> None:
    """Reset HTTP metrics (for testing)."""
    global _metrics  # noqa: PLW0603
    _metrics = None
