"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from reqlife.net.request_ids import reset_request_id_counter
from reqlife.observability.latency_metrics import reset_http_metrics


@pytest.fixture(autouse=True)
def reset_globals() -> Iterator[None]:
    """Reset process-global counters around each test."""
    reset_request_id_counter()
    reset_http_metrics()
    yield
    reset_request_id_counter()
    reset_http_metrics()
