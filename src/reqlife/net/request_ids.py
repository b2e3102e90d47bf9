"""Process-wide request id allocation.

Every physical attempt gets its own id for log correlation. Ids increase
monotonically and wrap back to 1 before leaving the range that survives a
round trip through a double (common in JSON log pipelines).
"""

from __future__ import annotations

import threading

MAX_REQUEST_ID = 2**53 - 1


class RequestIdCounter:
    """Thread-safe monotonically increasing id source.

    Thread-safe via lock, so clients running on different event loops can
    share one counter.
    """

    def __init__(self, start: int = 1, ceiling: int = MAX_REQUEST_ID) -> None:
        if start < 1:
            raise ValueError("start must be >= 1")
        if ceiling <= start:
            raise ValueError("ceiling must be > start")
        self._next = start
        self._ceiling = ceiling
        self._lock = threading.Lock()

    def allocate(self) -> int:
        """Return the next id; the counter restarts at 1 once it hits the ceiling."""
        with self._lock:
            request_id = self._next
            self._next = 1 if request_id >= self._ceiling else request_id + 1
            return request_id


_default_counter = RequestIdCounter()


def get_request_id_counter() -> RequestIdCounter:
    """Get the process-global counter."""
    return _default_counter


def reset_request_id_counter() -> None:
    """Reset the process-global counter (for testing)."""
    global _default_counter  # noqa: PLW0603
    _default_counter = RequestIdCounter()
