"""Core types and enums for reqlife."""

from enum import Enum, IntEnum


class LifecyclePhase(IntEnum):
    """Transport ready state. Strictly monotonic within one attempt."""

    UNSENT = 0  # Created, not opened
    OPENED = 1  # open() called
    HEADERS_RECEIVED = 2  # Status line and headers available
    LOADING = 3  # Body streaming
    DONE = 4  # Exchange finished (successfully or not)


class Outcome(Enum):
    """Terminal outcome of one attempt (write-once)."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    ERRORED = "ERRORED"
    ABORTED = "ABORTED"
    TIMED_OUT = "TIMED_OUT"


class FailureCause(Enum):
    """Why a logical request failed."""

    STATUS_ERROR = "status_error"  # Server answered with status >= 400
    TRANSPORT_ERROR = "transport_error"  # Network-level failure, no response
    ABORTED = "aborted"
    TIMED_OUT = "timed_out"


class TransportEvent(Enum):
    """Event classes a transport emits to its listeners."""

    READY_STATE_CHANGE = "readystatechange"
    ERROR = "error"
    ABORT = "abort"
    TIMEOUT = "timeout"


class ResponseType(Enum):
    """Payload representation requested from the transport."""

    TEXT = "text"
    JSON = "json"
    BYTES = "bytes"


# Methods whose requests never carry a body
BODYLESS_METHODS: frozenset[str] = frozenset({"GET", "HEAD"})
