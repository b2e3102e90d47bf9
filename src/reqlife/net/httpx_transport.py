"""Transport backed by ``httpx.AsyncClient``.

Streams one request and translates its progress into lifecycle events:

- ``open()``                     -> OPENED
- response head received         -> HEADERS_RECEIVED
- first body chunk               -> LOADING
- body fully read                -> DONE
- timeout / transport error      -> DONE, then TIMEOUT / ERROR
- ``abort()`` while in flight    -> DONE, then ABORT

Connection pooling, TLS and HTTP/2 are whatever the wrapped client does.
The whole exchange (connect through last body byte) is bounded by
``timeout_ms`` when it is > 0. The client's own httpx timeouts are disabled
per request, so ``timeout_ms = 0`` means no timeout at all. Any other
exception from the exchange is reported as ERROR.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import httpx

from reqlife.core import LifecyclePhase, ResponseType, TransportEvent
from reqlife.errors import TransportStateError
from reqlife.net.headers import format_header_blob
from reqlife.net.transport import EventSource

if TYPE_CHECKING:
    from collections.abc import Callable

    from reqlife.net.transport import RequestBody, ResponsePayload

logger = logging.getLogger(__name__)


class HttpxTransport(EventSource):
    """Single-use transport over a shared ``httpx.AsyncClient``.

    Usage::

        async with httpx.AsyncClient() as client:
            transport = HttpxTransport(client)
            transport.add_listener(TransportEvent.READY_STATE_CHANGE, on_phase)
            transport.open("GET", "https://example.com:443/health")
            transport.send()

    Must be used from a running event loop; ``send()`` schedules a task.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        clock: Callable[[], float] | None = None,
    ) -> None:
        super().__init__(clock)
        self._client = client
        self.timeout_ms = 0
        self.response_type = ResponseType.TEXT

        self._method = ""
        self._url = ""
        self._request_headers: list[tuple[str, str]] = []
        self._task: asyncio.Task[None] | None = None
        self._aborting = False
        self._failed = False

        self._status = 0
        self._response_headers: list[tuple[str, str]] = []
        self._body = bytearray()
        self._encoding = "utf-8"

    @property
    def status(self) -> int:
        return self._status

    @property
    def response(self) -> ResponsePayload | None:
        if self._phase != LifecyclePhase.DONE or self._failed:
            return None
        if self.response_type == ResponseType.BYTES:
            return bytes(self._body)
        return self._body.decode(self._encoding, errors="replace")

    def open(self, method: str, url: str) -> None:
        self._require_phase("open", LifecyclePhase.UNSENT)
        self._method = method.upper()
        self._url = url
        self._set_phase(LifecyclePhase.OPENED)

    def set_request_header(self, name: str, value: str) -> None:
        self._require_phase("set request header", LifecyclePhase.OPENED)
        if self._task is not None:
            raise TransportStateError("set request header", "SENT")
        self._request_headers.append((name, value))

    def send(self, body: RequestBody | None = None) -> None:
        self._require_phase("send", LifecyclePhase.OPENED)
        if self._task is not None:
            raise TransportStateError("send", "SENT")
        self._task = asyncio.get_running_loop().create_task(
            self._run(body), name=f"reqlife-{self._method}-{self._url}"
        )

    def abort(self) -> None:
        if self._task is None or self._task.done() or self._failed:
            return
        self._aborting = True
        self._task.cancel()
        # Emitted here: a task cancelled before its first step never runs _run
        self._fail(TransportEvent.ABORT)

    def get_all_response_headers(self) -> str:
        return format_header_blob(self._response_headers)

    async def wait_closed(self) -> None:
        """Wait until the exchange task has finished (no-op if never sent)."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def _run(self, body: RequestBody | None) -> None:
        try:
            if self.timeout_ms > 0:
                await asyncio.wait_for(self._exchange(body), timeout=self.timeout_ms / 1000)
            else:
                await self._exchange(body)
        except (TimeoutError, httpx.TimeoutException):
            self._fail(TransportEvent.TIMEOUT)
        except asyncio.CancelledError:
            if not self._aborting:
                raise
            # abort() already reported DONE and ABORT
        except (httpx.HTTPError, OSError) as e:
            logger.debug(
                "HTTP exchange failed",
                extra={"method": self._method, "url": self._url, "error": repr(e)},
            )
            self._fail(TransportEvent.ERROR)
        except Exception:
            logger.warning(
                "Unexpected error during HTTP exchange",
                exc_info=True,
                extra={"method": self._method, "url": self._url},
            )
            self._fail(TransportEvent.ERROR)
        else:
            self._set_phase(LifecyclePhase.DONE)

    async def _exchange(self, body: RequestBody | None) -> None:
        content = bytes(body) if isinstance(body, (bytearray, memoryview)) else body
        request = self._client.build_request(
            self._method,
            self._url,
            headers=self._request_headers,
            content=content,
            timeout=None,
        )
        response = await self._client.send(request, stream=True)
        try:
            self._status = response.status_code
            self._response_headers = [
                (name.decode("latin-1"), value.decode("latin-1"))
                for name, value in response.headers.raw
            ]
            self._encoding = response.encoding or "utf-8"
            self._set_phase(LifecyclePhase.HEADERS_RECEIVED)

            async for chunk in response.aiter_bytes():
                if chunk:
                    self._body.extend(chunk)
                    self._set_phase(LifecyclePhase.LOADING)
        finally:
            await response.aclose()

    def _fail(self, event: TransportEvent) -> None:
        if self._failed:
            return
        self._failed = True
        self._status = 0
        self._set_phase(LifecyclePhase.DONE)
        self._emit(event)
