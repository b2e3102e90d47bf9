"""HTTP client with defaults and per-verb helpers.

Wraps ``RequestExecutor`` with:
- Client-wide defaults (``HttpClientParams``)
- Per-call overrides (``HttpRequestOptions``), call site wins
- A shared ``httpx.AsyncClient`` for the default transport

Usage::

    params = HttpClientParams(hostname="api.example.com", port=443, ssl=True, retries=2)
    async with HttpClient(params) as client:
        response = await client.get("/v1/items")
        created = await client.post("/v1/items", HttpRequestOptions(body='{"name": "x"}'))
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from reqlife.config import HttpRequestOptions
from reqlife.net.executor import AttemptContext, RequestExecutor
from reqlife.net.httpx_transport import HttpxTransport
from reqlife.net.retry_policy import RetryPolicy

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from types import TracebackType

    from reqlife.config import HttpClientParams
    from reqlife.net.request_ids import RequestIdCounter
    from reqlife.net.transport import Transport
    from reqlife.net.types import Response
    from reqlife.observability.latency_metrics import HttpMetrics

logger = logging.getLogger(__name__)

_NO_OPTIONS = HttpRequestOptions()


class HttpClient:
    """Client bound to one origin.

    Args:
        params: Client-wide defaults.
        transport_factory: Returns a fresh transport per attempt. Defaults
            to ``HttpxTransport`` over ``http_client``.
        http_client: ``httpx.AsyncClient`` for the default transport. Created
            (and owned) lazily when not given.
        request_ids: Id source (default: process-global counter).
        sleep_func: Async sleep used for backoff (injectable for tests).
        metrics: Optional HttpMetrics to record into.
    """

    def __init__(
        self,
        params: HttpClientParams,
        *,
        transport_factory: Callable[[], Transport] | None = None,
        http_client: httpx.AsyncClient | None = None,
        request_ids: RequestIdCounter | None = None,
        sleep_func: Callable[[float], Awaitable[None]] | None = None,
        metrics: HttpMetrics | None = None,
    ) -> None:
        self.params = params
        self._http_client = http_client
        self._owns_http_client = http_client is None and transport_factory is None
        self._executor = RequestExecutor(
            params.base_url,
            transport_factory or self._make_httpx_transport,
            request_ids=request_ids,
            sleep_func=sleep_func,
            metrics=metrics,
        )

    def __repr__(self) -> str:
        p = self.params
        return f"HttpClient(hostname={p.hostname!r}, port={p.port}, ssl={p.ssl})"

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the owned ``httpx.AsyncClient`` (no-op for injected ones)."""
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    # --- Verbs ---

    async def request(
        self, method: str, path: str, options: HttpRequestOptions | None = None
    ) -> Response:
        """Run a logical request with ``options`` merged over the defaults.

        Raises:
            RequestFailedError: When the final attempt failed.
        """
        return await self._executor.execute(self._context(method, path, options or _NO_OPTIONS))

    async def get(self, path: str, options: HttpRequestOptions | None = None) -> Response:
        return await self.request("GET", path, options)

    async def post(self, path: str, options: HttpRequestOptions | None = None) -> Response:
        return await self.request("POST", path, options)

    async def put(self, path: str, options: HttpRequestOptions | None = None) -> Response:
        return await self.request("PUT", path, options)

    async def patch(self, path: str, options: HttpRequestOptions | None = None) -> Response:
        return await self.request("PATCH", path, options)

    async def delete(self, path: str, options: HttpRequestOptions | None = None) -> Response:
        return await self.request("DELETE", path, options)

    # --- Internals ---

    def _context(self, method: str, path: str, options: HttpRequestOptions) -> AttemptContext:
        """Merge call-site options over client defaults into the first attempt."""
        p = self.params

        def pick(override: int | None, default: int) -> int:
            return default if override is None else override

        policy = RetryPolicy(
            is_retryable=options.is_retryable or p.is_retryable,
            base_delay_ms=p.backoff_base_ms,
            max_delay_ms=p.max_backoff_ms,
        )
        return AttemptContext(
            method=method,
            path=path,
            body=options.body,
            headers={**p.headers, **(options.headers or {})},
            timeout_ms=pick(options.timeout_ms, p.timeout_ms),
            retries_remaining=pick(options.retries, p.retries),
            retry_policy=policy,
            slow_threshold_ms=pick(options.slow_threshold_ms, p.slow_threshold_ms),
            attempt_number=1,
            response_type=options.response_type,
        )

    def _make_httpx_transport(self) -> HttpxTransport:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient()
        return HttpxTransport(self._http_client)
