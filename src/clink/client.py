"""Synchronous and asynchronous clients built around one dispatch pipeline."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Any, AsyncIterable, Iterable, Mapping, Union, cast

import httpx

from .exceptions import ClinkRateLimitWaitError, ClinkRequestError
from .options import ClientConfig, Option, build_config
from .rate_limit import RateLimiter
from .retry import RetryPredicate
from .security import sanitize_headers

logger = logging.getLogger(__name__)

RequestBody = Union[bytes, str, Iterable[bytes], AsyncIterable[bytes], None]


class _BaseClient:
    def __init__(self, config: ClientConfig | None = None) -> None:
        self.config = config or ClientConfig()

    @property
    def headers(self) -> Mapping[str, str]:
        return self.config.headers

    @property
    def rate_limiter(self) -> RateLimiter | None:
        return self.config.rate_limiter

    @property
    def max_retries(self) -> int:
        return self.config.max_retries

    @property
    def retry_predicate(self) -> RetryPredicate | None:
        return self.config.retry_predicate

    def _inject_headers(self, request: httpx.Request) -> None:
        for key, value in self.config.headers.items():
            request.headers[key] = value

    @staticmethod
    def _rate_limit_failed(request: httpx.Request, exc: ClinkRateLimitWaitError) -> ClinkRateLimitWaitError:
        return ClinkRateLimitWaitError(
            f"failed to wait for rate limiter: {exc}",
            request=request,
            cause=exc,
        )

    def _log_attempt(self, request: httpx.Request, attempt: int) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Dispatching %s %s (attempt %d/%d) headers=%s",
                request.method,
                request.url,
                attempt + 1,
                self.config.max_retries + 1,
                sanitize_headers(request.headers),
            )

    def _should_continue(
        self,
        request: httpx.Request,
        response: httpx.Response | None,
        error: Exception | None,
        attempt: int,
    ) -> bool:
        predicate = self.config.retry_predicate
        if predicate is not None and not predicate(request, response, error):
            return False
        if error is not None and attempt < self.config.max_retries:
            logger.debug("Discarding error from attempt %d: %s", attempt + 1, error)
        return True

    def _backoff(self, attempt: int) -> float:
        return attempt * self.config.backoff_unit

    @staticmethod
    def _result(
        request: httpx.Request,
        response: httpx.Response | None,
        error: Exception | None,
    ) -> httpx.Response:
        if error is not None:
            raise ClinkRequestError(
                f"failed to do request: {error}",
                request=request,
                cause=error,
            ) from error
        return cast(httpx.Response, response)


class Client(_BaseClient):
    """Synchronous client.

    Every request goes through :meth:`do`, which injects the configured
    headers (overwriting caller values), waits on the rate limiter if one is
    configured, then sends the request up to ``max_retries + 1`` times.
    """

    def __init__(self, config: ClientConfig | None = None) -> None:
        super().__init__(config)
        self._owns_transport = self.config.transport is None
        self.transport: Any = httpx.Client() if self._owns_transport else self.config.transport

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_transport:
            self.transport.close()

    def do(
        self,
        request: httpx.Request,
        *,
        cancel: threading.Event | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Dispatch ``request`` and return the last response received.

        Non-2xx responses are returned as-is. Only the final attempt's
        transport error is raised, wrapped in :class:`ClinkRequestError`.
        ``cancel`` and ``timeout`` bound the rate limiter wait only: the call
        fails before any attempt if ``cancel`` is set or the required wait is
        longer than ``timeout`` seconds. The backoff sleep ignores both.
        """
        self._inject_headers(request)

        if self.config.rate_limiter is not None:
            try:
                self.config.rate_limiter.wait(cancel, timeout)
            except ClinkRateLimitWaitError as exc:
                raise self._rate_limit_failed(request, exc) from exc

        if self.config.max_retries > 0:
            request.read()

        response: httpx.Response | None = None
        error: Exception | None = None
        for attempt in range(self.config.max_retries + 1):
            self._log_attempt(request, attempt)
            try:
                response, error = self.transport.send(request), None
            except httpx.HTTPError as exc:
                response, error = None, exc

            if not self._should_continue(request, response, error, attempt):
                break

            if attempt < self.config.max_retries:
                time.sleep(self._backoff(attempt))

        return self._result(request, response, error)

    def _send(self, method: str, url: str | httpx.URL, body: RequestBody = None) -> httpx.Response:
        return self.do(httpx.Request(method, url, content=body))

    def head(self, url: str | httpx.URL) -> httpx.Response:
        return self._send("HEAD", url)

    def options(self, url: str | httpx.URL) -> httpx.Response:
        return self._send("OPTIONS", url)

    def get(self, url: str | httpx.URL) -> httpx.Response:
        return self._send("GET", url)

    def post(self, url: str | httpx.URL, body: RequestBody = None) -> httpx.Response:
        return self._send("POST", url, body)

    def put(self, url: str | httpx.URL, body: RequestBody = None) -> httpx.Response:
        return self._send("PUT", url, body)

    def patch(self, url: str | httpx.URL, body: RequestBody = None) -> httpx.Response:
        return self._send("PATCH", url, body)

    def delete(self, url: str | httpx.URL) -> httpx.Response:
        return self._send("DELETE", url)


class AsyncClient(_BaseClient):
    """Asynchronous client."""

    def __init__(self, config: ClientConfig | None = None) -> None:
        super().__init__(config)
        self._owns_transport = self.config.transport is None
        self.transport: Any = httpx.AsyncClient() if self._owns_transport else self.config.transport

    async def __aenter__(self) -> "AsyncClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_transport:
            await self.transport.aclose()

    async def do(
        self,
        request: httpx.Request,
        *,
        cancel: asyncio.Event | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        self._inject_headers(request)

        if self.config.rate_limiter is not None:
            try:
                await self.config.rate_limiter.await_token(cancel, timeout)
            except ClinkRateLimitWaitError as exc:
                raise self._rate_limit_failed(request, exc) from exc

        if self.config.max_retries > 0:
            await request.aread()

        response: httpx.Response | None = None
        error: Exception | None = None
        for attempt in range(self.config.max_retries + 1):
            self._log_attempt(request, attempt)
            try:
                response, error = await self.transport.send(request), None
            except httpx.HTTPError as exc:
                response, error = None, exc

            if not self._should_continue(request, response, error, attempt):
                break

            if attempt < self.config.max_retries:
                await asyncio.sleep(self._backoff(attempt))

        return self._result(request, response, error)

    async def _send(self, method: str, url: str | httpx.URL, body: RequestBody = None) -> httpx.Response:
        return await self.do(httpx.Request(method, url, content=body))

    async def head(self, url: str | httpx.URL) -> httpx.Response:
        return await self._send("HEAD", url)

    async def options(self, url: str | httpx.URL) -> httpx.Response:
        return await self._send("OPTIONS", url)

    async def get(self, url: str | httpx.URL) -> httpx.Response:
        return await self._send("GET", url)

    async def post(self, url: str | httpx.URL, body: RequestBody = None) -> httpx.Response:
        return await self._send("POST", url, body)

    async def put(self, url: str | httpx.URL, body: RequestBody = None) -> httpx.Response:
        return await self._send("PUT", url, body)

    async def patch(self, url: str | httpx.URL, body: RequestBody = None) -> httpx.Response:
        return await self._send("PATCH", url, body)

    async def delete(self, url: str | httpx.URL) -> httpx.Response:
        return await self._send("DELETE", url)


def new_client(*options: Option) -> Client:
    """Build a :class:`Client` from ``options`` applied in order."""
    return Client(build_config(*options))


def new_async_client(*options: Option) -> AsyncClient:
    return AsyncClient(build_config(*options))
