from __future__ import annotations

import asyncio

import httpx
import pytest

import clink.client as client_module
from clink import (
    AsyncClient,
    ClinkRateLimitWaitError,
    ClinkRequestError,
    adecode_json,
    new_async_client,
    with_bearer_auth,
    with_rate_limit,
    with_retries,
    with_transport,
)


def _mock(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def sleeps(monkeypatch) -> list[float]:
    recorded: list[float] = []

    async def fake_sleep(delay: float) -> None:
        recorded.append(delay)

    monkeypatch.setattr(client_module.asyncio, "sleep", fake_sleep)
    return recorded


def test_async_do_injects_headers_and_decodes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"auth": request.headers["Authorization"]})

    async def run() -> dict[str, str]:
        async with new_async_client(with_bearer_auth("secret"), with_transport(_mock(handler))) as client:
            response = await client.get("https://api.example.com/me")
            return await adecode_json(response, dict[str, str])

    assert asyncio.run(run()) == {"auth": "Bearer secret"}


def test_async_retry_loop_counts_attempts(sleeps: list[float]) -> None:
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(429)

    async def run() -> httpx.Response:
        client = new_async_client(
            with_retries(2, lambda request, response, error: response.status_code == 429),
            with_transport(_mock(handler)),
        )
        return await client.post("https://api.example.com/items", b"{}")

    response = asyncio.run(run())

    assert response.status_code == 429
    assert len(calls) == 3
    assert sleeps == [0.0, 1.0]


def test_async_final_error_is_wrapped(sleeps: list[float]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async def run() -> None:
        client = new_async_client(with_retries(1, None), with_transport(_mock(handler)))
        await client.delete("https://api.example.com/items/1")

    with pytest.raises(ClinkRequestError, match="failed to do request: refused"):
        asyncio.run(run())


def test_async_cancelled_rate_limit_wait_skips_transport() -> None:
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(200)

    async def run() -> None:
        client = new_async_client(with_rate_limit(1), with_transport(_mock(handler)))
        await client.get("https://api.example.com/")

        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, cancel.set)
        await client.do(httpx.Request("GET", "https://api.example.com/"), cancel=cancel)

    with pytest.raises(ClinkRateLimitWaitError, match="failed to wait for rate limiter"):
        asyncio.run(run())
    assert len(calls) == 1


def test_async_default_transport_is_owned() -> None:
    async def run() -> httpx.AsyncClient:
        client = AsyncClient()
        await client.aclose()
        return client.transport

    transport = asyncio.run(run())
    assert isinstance(transport, httpx.AsyncClient)
    assert transport.is_closed


def test_async_rate_limit_deadline_shorter_than_wait_skips_transport() -> None:
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(200)

    async def run() -> None:
        client = new_async_client(with_rate_limit(1), with_transport(_mock(handler)))
        await client.get("https://api.example.com/")
        await client.do(httpx.Request("GET", "https://api.example.com/"), timeout=0.1)

    with pytest.raises(ClinkRateLimitWaitError, match="failed to wait for rate limiter"):
        asyncio.run(run())
    assert len(calls) == 1


def test_async_streaming_body_is_replayed_on_retry(sleeps: list[float]) -> None:
    bodies: list[bytes] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(request.content)
        return httpx.Response(500)

    async def chunks():
        yield b"a"
        yield b"b"

    async def run() -> None:
        client = new_async_client(
            with_retries(2, lambda request, response, error: True),
            with_transport(_mock(handler)),
        )
        await client.post("https://api.example.com/upload", chunks())

    asyncio.run(run())

    assert bodies == [b"ab"] * 3
    assert sleeps == [0.0, 1.0]
