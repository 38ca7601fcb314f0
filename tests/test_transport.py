import json

import httpx
import pytest

from readiscover.transport import RetryingTransport


class _RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _transport(handler, *, max_retries: int = 3, initial_delay: float = 1.0):
    sleep = _RecordingSleep()
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    transport = RetryingTransport(
        client=client,
        max_retries=max_retries,
        initial_delay=initial_delay,
        sleep=sleep,
    )
    return transport, sleep


def _request() -> httpx.Request:
    return httpx.Request("POST", "http://books.test/v1/search", json={"query": "x"})


@pytest.mark.asyncio
@pytest.mark.parametrize("max_retries", [0, 1, 3, 5])
async def test_server_error_is_retried_then_returned(max_retries: int) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, json={"detail": f"cold start {len(calls)}"})

    transport, sleep = _transport(handler, max_retries=max_retries)

    response = await transport.send(_request())

    assert len(calls) == max_retries + 1
    assert response.status_code == 503
    assert response.json() == {"detail": f"cold start {max_retries + 1}"}
    assert sleep.delays == [1.0 * 2**attempt for attempt in range(max_retries)]


@pytest.mark.asyncio
@pytest.mark.parametrize("max_retries", [0, 3])
async def test_client_error_is_not_retried(max_retries: int) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(404)

    transport, sleep = _transport(handler, max_retries=max_retries)

    response = await transport.send(_request())

    assert len(calls) == 1
    assert response.status_code == 404
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_rate_limit_is_retried_until_success() -> None:
    statuses = iter([429, 500, 200])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(next(statuses), json={"ok": True})

    transport, sleep = _transport(handler, initial_delay=0.5)

    response = await transport.send(_request())

    assert response.status_code == 200
    assert sleep.delays == [0.5, 1.0]


@pytest.mark.asyncio
async def test_retried_request_resends_the_same_body() -> None:
    bodies: list[bytes] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(request.content)
        return httpx.Response(502 if len(bodies) == 1 else 200)

    transport, _ = _transport(handler)

    await transport.send(_request())

    assert len(bodies) == 2
    assert bodies[0] == bodies[1]
    assert json.loads(bodies[0]) == {"query": "x"}


@pytest.mark.asyncio
async def test_connection_fault_is_retried_then_raised() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    transport, sleep = _transport(handler, max_retries=2)

    with pytest.raises(httpx.ConnectError, match="connection refused"):
        await transport.send(_request())

    assert len(calls) == 3
    assert sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_connection_fault_then_success_returns_response() -> None:
    attempts = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        if attempts["count"] == 1:
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(200, json={"status": "ok"})

    transport, sleep = _transport(handler)

    response = await transport.send(_request())

    assert response.status_code == 200
    assert sleep.delays == [1.0]


def test_backoff_doubles_without_cap() -> None:
    transport = RetryingTransport(
        client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200))),
        initial_delay=1.0,
    )

    assert [transport.backoff_delay(attempt) for attempt in range(6)] == [1, 2, 4, 8, 16, 32]


def test_rejects_negative_settings() -> None:
    with pytest.raises(ValueError, match="max_retries"):
        RetryingTransport(max_retries=-1)
    with pytest.raises(ValueError, match="initial_delay"):
        RetryingTransport(initial_delay=-0.1)
