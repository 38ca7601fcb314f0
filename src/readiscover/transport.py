from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


def is_retryable_status(status_code: int) -> bool:
    return status_code >= 500 or status_code == 429


class RetryingTransport:
    """Send requests with pure exponential backoff on 5xx, 429 and transport faults.

    The delay before retry ``n`` (0-based) is ``initial_delay * 2 ** n`` with no
    jitter and no cap. After ``max_retries`` retries the last response is
    returned unchanged, or the last transport fault is re-raised. Non-success
    statuses are never turned into exceptions here.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        timeout_seconds: float = 120.0,
        sleep: Sleeper | None = None,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if initial_delay < 0:
            raise ValueError("initial_delay must be >= 0")

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._max_retries = max_retries
        self._initial_delay = initial_delay
        self._sleep = sleep or asyncio.sleep

    def backoff_delay(self, attempt: int) -> float:
        return self._initial_delay * 2**attempt

    async def send(self, request: httpx.Request) -> httpx.Response:
        attempt = 0
        while True:
            try:
                response = await self._client.send(request)
            except httpx.TransportError as exc:
                if attempt >= self._max_retries:
                    raise
                delay = self.backoff_delay(attempt)
                logger.warning(
                    "Network error: %s. Retrying %s %s in %.2fs (attempt %d/%d)",
                    exc,
                    request.method,
                    request.url.copy_remove_param("key"),
                    delay,
                    attempt + 1,
                    self._max_retries,
                )
                await self._sleep(delay)
                attempt += 1
                continue

            if response.is_success:
                return response

            if attempt < self._max_retries and is_retryable_status(response.status_code):
                delay = self.backoff_delay(attempt)
                logger.warning(
                    "API request failed with status %d. Retrying %s %s in %.2fs (attempt %d/%d)",
                    response.status_code,
                    request.method,
                    request.url.copy_remove_param("key"),
                    delay,
                    attempt + 1,
                    self._max_retries,
                )
                await response.aclose()
                await self._sleep(delay)
                attempt += 1
                continue

            return response

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> RetryingTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.aclose()
