from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from types import TracebackType
from typing import Callable

from readiscover.transport import Sleeper

logger = logging.getLogger(__name__)


class StatusMessageRotator:
    """Cycle user-facing status strings while something slow runs.

    Purely cosmetic: nothing in the ingestion or query flow waits on it.
    """

    def __init__(
        self,
        messages: Sequence[str],
        *,
        on_message: Callable[[str], None],
        interval_seconds: float = 2.5,
        sleep: Sleeper | None = None,
    ) -> None:
        if not messages:
            raise ValueError("messages must not be empty")
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")

        self._messages = tuple(messages)
        self._on_message = on_message
        self._interval_seconds = interval_seconds
        self._sleep = sleep or asyncio.sleep
        self._index = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def current(self) -> str:
        return self._messages[self._index]

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._index = 0
        self._task = asyncio.create_task(self._rotate())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _rotate(self) -> None:
        while True:
            try:
                self._on_message(self.current)
            except Exception:
                logger.exception("Status message callback failed")
            await self._sleep(self._interval_seconds)
            self._index = (self._index + 1) % len(self._messages)

    async def __aenter__(self) -> StatusMessageRotator:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.stop()
