import asyncio

import pytest

from readiscover.status_rotator import StatusMessageRotator


class YieldingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_rotator_cycles_messages_until_stopped() -> None:
    seen: list[str] = []
    sleep = YieldingSleep()
    rotator = StatusMessageRotator(
        ["Fetching", "Chunking", "Embedding"],
        on_message=seen.append,
        interval_seconds=2.5,
        sleep=sleep,
    )

    rotator.start()
    for _ in range(20):
        await asyncio.sleep(0)
    await rotator.stop()

    assert len(seen) >= 4
    assert seen == [["Fetching", "Chunking", "Embedding"][index % 3] for index in range(len(seen))]
    assert set(sleep.delays) == {2.5}
    assert not rotator.running

    count = len(seen)
    for _ in range(5):
        await asyncio.sleep(0)
    assert len(seen) == count


@pytest.mark.asyncio
async def test_rotator_as_context_manager_stops_on_exit() -> None:
    seen: list[str] = []
    async with StatusMessageRotator(
        ["only"], on_message=seen.append, sleep=YieldingSleep()
    ) as rotator:
        await asyncio.sleep(0)
        assert rotator.running
        assert rotator.current == "only"

    assert not rotator.running
    assert seen[0] == "only"


@pytest.mark.asyncio
async def test_failing_callback_does_not_stop_rotation() -> None:
    calls: list[str] = []

    def on_message(message: str) -> None:
        calls.append(message)
        raise RuntimeError("display gone")

    rotator = StatusMessageRotator(["a", "b"], on_message=on_message, sleep=YieldingSleep())
    rotator.start()
    for _ in range(10):
        await asyncio.sleep(0)
    await rotator.stop()

    assert calls[:2] == ["a", "b"]


@pytest.mark.asyncio
async def test_stop_without_start_is_a_no_op() -> None:
    rotator = StatusMessageRotator(["a"], on_message=lambda message: None)

    await rotator.stop()

    assert not rotator.running


def test_rotator_rejects_empty_messages() -> None:
    with pytest.raises(ValueError):
        StatusMessageRotator([], on_message=lambda message: None)
