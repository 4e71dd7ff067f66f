"""Tests for bounded fan-out."""

import asyncio

from mototask.services.fanout import gather_settled


async def test_failures_do_not_cancel_siblings():
    finished = []

    async def work(n: int) -> int:
        await asyncio.sleep(0.01 * (5 - n))
        if n == 2:
            raise RuntimeError("boom")
        finished.append(n)
        return n * 10

    results = await gather_settled(range(5), work)

    assert [r.key for r in results] == [0, 1, 2, 3, 4]
    assert sorted(finished) == [0, 1, 3, 4]
    assert [r.value for r in results if r.ok] == [0, 10, 30, 40]
    assert isinstance(results[2].error, RuntimeError)


async def test_concurrency_limit():
    running = 0
    peak = 0

    async def work(n: int) -> None:
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1

    await gather_settled(range(10), work, limit=3)

    assert peak == 3


async def test_empty_input():
    assert await gather_settled([], asyncio.sleep) == []
