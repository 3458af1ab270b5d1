from __future__ import annotations

import asyncio
import time

import pytest

from surge.loadgen.pacer import Pacer


def test_rejects_non_positive_interval() -> None:
    with pytest.raises(ValueError):
        Pacer(0)


@pytest.mark.asyncio
async def test_ticks_arrive_at_roughly_the_interval() -> None:
    async with Pacer.for_rate(50) as pacer:
        start = time.perf_counter()
        for _ in range(5):
            await pacer.wait()
        elapsed = time.perf_counter() - start
    assert 0.08 <= elapsed < 1.0


@pytest.mark.asyncio
async def test_idle_pacer_buffers_a_single_tick() -> None:
    async with Pacer(0.05) as pacer:
        await asyncio.sleep(0.3)
        assert pacer.fired >= 4
        drained = 0
        while True:
            try:
                await asyncio.wait_for(pacer.wait(), timeout=0.005)
            except asyncio.TimeoutError:
                break
            drained += 1
    assert 1 <= drained <= 2


@pytest.mark.asyncio
async def test_exit_stops_the_ticker() -> None:
    async with Pacer(0.01) as pacer:
        await pacer.wait()
    fired = pacer.fired
    await asyncio.sleep(0.05)
    assert pacer.fired == fired


@pytest.mark.asyncio
async def test_idle_workers_receive_the_target_rate() -> None:
    delivered = 0

    async def worker(pacer: Pacer) -> None:
        nonlocal delivered
        while True:
            await pacer.wait()
            delivered += 1

    async with Pacer.for_rate(1000) as pacer:
        workers = [asyncio.create_task(worker(pacer)) for _ in range(50)]
        start = time.perf_counter()
        await asyncio.sleep(0.5)
        elapsed = time.perf_counter() - start
        for task in workers:
            task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
    assert delivered >= 0.9 * elapsed * 1000


@pytest.mark.asyncio
async def test_late_wakeup_releases_every_due_tick_to_waiting_workers() -> None:
    async with Pacer(0.01) as pacer:
        waiters = [asyncio.create_task(pacer.wait()) for _ in range(10)]
        await asyncio.sleep(0)
        # block the loop so several ticks come due before the ticker runs again
        time.sleep(0.06)
        await asyncio.sleep(0.005)
        assert sum(task.done() for task in waiters) >= 5
        for task in waiters:
            task.cancel()
        await asyncio.gather(*waiters, return_exceptions=True)
