from __future__ import annotations

import asyncio
import contextlib
import math
import time
from collections import deque
from types import TracebackType


class Pacer:
    """Shared ticker for one load phase.

    Ticks are scheduled against the phase start, so a late wakeup releases
    every tick that came due since the last one. Each tick goes to exactly
    one waiting worker; with no worker waiting, at most one tick is buffered
    and the rest are dropped, so busy workers never catch up with a burst.
    """

    def __init__(self, interval_sec: float) -> None:
        if interval_sec <= 0:
            msg = f"pacing interval must be positive, got {interval_sec}"
            raise ValueError(msg)
        self.interval_sec = interval_sec
        self.fired = 0
        self._waiters: deque[asyncio.Future[float]] = deque()
        self._buffered: float | None = None
        self._task: asyncio.Task[None] | None = None

    @classmethod
    def for_rate(cls, rps: float) -> Pacer:
        return cls(1.0 / rps)

    async def __aenter__(self) -> Pacer:
        self._task = asyncio.create_task(self._run())
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def wait(self) -> float:
        if self._buffered is not None:
            tick, self._buffered = self._buffered, None
            return tick
        waiter: asyncio.Future[float] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        return await waiter

    def _release(self, tick: float) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(tick)
                return
        if self._buffered is None:
            self._buffered = tick

    async def _run(self) -> None:
        start = time.perf_counter()
        while True:
            await sleep_until(start + (self.fired + 1) * self.interval_sec)
            due = math.floor((time.perf_counter() - start) / self.interval_sec)
            for n in range(self.fired + 1, due + 1):
                self._release(start + n * self.interval_sec)
            self.fired = max(self.fired, due)


async def sleep_until(target: float) -> None:
    delay = max(0.0, target - time.perf_counter())
    if delay > 0:
        await asyncio.sleep(delay)
