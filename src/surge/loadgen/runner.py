from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Awaitable, Callable, Coroutine, Protocol, Sequence

import httpx

from surge.config import ConfigError, RunConfig, TestType
from surge.loadgen.client import base_url_for, execute, new_client
from surge.loadgen.endpoint import Endpoint, EndpointError, IdPicker, parse_endpoints
from surge.loadgen.pacer import Pacer, sleep_until
from surge.metrics import Aggregator

logger = logging.getLogger(__name__)

BURST_WORKER_MULTIPLIER = 5

SendFunc = Callable[[Endpoint], Awaitable[object]]


class TickSource(Protocol):
    async def wait(self) -> float:
        ...


class RunState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOPPED = "stopped"


class StopReason(str, Enum):
    DEADLINE = "deadline"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


async def pace_worker(
    pacer: TickSource,
    endpoints: Sequence[Endpoint],
    send: SendFunc,
    start_index: int = 0,
) -> None:
    """Send one request per tick, rotating through ``endpoints`` until cancelled."""
    index = start_index
    while True:
        await pacer.wait()
        if not endpoints:
            continue
        endpoint = endpoints[index % len(endpoints)]
        index += 1
        await send(endpoint)


async def run_until(
    coro: Coroutine[object, object, object],
    timeout_sec: float | None,
    stop: asyncio.Event | None = None,
) -> StopReason:
    """Run ``coro`` until it finishes, ``timeout_sec`` passes or ``stop`` is set.

    Whichever fires first wins; the task running ``coro`` is cancelled and
    awaited before returning. Exceptions raised by ``coro`` propagate.
    """
    main = asyncio.create_task(coro)
    waiters: set[asyncio.Task[object]] = {main}
    stopper: asyncio.Task[object] | None = None
    if stop is not None:
        stopper = asyncio.create_task(stop.wait())
        waiters.add(stopper)
    done: set[asyncio.Task[object]] = set()
    try:
        done, _ = await asyncio.wait(waiters, timeout=timeout_sec, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in waiters:
            task.cancel()
        await asyncio.gather(*waiters, return_exceptions=True)
    if main in done:
        main.result()
        return StopReason.COMPLETED
    if stopper is not None and stopper in done:
        return StopReason.CANCELLED
    return StopReason.DEADLINE


class Orchestrator:
    """Drives one run of a load shape against the target service.

    One instance per run: ``run`` may be called once. Endpoints and the test
    type are checked before any worker starts; a bad value raises
    :class:`ConfigError`. Request failures never abort the run, they are
    recorded in ``metrics``.
    """

    def __init__(
        self,
        config: RunConfig,
        metrics: Aggregator,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.metrics = metrics
        self.state = RunState.NOT_STARTED
        self.stop_reason: StopReason | None = None
        self.bursts_started = 0
        self._transport = transport
        self._base_url = base_url_for(config.server_addr)
        self._ids = IdPicker(config.dataset_size, config.seed)
        self._client: httpx.AsyncClient | None = None

    async def run(self, stop: asyncio.Event | None = None) -> StopReason:
        if self.state is not RunState.NOT_STARTED:
            raise RuntimeError("orchestrator already used; create a new one for each run")
        self.state = RunState.RUNNING
        try:
            endpoints = self._parse_endpoints()
            phase = self._phase_for(self.config.test_type)
            logger.info(
                "starting %s test: duration=%.1fs rps=%d concurrency=%d endpoints=%d",
                TestType(self.config.test_type).value,
                self.config.duration_sec,
                self.config.target_rps,
                self.config.concurrency,
                len(endpoints),
            )
            async with new_client(self.config.concurrency, self._transport) as client:
                self._client = client
                self.stop_reason = await run_until(phase(endpoints), self.config.duration_sec, stop)
            logger.info("test stopped: %s", self.stop_reason.value)
            return self.stop_reason
        finally:
            self._client = None
            self.state = RunState.STOPPED

    def _parse_endpoints(self) -> list[Endpoint]:
        try:
            return parse_endpoints(self.config.endpoints)
        except EndpointError as exc:
            msg = f"failed to parse endpoints: {exc}"
            raise ConfigError(msg) from exc

    def _phase_for(self, test_type: TestType | str) -> Callable[[list[Endpoint]], Coroutine[object, object, None]]:
        try:
            mode = TestType(test_type)
        except ValueError as exc:
            msg = f"unknown test type: {test_type}"
            raise ConfigError(msg) from exc
        if mode is TestType.SPIKE:
            return self._run_spike
        if mode is TestType.ENDURANCE:
            return self._run_endurance
        return self._run_load

    async def _send(self, endpoint: Endpoint) -> None:
        if self._client is None:
            msg = "no HTTP client; requests are only sent during run()"
            raise RuntimeError(msg)
        await execute(
            self._client,
            endpoint,
            self._base_url,
            self.config.timeout_sec,
            self.metrics,
            self._ids,
        )

    async def _run_workers(self, endpoints: list[Endpoint], rps: float, count: int, stagger: bool = False) -> None:
        async with Pacer.for_rate(rps) as pacer:
            tasks = [
                asyncio.create_task(pace_worker(pacer, endpoints, self._send, i if stagger else 0))
                for i in range(count)
            ]
            try:
                await asyncio.gather(*tasks)
            finally:
                # in-flight requests are cancelled here and never recorded
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)

    async def _run_load(self, endpoints: list[Endpoint]) -> None:
        await self._run_workers(endpoints, self.config.target_rps, self.config.concurrency)

    async def _run_endurance(self, endpoints: list[Endpoint]) -> None:
        # Same mechanics as load; kept as its own mode for reporting.
        await self._run_workers(endpoints, self.config.target_rps, self.config.concurrency)

    async def _run_spike(self, endpoints: list[Endpoint]) -> None:
        tasks = [
            asyncio.create_task(self._run_load(endpoints)),
            asyncio.create_task(self._burst_controller(endpoints)),
        ]
        try:
            await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _burst_controller(self, endpoints: list[Endpoint]) -> None:
        if not endpoints:
            return
        spike_sec = self.config.spike_duration_sec
        period = spike_sec * 2
        burst_workers = self.config.concurrency * BURST_WORKER_MULTIPLIER
        next_burst = time.perf_counter() + period
        while True:
            await sleep_until(next_burst)
            self.bursts_started += 1
            logger.info(
                "burst %d: %d workers at %d rps for %.1fs",
                self.bursts_started,
                burst_workers,
                self.config.spike_rps,
                spike_sec,
            )
            await run_until(
                self._run_workers(endpoints, self.config.spike_rps, burst_workers, stagger=True),
                spike_sec,
            )
            next_burst += period
            while next_burst <= time.perf_counter():
                next_burst += period


async def run_test(
    config: RunConfig,
    metrics: Aggregator,
    stop: asyncio.Event | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> StopReason:
    return await Orchestrator(config, metrics, transport).run(stop)
