from __future__ import annotations

import threading
import time
from collections import defaultdict
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Callable, Sequence

import numpy as np

from surge.metrics.models import TRANSPORT_FAILURE, ResourceSample, Snapshot
from surge.metrics.sampler import ProcessSampler, ResourceSampler


def percentile(sorted_values: Sequence[float], p: float) -> float | None:
    """Nearest-rank percentile: ``sorted_values[int(len * p)]``, clamped.

    No interpolation between neighbouring samples, so the result is always
    one of the recorded values.
    """
    if len(sorted_values) == 0:
        return None
    index = min(int(len(sorted_values) * p), len(sorted_values) - 1)
    return float(sorted_values[index])


class Aggregator:
    """Thread-safe accumulator of request outcomes.

    Counters, the latency buffer and the per-status error map each have
    their own lock so writers touching different regions never wait on
    each other. ``snapshot`` copies under those locks and does the sorting
    after releasing them.
    """

    def __init__(
        self,
        sampler: ResourceSampler | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sampler = sampler if sampler is not None else ProcessSampler()
        self._clock = clock
        self._counts_lock = threading.Lock()
        self._latencies_lock = threading.Lock()
        self._errors_lock = threading.Lock()
        self._init_state()

    def _init_state(self) -> None:
        self._total = 0
        self._success = 0
        self._errors = 0
        self._requests_this_second = 0
        self._current_rps = 0
        self._latencies: list[float] = []
        self._errors_by_status: defaultdict[int, int] = defaultdict(int)
        self._start_wall = datetime.now(timezone.utc)
        self._start_mono = self._clock()
        self._last_second = self._start_mono
        self._baseline: ResourceSample = self._sampler.sample()

    def record_request(self, latency_ms: float, status_code: int) -> None:
        ok = 200 <= status_code < 400
        with self._counts_lock:
            self._total += 1
            if ok:
                self._success += 1
            else:
                self._errors += 1
            now = self._clock()
            if now - self._last_second >= 1.0:
                self._current_rps = self._requests_this_second
                self._requests_this_second = 0
                self._last_second = now
            else:
                self._requests_this_second += 1
        if not ok:
            with self._errors_lock:
                self._errors_by_status[status_code] += 1
        with self._latencies_lock:
            self._latencies.append(latency_ms)

    def record_error(self, status_code: int = TRANSPORT_FAILURE) -> None:
        # Counted in the total: total == success + error.
        with self._counts_lock:
            self._total += 1
            self._errors += 1
        with self._errors_lock:
            self._errors_by_status[status_code] += 1

    def snapshot(self) -> Snapshot:
        current = self._sampler.sample()
        with self._latencies_lock:
            latencies = list(self._latencies)
        with self._errors_lock:
            errors_by_status = dict(self._errors_by_status)
        with self._counts_lock:
            total = self._total
            success = self._success
            errors = self._errors
            current_rps = self._current_rps
        end_wall = datetime.now(timezone.utc)
        elapsed = max(0.0, self._clock() - self._start_mono)

        ordered = np.sort(np.asarray(latencies, dtype=float))
        if ordered.size:
            lat_min = float(ordered[0])
            lat_max = float(ordered[-1])
            lat_mean = float(np.mean(ordered))
        else:
            lat_min = lat_max = lat_mean = None

        error_rate = errors / total * 100 if total > 0 else 0.0
        average_rps = total / elapsed if elapsed > 0 else 0.0
        gc_cycles = current.gc_cycles - self._baseline.gc_cycles
        gc_per_minute = gc_cycles / elapsed * 60 if elapsed > 0 else 0.0

        return Snapshot(
            start_time=self._start_wall,
            end_time=end_wall,
            elapsed_sec=elapsed,
            total_requests=total,
            success_requests=success,
            error_requests=errors,
            current_rps=current_rps,
            average_rps=average_rps,
            latency_min_ms=lat_min,
            latency_mean_ms=lat_mean,
            latency_max_ms=lat_max,
            latency_p50_ms=percentile(ordered, 0.50),
            latency_p95_ms=percentile(ordered, 0.95),
            latency_p99_ms=percentile(ordered, 0.99),
            latency_p999_ms=percentile(ordered, 0.999),
            errors_by_status=MappingProxyType(errors_by_status),
            error_rate=error_rate,
            memory_allocated=current.allocated - self._baseline.allocated,
            memory_total_alloc=current.total_allocated - self._baseline.total_allocated,
            memory_sys=current.system - self._baseline.system,
            gc_cycles=gc_cycles,
            gc_per_minute=gc_per_minute,
        )

    def reset(self) -> None:
        """Clear all state between independent runs (not while recording)."""
        with self._counts_lock, self._latencies_lock, self._errors_lock:
            self._init_state()
