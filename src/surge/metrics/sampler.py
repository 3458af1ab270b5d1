from __future__ import annotations

import gc
from typing import Protocol

import psutil

from surge.metrics.models import ResourceSample


class ResourceSampler(Protocol):
    def sample(self) -> ResourceSample:
        ...


class NullSampler:
    def sample(self) -> ResourceSample:
        return ResourceSample()


class ProcessSampler:
    """Samples the current process: RSS, VMS, host used memory and GC runs."""

    def __init__(self) -> None:
        self._process = psutil.Process()

    def sample(self) -> ResourceSample:
        mem = self._process.memory_info()
        return ResourceSample(
            allocated=mem.rss,
            total_allocated=mem.vms,
            system=psutil.virtual_memory().used,
            gc_cycles=sum(stats["collections"] for stats in gc.get_stats()),
        )
