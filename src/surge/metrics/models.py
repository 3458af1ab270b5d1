from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Mapping

TRANSPORT_FAILURE = 0


@dataclass(frozen=True, slots=True)
class Outcome:
    latency_ms: float | None
    status_code: int

    @property
    def failed(self) -> bool:
        return self.latency_ms is None


@dataclass(frozen=True, slots=True)
class ResourceSample:
    allocated: int = 0
    total_allocated: int = 0
    system: int = 0
    gc_cycles: int = 0


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Point-in-time copy of the aggregate metrics.

    Latency figures are milliseconds and are ``None`` when nothing has been
    recorded yet. ``error_rate`` is a percentage of ``total_requests``.
    Memory fields are deltas against the baseline taken at construction or
    the last reset.
    """

    start_time: datetime
    end_time: datetime
    elapsed_sec: float
    total_requests: int
    success_requests: int
    error_requests: int
    current_rps: int
    average_rps: float
    latency_min_ms: float | None
    latency_mean_ms: float | None
    latency_max_ms: float | None
    latency_p50_ms: float | None
    latency_p95_ms: float | None
    latency_p99_ms: float | None
    latency_p999_ms: float | None
    errors_by_status: Mapping[int, int]
    error_rate: float
    memory_allocated: int
    memory_total_alloc: int
    memory_sys: int
    gc_cycles: int
    gc_per_minute: float

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.success_requests / self.total_requests * 100

    def to_dict(self) -> dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["start_time"] = self.start_time.isoformat()
        data["end_time"] = self.end_time.isoformat()
        data["errors_by_status"] = {str(k): v for k, v in sorted(self.errors_by_status.items())}
        return data
