from __future__ import annotations

import asyncio
import sys
from datetime import datetime
from typing import TextIO

from surge.metrics import Aggregator, Snapshot
from surge.report.render import format_duration

_CLEAR_LINE = "\033[K"


def progress_line(snapshot: Snapshot, now: datetime | None = None) -> str:
    stamp = (now or datetime.now()).strftime("%H:%M:%S")
    return (
        f"[{stamp}] [{format_duration(snapshot.elapsed_sec * 1000)}] "
        f"Requests: {snapshot.total_requests} | RPS: {snapshot.average_rps:.2f} | "
        f"Errors: {snapshot.error_requests} ({snapshot.error_rate:.2f}%) | "
        f"Latency P95: {format_duration(snapshot.latency_p95_ms)}"
    )


async def print_progress(
    metrics: Aggregator,
    interval_sec: float = 1.0,
    stream: TextIO = sys.stdout,
) -> None:
    """Rewrite one status line every ``interval_sec`` until cancelled."""
    try:
        while True:
            await asyncio.sleep(interval_sec)
            stream.write("\r" + _CLEAR_LINE + progress_line(metrics.snapshot()))
            stream.flush()
    finally:
        stream.write("\n")
        stream.flush()
