from __future__ import annotations

import json
import sys
from pathlib import Path

from surge.config import RunConfig
from surge.metrics import Snapshot

_WIDTH = 80
_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_duration(ms: float | None) -> str:
    if ms is None:
        return "n/a"
    if ms < 0.001:
        return f"{ms * 1_000_000:.2f}ns"
    if ms < 1:
        return f"{ms * 1000:.2f}µs"
    if ms < 1000:
        return f"{ms:.2f}ms"
    return f"{ms / 1000:.3f}s"


def format_bytes(n: int) -> str:
    sign = "-" if n < 0 else ""
    n = abs(n)
    unit = 1024
    if n < unit:
        return f"{sign}{n} B"
    div, exp = unit, 0
    value = n // unit
    while value >= unit:
        div *= unit
        exp += 1
        value //= unit
    return f"{sign}{n / div:.2f} {'KMGTPE'[exp]}B"


def render_text(config: RunConfig, snapshot: Snapshot) -> str:
    lines: list[str] = []
    test_name = config.to_metadata()["test_type"]

    def section(title: str) -> None:
        lines.append(f"{title}:")
        lines.append("-" * _WIDTH)

    lines.append("=" * _WIDTH)
    lines.append("SURGE STRESS TEST REPORT")
    lines.append("=" * _WIDTH)
    lines.append("")

    section("Test Timestamps")
    lines.append(f"  Start Time:    {snapshot.start_time.strftime(_TIME_FORMAT)}")
    lines.append(f"  End Time:      {snapshot.end_time.strftime(_TIME_FORMAT)}")
    lines.append(f"  Duration:      {format_duration(snapshot.elapsed_sec * 1000)}")
    lines.append("")

    section("Test Configuration")
    lines.append(f"  Test Type:     {test_name}")
    lines.append(f"  Server Addr:   {config.server_addr}")
    lines.append(f"  Concurrent:    {config.concurrency}")
    lines.append(f"  Target RPS:    {config.target_rps}")
    if test_name == "spike":
        lines.append(f"  Spike RPS:     {config.spike_rps}")
        lines.append(f"  Spike Length:  {format_duration(config.spike_duration_sec * 1000)}")
    lines.append("")

    section("Request Statistics")
    lines.append(f"  Total Requests:    {snapshot.total_requests}")
    lines.append(f"  Success Requests:  {snapshot.success_requests} ({snapshot.success_rate:.2f}%)")
    lines.append(f"  Error Requests:    {snapshot.error_requests} ({snapshot.error_rate:.2f}%)")
    lines.append("")

    section("Throughput")
    lines.append(f"  Current RPS:  {snapshot.current_rps}")
    lines.append(f"  Average RPS:  {snapshot.average_rps:.2f}")
    lines.append("")

    section("Latency")
    if snapshot.latency_min_ms is not None:
        lines.append(f"  Min:    {format_duration(snapshot.latency_min_ms)}")
        lines.append(f"  Mean:   {format_duration(snapshot.latency_mean_ms)}")
        lines.append(f"  P50:    {format_duration(snapshot.latency_p50_ms)}")
        lines.append(f"  P95:    {format_duration(snapshot.latency_p95_ms)}")
        lines.append(f"  P99:    {format_duration(snapshot.latency_p99_ms)}")
        lines.append(f"  P99.9:  {format_duration(snapshot.latency_p999_ms)}")
        lines.append(f"  Max:    {format_duration(snapshot.latency_max_ms)}")
    else:
        lines.append("  No latency data available")
    lines.append("")

    if snapshot.errors_by_status:
        section("Error Breakdown")
        for status, count in sorted(snapshot.errors_by_status.items()):
            label = "transport" if status == 0 else str(status)
            lines.append(f"  {label}: {count} requests")
        lines.append("")

    section("Memory Statistics")
    lines.append(f"  Allocated:     {format_bytes(snapshot.memory_allocated)}")
    lines.append(f"  Total Alloc:   {format_bytes(snapshot.memory_total_alloc)}")
    lines.append(f"  Sys:           {format_bytes(snapshot.memory_sys)}")
    lines.append(f"  GC Cycles:     {snapshot.gc_cycles}")
    lines.append(f"  GC Rate:       {snapshot.gc_per_minute:.2f} cycles/min")
    lines.append("")
    lines.append("=" * _WIDTH)
    return "\n".join(lines) + "\n"


def render_json(config: RunConfig, snapshot: Snapshot) -> str:
    payload = {"config": dict(config.to_metadata()), "metrics": snapshot.to_dict()}
    return json.dumps(payload, indent=2) + "\n"


def render(config: RunConfig, snapshot: Snapshot) -> str:
    if config.report_format == "json":
        return render_json(config, snapshot)
    return render_text(config, snapshot)


def write_report(config: RunConfig, snapshot: Snapshot, path: str | Path | None = None) -> None:
    """Write the report to ``path``; ``"-"`` or an empty path means stdout."""
    content = render(config, snapshot)
    target = str(path) if path is not None else config.report_file
    if not target or target == "-":
        sys.stdout.write(content)
        return
    out = Path(target)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(content, encoding="utf-8")
