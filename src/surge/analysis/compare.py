from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import pandas as pd

HEADLINE_METRICS = (
    "total_requests",
    "average_rps",
    "error_rate",
    "latency_p50_ms",
    "latency_p95_ms",
    "latency_p99_ms",
    "latency_p999_ms",
)


@dataclass(frozen=True, slots=True)
class Regression:
    metric: str
    delta_pct: float
    message: str


def compare_runs(base: Mapping[str, Any], candidate: Mapping[str, Any]) -> list[Regression]:
    """Flag material regressions between two runs' snapshot dicts."""
    regressions: list[Regression] = []
    base_p99 = base.get("latency_p99_ms")
    cand_p99 = candidate.get("latency_p99_ms")
    if base_p99 and cand_p99 is not None:
        delta = (cand_p99 - base_p99) / base_p99
        if delta > 0.2:
            regressions.append(
                Regression(
                    metric="latency_p99_ms",
                    delta_pct=delta * 100,
                    message="p99 latency increased materially",
                )
            )
    base_err = base.get("error_rate") or 0.0
    cand_err = candidate.get("error_rate") or 0.0
    if base_err > 0:
        delta = (cand_err - base_err) / base_err
        if delta > 0.3:
            regressions.append(
                Regression(
                    metric="error_rate",
                    delta_pct=delta * 100,
                    message="error rate regression detected",
                )
            )
    elif cand_err > 0:
        regressions.append(
            Regression(
                metric="error_rate",
                delta_pct=float("inf"),
                message="errors appeared where the baseline had none",
            )
        )
    base_rps = base.get("average_rps") or 0.0
    cand_rps = candidate.get("average_rps") or 0.0
    if base_rps > 0:
        delta = (base_rps - cand_rps) / base_rps
        if delta > 0.2:
            regressions.append(
                Regression(
                    metric="average_rps",
                    delta_pct=delta * 100,
                    message="throughput regression detected",
                )
            )
    return regressions


def comparison_table(base: Mapping[str, Any], candidate: Mapping[str, Any]) -> pd.DataFrame:
    table = pd.DataFrame(
        {
            "base": [base.get(name) for name in HEADLINE_METRICS],
            "candidate": [candidate.get(name) for name in HEADLINE_METRICS],
        },
        index=list(HEADLINE_METRICS),
        dtype=float,
    )
    table["delta_pct"] = (table["candidate"] - table["base"]) / table["base"] * 100
    return table
