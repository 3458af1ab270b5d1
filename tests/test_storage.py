from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from surge.config import RunConfig, TestType
from surge.metrics import Aggregator, NullSampler, Snapshot
from surge.storage import Storage


def _snapshot(latencies: list[float], errors: int = 0) -> Snapshot:
    agg = Aggregator(sampler=NullSampler())
    for latency in latencies:
        agg.record_request(latency, 200)
    for _ in range(errors):
        agg.record_error()
    return agg.snapshot()


def test_save_and_load_run(tmp_path: Path) -> None:
    storage = Storage(tmp_path / "runs.duckdb")
    config = RunConfig(test_type=TestType.SPIKE, notes="first")
    storage.save_run(config, "run-1", _snapshot([10.0, 20.0, 30.0], errors=1))

    assert storage.run_exists("run-1")
    assert not storage.run_exists("run-2")
    loaded = storage.load_run("run-1")
    assert loaded is not None
    assert loaded["test_type"] == "spike"
    assert loaded["notes"] == "first"
    assert loaded["config"]["run_id"] == "run-1"
    assert loaded["metrics"]["total_requests"] == 4
    assert loaded["metrics"]["latency_p50_ms"] == 20.0
    assert storage.load_run("missing") is None


def test_duplicate_run_id_rejected(tmp_path: Path) -> None:
    storage = Storage(tmp_path / "runs.duckdb")
    storage.save_run(RunConfig(), "dup", _snapshot([1.0]))
    with pytest.raises(ValueError, match="already exists"):
        storage.save_run(RunConfig(), "dup", _snapshot([1.0]))


def test_list_runs(tmp_path: Path) -> None:
    storage = Storage(tmp_path / "runs.duckdb")
    assert storage.list_runs().empty
    storage.save_run(RunConfig(), "a", _snapshot([1.0, 2.0]))
    storage.save_run(RunConfig(), "b", _snapshot([]))
    runs = storage.list_runs()
    assert set(runs["run_id"]) == {"a", "b"}
    by_id = runs.set_index("run_id")
    assert by_id.loc["a", "total_requests"] == 2
    assert pd.isna(by_id.loc["b", "p99_ms"])
