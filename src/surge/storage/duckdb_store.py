from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import duckdb
import pandas as pd

from surge.config import RunConfig
from surge.metrics import Snapshot


@dataclass(slots=True)
class Storage:
    db_path: Path

    def __post_init__(self) -> None:
        self.db_path = Path(self.db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> duckdb.DuckDBPyConnection:
        return duckdb.connect(str(self.db_path))

    def _init_schema(self) -> None:
        with self._connect() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS runs (
                    run_id TEXT PRIMARY KEY,
                    created_at TEXT,
                    test_type TEXT,
                    notes TEXT,
                    config_json TEXT,
                    snapshot_json TEXT,
                    total_requests BIGINT,
                    error_rate DOUBLE,
                    average_rps DOUBLE,
                    p50_ms DOUBLE,
                    p95_ms DOUBLE,
                    p99_ms DOUBLE
                );
                """
            )

    def run_exists(self, run_id: str) -> bool:
        with self._connect() as con:
            result = con.execute(
                "SELECT COUNT(*) FROM runs WHERE run_id = ?",
                [run_id],
            ).fetchone()
            return bool(result and result[0] > 0)

    def save_run(self, config: RunConfig, run_id: str, snapshot: Snapshot) -> None:
        if self.run_exists(run_id):
            msg = f"Run {run_id} already exists"
            raise ValueError(msg)
        metadata = dict(config.to_metadata())
        metadata["run_id"] = run_id
        with self._connect() as con:
            con.execute(
                "INSERT INTO runs VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    run_id,
                    config.created_at.isoformat(),
                    metadata["test_type"],
                    config.notes,
                    json.dumps(metadata),
                    json.dumps(snapshot.to_dict()),
                    snapshot.total_requests,
                    snapshot.error_rate,
                    snapshot.average_rps,
                    snapshot.latency_p50_ms,
                    snapshot.latency_p95_ms,
                    snapshot.latency_p99_ms,
                ],
            )

    def list_runs(self) -> pd.DataFrame:
        with self._connect() as con:
            return con.execute(
                """
                SELECT run_id, created_at, test_type, total_requests, error_rate,
                       average_rps, p99_ms, notes
                FROM runs ORDER BY created_at DESC
                """
            ).fetchdf()

    def load_run(self, run_id: str) -> dict[str, Any] | None:
        with self._connect() as con:
            row = con.execute(
                """
                SELECT run_id, created_at, test_type, notes, config_json, snapshot_json
                FROM runs WHERE run_id = ?
                """,
                [run_id],
            ).fetchone()
        if not row:
            return None
        return {
            "run_id": row[0],
            "created_at": row[1],
            "test_type": row[2],
            "notes": row[3],
            "config": json.loads(row[4]),
            "metrics": json.loads(row[5]),
        }
