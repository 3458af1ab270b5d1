from __future__ import annotations

from pathlib import Path

from surge.storage.duckdb_store import Storage


def default_storage() -> Storage:
    return Storage(Path(".surge/surge.duckdb"))


__all__ = ["Storage", "default_storage"]
