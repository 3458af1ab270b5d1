from __future__ import annotations

from surge.analysis.compare import Regression, compare_runs, comparison_table

__all__ = ["Regression", "compare_runs", "comparison_table"]
