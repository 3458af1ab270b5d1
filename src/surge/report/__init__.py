from __future__ import annotations

from surge.report.progress import print_progress, progress_line
from surge.report.render import (
    format_bytes,
    format_duration,
    render,
    render_json,
    render_text,
    write_report,
)

__all__ = [
    "format_bytes",
    "format_duration",
    "print_progress",
    "progress_line",
    "render",
    "render_json",
    "render_text",
    "write_report",
]
