from __future__ import annotations

import os
import re
from pathlib import Path

from surge.config.models import ConfigError, ReportFormat, TestType

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(text: str) -> float:
    """Parse ``"1m30s"``-style durations (or plain seconds) into seconds."""
    value = text.strip()
    if not value:
        raise ConfigError("empty duration")
    try:
        return float(value)
    except ValueError:
        pass
    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(value):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos != len(value):
        msg = f"invalid duration: {text!r}"
        raise ConfigError(msg)
    return total


def parse_endpoint_list(text: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in text.split(",") if part.strip())


def env_str(key: str, default: str) -> str:
    return os.environ.get(key) or default


def env_int(key: str, default: int) -> int:
    value = os.environ.get(key)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def env_duration(key: str, default: float) -> float:
    value = os.environ.get(key)
    if not value:
        return default
    try:
        return parse_duration(value)
    except ConfigError:
        return default


def default_report_path(test_type: TestType | str, report_format: ReportFormat | str) -> Path:
    test_name = test_type.value if isinstance(test_type, TestType) else str(test_type)
    ext = "json" if report_format == ReportFormat.JSON else "txt"
    return Path("results") / f"{test_name}-test.{ext}"
