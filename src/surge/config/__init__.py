from __future__ import annotations

from surge.config.loader import default_report_path, parse_duration, parse_endpoint_list
from surge.config.models import (
    DEFAULT_ENDPOINTS,
    ConfigError,
    ReportFormat,
    RunConfig,
    TestType,
)

__all__ = [
    "DEFAULT_ENDPOINTS",
    "ConfigError",
    "ReportFormat",
    "RunConfig",
    "TestType",
    "default_report_path",
    "parse_duration",
    "parse_endpoint_list",
]
