from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping


class ConfigError(ValueError):
    """Fatal configuration problem detected before any worker starts."""


class TestType(str, Enum):
    __test__ = False

    LOAD = "load"
    SPIKE = "spike"
    ENDURANCE = "endurance"


class ReportFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


DEFAULT_ENDPOINTS: tuple[str, ...] = (
    "GET:/",
    "GET:/ping",
    "GET:/users/123",
    "GET:/search?q=test&limit=10",
    "GET:/items/1",
    "POST:/items",
    "PUT:/items/1",
    "DELETE:/items/1",
)


@dataclass(frozen=True, slots=True)
class RunConfig:
    server_addr: str = ":8080"
    test_type: TestType = TestType.LOAD
    duration_sec: float = 60.0
    target_rps: int = 100
    concurrency: int = 10
    spike_duration_sec: float = 5.0
    spike_rps: int = 1000
    timeout_sec: float = 30.0
    endpoints: tuple[str, ...] = DEFAULT_ENDPOINTS
    dataset_size: int = 10000
    seed: int | None = None
    report_format: ReportFormat = ReportFormat.TEXT
    report_file: str = ""
    run_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    notes: str = ""

    def validate(self) -> None:
        if not self.server_addr:
            raise ConfigError("server address cannot be empty")
        if self.test_type not in tuple(TestType):
            msg = f"invalid test type: {self.test_type} (must be load, spike, or endurance)"
            raise ConfigError(msg)
        if self.duration_sec <= 0:
            raise ConfigError("duration must be positive")
        if self.target_rps <= 0:
            raise ConfigError("target RPS must be positive")
        if self.concurrency <= 0:
            raise ConfigError("concurrent connections must be positive")
        if self.timeout_sec <= 0:
            raise ConfigError("timeout must be positive")
        if self.test_type == TestType.SPIKE:
            if self.spike_duration_sec <= 0:
                raise ConfigError("spike duration must be positive")
            if self.spike_rps <= 0:
                raise ConfigError("spike RPS must be positive")
        if self.report_format not in tuple(ReportFormat):
            msg = f"invalid report format: {self.report_format} (must be text or json)"
            raise ConfigError(msg)
        if not self.endpoints:
            raise ConfigError("at least one endpoint must be specified")

    def to_metadata(self) -> Mapping[str, Any]:
        return {
            "run_id": self.run_id or "",
            "created_at": self.created_at.isoformat(),
            "server_addr": self.server_addr,
            "test_type": _enum_value(self.test_type),
            "duration_sec": self.duration_sec,
            "target_rps": self.target_rps,
            "concurrency": self.concurrency,
            "spike_duration_sec": self.spike_duration_sec,
            "spike_rps": self.spike_rps,
            "timeout_sec": self.timeout_sec,
            "endpoints": list(self.endpoints),
            "dataset_size": self.dataset_size,
            "seed": self.seed,
            "notes": self.notes,
        }


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value
