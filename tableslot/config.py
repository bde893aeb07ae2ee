"""Service configuration for tableslot."""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml


@dataclass(frozen=True)
class ServiceConfig:
    """Opening hours and scheduling policy for one restaurant."""

    open_hour: int = 11
    close_hour: int = 24  # may exceed 24 for service past midnight
    slot_minutes: int = 15
    average_dining_minutes: int = 90
    default_duration: int = 90
    alternative_windows: tuple[int, ...] = (15, 30, 60)
    allow_past: bool = False
    duplicate_window_seconds: int = 5
    wait_sentinel: int = 999

    def __post_init__(self):
        if not 0 <= self.open_hour < self.close_hour <= 48:
            raise ValueError(
                f"Invalid service hours {self.open_hour}-{self.close_hour}"
            )
        if self.slot_minutes <= 0:
            raise ValueError(f"slot_minutes must be positive, got {self.slot_minutes}")
        if self.average_dining_minutes <= 0 or self.default_duration <= 0:
            raise ValueError("Durations must be positive")
        if any(w <= 0 for w in self.alternative_windows):
            raise ValueError("Alternative search windows must be positive")

    @classmethod
    def from_mapping(cls, data: dict[str, Any] | None) -> "ServiceConfig":
        """Build a config from a YAML mapping."""
        if not data:
            return cls()

        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown service settings: {', '.join(sorted(unknown))}")

        values = dict(data)
        if "alternative_windows" in values:
            values["alternative_windows"] = tuple(int(w) for w in values["alternative_windows"])
        return cls(**values)


def load_config(yaml_path: Path) -> ServiceConfig:
    """
    Load service settings from a YAML file.

    Accepts either a standalone settings mapping or a floor file with a
    top-level ``service`` key.
    """
    with yaml_path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not data:
        return ServiceConfig()
    if "service" in data:
        data = data["service"]
    return ServiceConfig.from_mapping(data)
