"""Typed telemetry models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


NA = "NA"

BATTERY = "battery"
POWER = "power"
CPU_LOAD = "cpu_load"
CPU_CLOCK = "cpu_clock"
TEMPERATURE = "temperature"
PROCESSES = "processes"

METRIC_KINDS = (BATTERY, POWER, CPU_LOAD, CPU_CLOCK, TEMPERATURE, PROCESSES)


@dataclass(frozen=True)
class Reading:
    kind: str
    raw: Any = None
    unit: str | None = None

    @classmethod
    def unavailable(cls, kind: str) -> "Reading":
        return cls(kind=kind)

    @property
    def available(self) -> bool:
        return self.raw is not None


@dataclass(frozen=True)
class SensorChip:
    name: str
    adapter: str | None = None
    readings: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class Sample:
    timestamp: datetime
    battery_percent: int | None = None
    power_draw_w: float | None = None
    cpu_util_percent: float | None = None
    cpu_clock: str | None = None
    temperature_c: float | None = None
    top_processes: tuple[str, ...] = field(default_factory=tuple)
