"""Host telemetry sources and normalization for hostlog."""

from .models import METRIC_KINDS, NA, Reading, Sample, SensorChip
from .normalize import normalize, parse_sensors
from .sources import (
    BatterySource,
    CpuClockSource,
    CpuLoadSource,
    MetricSource,
    PowerSource,
    ProcessSource,
    TemperatureSource,
    available_batteries,
    build_sources,
)

__all__ = [
    "METRIC_KINDS",
    "NA",
    "BatterySource",
    "CpuClockSource",
    "CpuLoadSource",
    "MetricSource",
    "PowerSource",
    "ProcessSource",
    "Reading",
    "Sample",
    "SensorChip",
    "TemperatureSource",
    "available_batteries",
    "build_sources",
    "normalize",
    "parse_sensors",
]
