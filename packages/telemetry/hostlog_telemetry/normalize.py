"""Conversion of raw instrument output into canonical units.

Every function here is pure and tolerant: malformed input yields ``None``
rather than an exception, so a format change in one instrument only blanks
that instrument's field.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from .models import BATTERY, CPU_CLOCK, CPU_LOAD, POWER, PROCESSES, TEMPERATURE, Reading, Sample, SensorChip


HELPER_COMMANDS = frozenset({"sensors"})

_NUMBER_RE = re.compile(r"[+-]?\d+(?:[.,]\d+)?")
_POWER_RE = re.compile(r"^\+?(?P<value>\d+(?:[.,]\d+)?)\s*(?P<unit>mW|uW|µW|W)\b")
_TEMP_RE = re.compile(r"^(?P<value>[+-]?\d+(?:[.,]\d+)?)\s*(?:°\s*)?C\b")
_FREQ_RE = re.compile(r"(?P<value>\d+(?:[.,]\d+)?)\s*(?P<unit>[kMG]Hz)?", re.IGNORECASE)

_POWER_SCALE = {"W": 1.0, "mW": 1000.0, "uW": 1_000_000.0, "µW": 1_000_000.0}
_FREQ_SCALE_MHZ = {"khz": (1.0, 1000.0), "mhz": (1.0, 1.0), "ghz": (1000.0, 1.0)}


def parse_number(text: Any) -> float | None:
    if text is None:
        return None
    if isinstance(text, (int, float)):
        return float(text)
    match = _NUMBER_RE.search(str(text))
    if not match:
        return None
    return float(match.group(0).replace(",", "."))


def battery_percent(raw: Any) -> int | None:
    value = parse_number(raw)
    if value is None:
        return None
    return max(0, min(100, int(round(value))))


def power_watts(value: Any, unit: str | None = "W") -> float | None:
    """Convert a power value in ``unit`` to watts.

    Discharging batteries report negative draw on some firmware, so the
    magnitude is kept. Division is exact floating point, never rounded.
    """
    number = parse_number(value)
    if number is None:
        return None
    scale = _POWER_SCALE.get((unit or "W").strip())
    if scale is None:
        return None
    number = abs(number)
    return number if scale == 1.0 else number / scale


def cpu_utilization(idle: Any) -> float | None:
    idle_pct = parse_number(idle)
    if idle_pct is None:
        return None
    return max(0.0, min(100.0, round(100.0 - idle_pct, 2)))


def parse_frequency(text: Any, default_unit: str = "MHz") -> float | None:
    """Return the frequency in MHz from ``"2.4 GHz"``, ``"2400MHz"`` or ``"2400.000"``."""
    if text is None:
        return None
    match = _FREQ_RE.search(str(text))
    if not match:
        return None
    unit = (match.group("unit") or default_unit).lower()
    scale = _FREQ_SCALE_MHZ.get(unit)
    if scale is None:
        return None
    multiplier, divisor = scale
    return float(match.group("value").replace(",", ".")) * multiplier / divisor


def format_clock(mhz: float | None) -> str | None:
    if mhz is None or mhz <= 0:
        return None
    return f"{mhz:.0f} MHz"


def parse_temperature(text: Any) -> float | None:
    if text is None:
        return None
    if isinstance(text, (int, float)):
        return float(text)
    match = _TEMP_RE.match(str(text).strip())
    if match:
        return float(match.group("value").replace(",", "."))
    return parse_number(text)


def split_power(value_text: str) -> tuple[str, str] | None:
    match = _POWER_RE.match(value_text.strip())
    if not match:
        return None
    return match.group("value"), match.group("unit")


def parse_sensors(text: str) -> list[SensorChip]:
    """Split lm-sensors output into chips with ``(label, value)`` readings."""
    chips: list[SensorChip] = []
    for block in re.split(r"\n\s*\n", text.strip()):
        lines = [line.rstrip() for line in block.splitlines() if line.strip()]
        if not lines:
            continue
        name = lines[0].strip()
        adapter = None
        readings: list[tuple[str, str]] = []
        for line in lines[1:]:
            if ":" not in line or line[:1].isspace():
                continue
            label, value = line.split(":", 1)
            if label == "Adapter":
                adapter = value.strip()
                continue
            value = value.split("(", 1)[0].strip()
            if value:
                readings.append((label.strip(), value))
        chips.append(SensorChip(name=name, adapter=adapter, readings=tuple(readings)))
    return chips


def clean_process_names(names: Iterable[Any]) -> tuple[str, ...]:
    out: list[str] = []
    for name in names:
        if name is None:
            continue
        token = re.sub(r"[;,\r\n]", "", str(name)).strip()
        if not token or token in HELPER_COMMANDS:
            continue
        out.append(token)
    return tuple(out)


def normalize(readings: Mapping[str, Reading], timestamp: datetime) -> Sample:
    def raw(kind: str) -> Reading | None:
        reading = readings.get(kind)
        if reading is None or not reading.available:
            return None
        return reading

    battery = raw(BATTERY)
    power = raw(POWER)
    load = raw(CPU_LOAD)
    clock = raw(CPU_CLOCK)
    temp = raw(TEMPERATURE)
    procs = raw(PROCESSES)

    return Sample(
        timestamp=timestamp,
        battery_percent=(battery_percent(battery.raw) if battery else None),
        power_draw_w=(power_watts(power.raw, power.unit) if power else None),
        cpu_util_percent=(cpu_utilization(load.raw) if load else None),
        cpu_clock=(format_clock(parse_frequency(clock.raw, default_unit=clock.unit or "MHz")) if clock else None),
        temperature_c=(parse_temperature(temp.raw) if temp else None),
        top_processes=(clean_process_names(procs.raw) if procs else ()),
    )
