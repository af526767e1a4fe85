"""Metric sources, one per external instrument, with graceful fallbacks."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

import psutil

from .models import BATTERY, CPU_CLOCK, CPU_LOAD, POWER, PROCESSES, TEMPERATURE, Reading
from .normalize import HELPER_COMMANDS, parse_sensors, split_power


logger = logging.getLogger("hostlog.telemetry")

POWER_SUPPLY_ROOT = Path("/sys/class/power_supply")
CPUINFO_PATH = Path("/proc/cpuinfo")
TOP_PROCESS_COUNT = 20
CPU_CHIP_PREFIXES = ("coretemp", "k10temp", "cpu_thermal", "acpitz", "zenpower")
CPU_LABEL_PREFIXES = ("package id", "tctl", "tdie", "cpu", "core")

CommandRunner = Callable[[Sequence[str]], str]
TemperatureReader = Callable[[], Mapping[str, Sequence[Any]]]


def run_command(args: Sequence[str], timeout: float = 5.0) -> str:
    result = subprocess.run(list(args), capture_output=True, text=True, timeout=timeout, check=False)
    return result.stdout


class MetricSource:
    """Reads one raw metric; instrument failures become unavailable readings."""

    kind = ""
    _tolerated: tuple[type[BaseException], ...] = (OSError, ValueError, subprocess.SubprocessError, psutil.Error)

    def read(self) -> Reading:
        try:
            return self._read()
        except self._tolerated as exc:
            logger.warning(f"{self.kind} source failed: {exc}", extra={"event": "source_error"})
            return Reading.unavailable(self.kind)

    def _read(self) -> Reading:
        raise NotImplementedError


class BatterySource(MetricSource):
    kind = BATTERY

    def __init__(self, battery: str, root: Path = POWER_SUPPLY_ROOT) -> None:
        self.battery = battery
        self.root = Path(root)

    @property
    def path(self) -> Path:
        return self.root / self.battery

    def exists(self) -> bool:
        return bool(self.battery) and self.path.is_dir()

    def _read(self) -> Reading:
        raw = (self.path / "capacity").read_text(encoding="utf-8").strip()
        if not raw:
            return Reading.unavailable(self.kind)
        return Reading(kind=self.kind, raw=raw, unit="%")


def available_batteries(root: Path = POWER_SUPPLY_ROOT) -> list[str]:
    root = Path(root)
    if not root.is_dir():
        return []
    names = []
    for entry in sorted(root.iterdir()):
        type_file = entry / "type"
        try:
            supply_type = type_file.read_text(encoding="utf-8").strip()
        except OSError:
            supply_type = ""
        if supply_type == "Battery" or entry.name.startswith("BAT"):
            names.append(entry.name)
    return names


class PowerSource(MetricSource):
    """First power reading reported by lm-sensors; psutil exposes none."""

    kind = POWER

    def __init__(self, run: CommandRunner = run_command) -> None:
        self._run = run

    def _read(self) -> Reading:
        for chip in parse_sensors(self._run(["sensors"])):
            for _label, value in chip.readings:
                parts = split_power(value)
                if parts is not None:
                    return Reading(kind=self.kind, raw=parts[0], unit=parts[1])
        return Reading.unavailable(self.kind)


class TemperatureSource(MetricSource):
    """Battery sensor first, then a CPU sensor, from the kernel hwmon readings."""

    kind = TEMPERATURE

    def __init__(self, battery: str, read_temps: TemperatureReader | None = None) -> None:
        self.battery = battery
        self._read_temps = read_temps

    def _temperatures(self) -> Mapping[str, Sequence[Any]]:
        read = self._read_temps or getattr(psutil, "sensors_temperatures", None)
        if read is None:
            return {}
        return read() or {}

    def _device_value(self, temps: Mapping[str, Sequence[Any]]) -> float | None:
        needle = self.battery.lower()
        if not needle:
            return None
        for chip, entries in temps.items():
            for entry in entries:
                if entry.current is None:
                    continue
                if needle in chip.lower() or needle in (entry.label or "").lower():
                    return float(entry.current)
        return None

    @staticmethod
    def _cpu_value(temps: Mapping[str, Sequence[Any]]) -> float | None:
        for prefix in CPU_CHIP_PREFIXES:
            for chip, entries in temps.items():
                if not chip.lower().startswith(prefix):
                    continue
                for entry in entries:
                    if entry.current is not None:
                        return float(entry.current)
        for entries in temps.values():
            for entry in entries:
                if entry.current is not None and (entry.label or "").lower().startswith(CPU_LABEL_PREFIXES):
                    return float(entry.current)
        return None

    def has_device_sensor(self) -> bool:
        try:
            return self._device_value(self._temperatures()) is not None
        except self._tolerated as exc:
            logger.warning(f"temperature sensor lookup failed: {exc}", extra={"event": "source_error"})
            return False

    def _read(self) -> Reading:
        temps = self._temperatures()
        value = self._device_value(temps)
        if value is None:
            value = self._cpu_value(temps)
        if value is None:
            return Reading.unavailable(self.kind)
        return Reading(kind=self.kind, raw=value, unit="C")


class CpuLoadSource(MetricSource):
    """Idle share over a blocking window; the window is the sampling cost."""

    kind = CPU_LOAD

    def __init__(self, window_s: float = 1.0) -> None:
        self.window_s = window_s

    def _read(self) -> Reading:
        times = psutil.cpu_times_percent(interval=self.window_s)
        return Reading(kind=self.kind, raw=float(times.idle), unit="%")


class CpuClockSource(MetricSource):
    kind = CPU_CLOCK

    def __init__(self, cpuinfo_path: Path = CPUINFO_PATH) -> None:
        self.cpuinfo_path = Path(cpuinfo_path)

    def _read(self) -> Reading:
        freqs = psutil.cpu_freq(percpu=True)
        if freqs and freqs[0].current:
            return Reading(kind=self.kind, raw=float(freqs[0].current), unit="MHz")

        if not self.cpuinfo_path.exists():
            return Reading.unavailable(self.kind)
        with self.cpuinfo_path.open("r", encoding="utf-8", errors="ignore") as f:
            for line in f:
                if line.startswith("cpu MHz"):
                    return Reading(kind=self.kind, raw=line.split(":", 1)[1].strip(), unit="MHz")
        return Reading.unavailable(self.kind)


class ProcessSource(MetricSource):
    kind = PROCESSES

    def __init__(self, count: int = TOP_PROCESS_COUNT) -> None:
        self.count = count
        self._own_pid = os.getpid()
        self.prime()

    def prime(self) -> None:
        """Set a CPU-time baseline on psutil's cached processes.

        The first ``cpu_percent`` call per process always returns 0.0, so an
        unprimed first read would rank processes in pid order.
        """
        try:
            for proc in psutil.process_iter():
                try:
                    proc.cpu_percent(None)
                except psutil.Error:
                    continue
        except psutil.Error as exc:
            logger.warning(f"process priming failed: {exc}", extra={"event": "source_error"})

    def _excluded_pids(self) -> set[int]:
        pids = {self._own_pid}
        try:
            pids.update(child.pid for child in psutil.Process(self._own_pid).children(recursive=True))
        except psutil.Error:
            pass
        return pids

    def _read(self) -> Reading:
        excluded = self._excluded_pids()
        ranked: list[tuple[float, str]] = []
        for proc in psutil.process_iter(["pid", "name", "cpu_percent"]):
            info = proc.info
            name = info.get("name")
            if info.get("pid") in excluded or not name or name in HELPER_COMMANDS:
                continue
            ranked.append((float(info.get("cpu_percent") or 0.0), name))
        ranked.sort(key=lambda item: item[0], reverse=True)
        names = tuple(name for _cpu, name in ranked[: self.count])
        if not names:
            return Reading.unavailable(self.kind)
        return Reading(kind=self.kind, raw=names)


def build_sources(
    battery: str,
    power_supply_root: Path = POWER_SUPPLY_ROOT,
    run: CommandRunner = run_command,
    cpu_window_s: float = 1.0,
) -> list[MetricSource]:
    return [
        BatterySource(battery, root=power_supply_root),
        PowerSource(run=run),
        CpuLoadSource(window_s=cpu_window_s),
        CpuClockSource(),
        TemperatureSource(battery),
        ProcessSource(),
    ]
