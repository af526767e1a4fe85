from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from types import SimpleNamespace

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))

from hostlog_telemetry import sources
from hostlog_telemetry.models import METRIC_KINDS
from hostlog_telemetry.sources import (
    BatterySource,
    CpuClockSource,
    CpuLoadSource,
    PowerSource,
    ProcessSource,
    TemperatureSource,
    available_batteries,
    build_sources,
)


BATTERY_SENSORS = """\
BAT0-acpi-0
Adapter: ACPI interface
in0:          12.40 V
temp1:        +31.5°C
power1:       15.2 mW

coretemp-isa-0000
Adapter: ISA adapter
Package id 0:  +45.0°C  (high = +100.0°C, crit = +100.0°C)
"""

NO_POWER_SENSORS = """\
nvme-pci-0100
Adapter: PCI adapter
Composite:    +38.9°C  (low  = -273.1°C, high = +84.8°C)

coretemp-isa-0000
Adapter: ISA adapter
Package id 0:  +45.0°C  (high = +100.0°C, crit = +100.0°C)
"""

USB_C_SENSORS = """\
ucsi_source_psy_USBC000:001-isa-0000
Adapter: ISA adapter
in0:           5.00 V  (min =  +5.00 V, max =  +5.00 V)
power1:        9.10 W
"""


def _runner(text: str):
    calls: list[list[str]] = []

    def run(args):
        calls.append(list(args))
        return text

    run.calls = calls  # type: ignore[attr-defined]
    return run


def _power_supply(tmp_path: Path) -> Path:
    bat = tmp_path / "BAT0"
    bat.mkdir()
    (bat / "capacity").write_text("87\n", encoding="utf-8")
    (bat / "type").write_text("Battery\n", encoding="utf-8")
    ac = tmp_path / "AC"
    ac.mkdir()
    (ac / "type").write_text("Mains\n", encoding="utf-8")
    return tmp_path


def test_battery_reads_capacity(tmp_path: Path) -> None:
    root = _power_supply(tmp_path)
    source = BatterySource("BAT0", root=root)
    assert source.exists()
    reading = source.read()
    assert reading.raw == "87"
    assert reading.unit == "%"


def test_battery_missing_is_reported_not_raised(tmp_path: Path) -> None:
    root = _power_supply(tmp_path)
    source = BatterySource("BAT9", root=root)
    assert not source.exists()
    assert not source.read().available


def test_available_batteries_lists_only_batteries(tmp_path: Path) -> None:
    root = _power_supply(tmp_path)
    (root / "BAT1").mkdir()
    assert available_batteries(root) == ["BAT0", "BAT1"]
    assert available_batteries(tmp_path / "missing") == []


def test_power_first_reading_in_milliwatts() -> None:
    reading = PowerSource(run=_runner(BATTERY_SENSORS)).read()
    assert reading.raw == "15.2"
    assert reading.unit == "mW"


def test_power_in_watts() -> None:
    reading = PowerSource(run=_runner(USB_C_SENSORS)).read()
    assert (reading.raw, reading.unit) == ("9.10", "W")


def test_power_unavailable_without_power_reading() -> None:
    assert not PowerSource(run=_runner(NO_POWER_SENSORS)).read().available


def _temp(current, label=""):
    return SimpleNamespace(label=label, current=current, high=None, critical=None)


BATTERY_TEMPS = {
    "nvme": [_temp(38.9, "Composite")],
    "BAT0": [_temp(31.5)],
    "coretemp": [_temp(45.0, "Package id 0"), _temp(43.0, "Core 0")],
}
CPU_ONLY_TEMPS = {
    "nvme": [_temp(38.9, "Composite")],
    "k10temp": [_temp(52.25, "Tctl")],
    "coretemp": [_temp(45.0, "Package id 0")],
}


def test_tool_failure_becomes_unavailable() -> None:
    def broken(_args):
        raise subprocess.TimeoutExpired(cmd="sensors", timeout=5)

    def unreadable():
        raise OSError("hwmon unreadable")

    assert not PowerSource(run=broken).read().available
    assert not TemperatureSource("BAT0", read_temps=unreadable).read().available
    assert TemperatureSource("BAT0", read_temps=unreadable).has_device_sensor() is False


def test_temperature_prefers_battery_sensor() -> None:
    source = TemperatureSource("BAT0", read_temps=lambda: BATTERY_TEMPS)
    assert source.has_device_sensor()
    assert source.read().raw == 31.5


def test_temperature_matches_battery_label() -> None:
    temps = {"acpitz": [_temp(27.8)], "sbs": [_temp(33.0, "bat0 cell")]}
    assert TemperatureSource("BAT0", read_temps=lambda: temps).read().raw == 33.0


def test_temperature_falls_back_to_cpu_sensor_in_preference_order() -> None:
    source = TemperatureSource("BAT0", read_temps=lambda: CPU_ONLY_TEMPS)
    assert not source.has_device_sensor()
    assert source.read().raw == 45.0


def test_temperature_falls_back_to_cpu_label() -> None:
    temps = {"nvme": [_temp(38.9, "Composite")], "zz_hwmon": [_temp(61.0, "CPU")]}
    assert TemperatureSource("BAT0", read_temps=lambda: temps).read().raw == 61.0


def test_temperature_ignores_non_cpu_sensors() -> None:
    temps = {"nvme": [_temp(38.9, "Composite")], "amdgpu": [_temp(48.0, "edge")]}
    source = TemperatureSource("BAT0", read_temps=lambda: temps)
    assert not source.has_device_sensor()
    assert not source.read().available


def test_temperature_unavailable_without_any_sensor() -> None:
    assert not TemperatureSource("BAT0", read_temps=lambda: {}).read().available


def test_temperature_defaults_to_psutil(monkeypatch) -> None:
    monkeypatch.setattr(sources.psutil, "sensors_temperatures", lambda: CPU_ONLY_TEMPS, raising=False)
    assert TemperatureSource("BAT0").read().raw == 45.0


def test_temperature_without_psutil_support(monkeypatch) -> None:
    monkeypatch.delattr(sources.psutil, "sensors_temperatures", raising=False)
    assert not TemperatureSource("BAT0").read().available


def test_cpu_load_reports_idle(monkeypatch) -> None:
    windows: list[float] = []

    def fake_times(interval=None):
        windows.append(interval)
        return SimpleNamespace(idle=93.7)

    monkeypatch.setattr(sources.psutil, "cpu_times_percent", fake_times)
    reading = CpuLoadSource(window_s=1.0).read()
    assert reading.raw == 93.7
    assert windows == [1.0]


def test_cpu_clock_uses_first_core(monkeypatch) -> None:
    monkeypatch.setattr(
        sources.psutil,
        "cpu_freq",
        lambda percpu=False: [SimpleNamespace(current=2400.0), SimpleNamespace(current=3100.0)],
    )
    reading = CpuClockSource().read()
    assert (reading.raw, reading.unit) == (2400.0, "MHz")


def test_cpu_clock_falls_back_to_cpuinfo(monkeypatch, tmp_path: Path) -> None:
    cpuinfo = tmp_path / "cpuinfo"
    cpuinfo.write_text("processor\t: 0\ncpu MHz\t\t: 1796.123\nprocessor\t: 1\ncpu MHz\t\t: 3000.000\n", encoding="utf-8")
    monkeypatch.setattr(sources.psutil, "cpu_freq", lambda percpu=False: [])
    reading = CpuClockSource(cpuinfo_path=cpuinfo).read()
    assert reading.raw == "1796.123"


def test_cpu_clock_unavailable_without_data(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(sources.psutil, "cpu_freq", lambda percpu=False: None)
    assert not CpuClockSource(cpuinfo_path=tmp_path / "missing").read().available


class _FakeProc:
    def __init__(self, pid: int, name: str, cpu: float) -> None:
        self.pid = pid
        self.name = name
        self.cpu = cpu
        self.info = {"pid": pid, "name": name, "cpu_percent": cpu}

    def cpu_percent(self, interval=None) -> float:
        return self.cpu


class _FreshProc(_FakeProc):
    """Behaves like psutil: the first cpu_percent call has no baseline and returns 0.0."""

    def __init__(self, pid: int, name: str, cpu: float) -> None:
        super().__init__(pid, name, cpu)
        self._primed = False

    def cpu_percent(self, interval=None) -> float:
        if not self._primed:
            self._primed = True
            return 0.0
        return self.cpu


def _fake_process_table(monkeypatch, procs) -> None:
    def process_iter(attrs=None):
        for proc in procs:
            if attrs is not None:
                proc.info = {"pid": proc.pid, "name": proc.name, "cpu_percent": proc.cpu_percent(None)}
            yield proc

    monkeypatch.setattr(sources.psutil, "process_iter", process_iter)
    monkeypatch.setattr(
        sources.psutil,
        "Process",
        lambda pid: SimpleNamespace(children=lambda recursive=False: [SimpleNamespace(pid=4242)]),
    )


def test_processes_ranked_and_self_excluded(monkeypatch) -> None:
    own = os.getpid()
    procs = [
        _FakeProc(10, "idle-daemon", 0.0),
        _FakeProc(11, "firefox", 35.5),
        _FakeProc(own, "python3", 99.0),
        _FakeProc(4242, "sensors", 50.0),
        _FakeProc(12, "Xorg", 12.0),
        _FakeProc(13, "sensors", 80.0),
    ]
    _fake_process_table(monkeypatch, procs)

    reading = ProcessSource(count=2).read()
    assert reading.raw == ("firefox", "Xorg")


def test_first_read_ranks_by_cpu_share(monkeypatch) -> None:
    procs = [
        _FreshProc(1, "systemd", 0.1),
        _FreshProc(2, "kthreadd", 0.0),
        _FreshProc(300, "Xorg", 4.0),
        _FreshProc(900, "busy-loop", 100.0),
    ]
    _fake_process_table(monkeypatch, procs)

    reading = ProcessSource(count=3).read()
    assert reading.raw == ("busy-loop", "Xorg", "systemd")


def test_build_sources_order(tmp_path: Path) -> None:
    kinds = [s.kind for s in build_sources("BAT0", power_supply_root=tmp_path, run=_runner(""))]
    assert kinds == list(METRIC_KINDS)
    assert kinds == ["battery", "power", "cpu_load", "cpu_clock", "temperature", "processes"]
