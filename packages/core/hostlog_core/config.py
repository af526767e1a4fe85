"""Sampler settings: defaults file, interval parsing and resolved config."""

from __future__ import annotations

import json
import os
import platform
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


DEFAULT_LOG_FILE = "sys-log.csv"
DEFAULT_INTERVAL = "60s"
DEFAULT_BATTERY = "BAT0"
DEFAULT_POWER_SUPPLY_ROOT = "/sys/class/power_supply"

_INTERVAL_RE = re.compile(r"^\s*(?P<value>\d+(?:\.\d+)?)\s*(?P<unit>[smhd]?)\s*$")
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


@dataclass
class Defaults:
    log_file: str = DEFAULT_LOG_FILE
    interval: str = DEFAULT_INTERVAL
    battery: str = DEFAULT_BATTERY
    plot: bool = False
    power_supply_root: str = DEFAULT_POWER_SUPPLY_ROOT


@dataclass(frozen=True)
class SamplerConfig:
    log_file: Path = Path(DEFAULT_LOG_FILE)
    interval_s: float = 60.0
    interval_text: str = DEFAULT_INTERVAL
    battery: str = DEFAULT_BATTERY
    plot: bool = False
    power_supply_root: Path = field(default=Path(DEFAULT_POWER_SUPPLY_ROOT))


def parse_interval(text: str) -> float:
    """Seconds for ``"90"``, ``"30s"``, ``"5m"``, ``"2h"`` or ``"1d"``."""
    match = _INTERVAL_RE.match(str(text))
    if not match:
        raise ValueError(f"invalid interval '{text}' (expected a number with optional s/m/h/d suffix)")
    return float(match.group("value")) * _UNIT_SECONDS[match.group("unit")]


def config_path() -> Path:
    if platform.system() == "Darwin":
        return Path.home() / "Library" / "Application Support" / "hostlog" / "config.json"
    base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return base / "hostlog" / "config.json"


def _merge(raw: dict[str, Any]) -> Defaults:
    defaults = Defaults()
    for k, v in raw.items():
        if hasattr(defaults, k):
            setattr(defaults, k, v)
    return defaults


def _normalize(defaults: Defaults) -> None:
    if not isinstance(defaults.log_file, str) or not defaults.log_file.strip():
        defaults.log_file = DEFAULT_LOG_FILE
    if not isinstance(defaults.battery, str) or not defaults.battery.strip():
        defaults.battery = DEFAULT_BATTERY
    try:
        parse_interval(defaults.interval)
    except ValueError:
        defaults.interval = DEFAULT_INTERVAL
    defaults.interval = str(defaults.interval)
    defaults.plot = bool(defaults.plot)
    if not isinstance(defaults.power_supply_root, str) or not defaults.power_supply_root:
        defaults.power_supply_root = DEFAULT_POWER_SUPPLY_ROOT


def load_defaults(path: Path | None = None) -> Defaults:
    path = path or config_path()
    if not path.exists():
        return Defaults()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        return Defaults()
    if not isinstance(raw, dict):
        return Defaults()

    defaults = _merge(raw)
    _normalize(defaults)
    return defaults


def build_config(
    defaults: Defaults,
    log_file: str | None = None,
    interval: str | None = None,
    battery: str | None = None,
    plot: bool | None = None,
) -> SamplerConfig:
    interval_text = interval if interval is not None else defaults.interval
    return SamplerConfig(
        log_file=Path(log_file if log_file is not None else defaults.log_file).expanduser(),
        interval_s=parse_interval(interval_text),
        interval_text=interval_text,
        battery=(battery if battery is not None else defaults.battery),
        plot=(defaults.plot if plot is None else plot),
        power_supply_root=Path(defaults.power_supply_root),
    )
