"""Core sampler services: configuration, log storage, scheduling and diagnostics logging."""

from .config import Defaults, SamplerConfig, build_config, load_defaults, parse_interval
from .dependencies import REQUIRED_TOOLS, missing_tools
from .errors import BatteryNotFoundError, HostlogError, LogStoreError
from .log_store import HEADER, HEADER_FIELDS, LogStore, format_row
from .scheduler import SamplingScheduler, SchedulerState, compute_sleep

__all__ = [
    "BatteryNotFoundError",
    "Defaults",
    "HEADER",
    "HEADER_FIELDS",
    "HostlogError",
    "LogStore",
    "LogStoreError",
    "REQUIRED_TOOLS",
    "SamplerConfig",
    "SamplingScheduler",
    "SchedulerState",
    "build_config",
    "compute_sleep",
    "format_row",
    "load_defaults",
    "missing_tools",
    "parse_interval",
]
