"""Fixed-cadence sampling loop with sleep compensation and optional rendering."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from datetime import datetime
from enum import Enum
from typing import Protocol

from hostlog_telemetry import BatterySource, MetricSource, Sample, TemperatureSource, available_batteries, normalize
from hostlog_telemetry.sources import build_sources

from . import console
from .config import SamplerConfig
from .errors import BatteryNotFoundError, LogStoreError
from .log_store import LogStore


logger = logging.getLogger("hostlog.scheduler")


class SchedulerState(str, Enum):
    INITIALIZING = "Initializing"
    SAMPLING = "Sampling"
    PUBLISHING = "Publishing"
    SLEEPING = "Sleeping"
    RENDERING = "Rendering"
    STOPPED = "Stopped"


class Renderer(Protocol):
    def render(self, log_path): ...


def compute_sleep(interval_s: float, cost_s: float) -> float:
    return max(0.0, interval_s - cost_s)


def _local_now() -> datetime:
    return datetime.now().astimezone()


class SamplingScheduler:
    def __init__(
        self,
        config: SamplerConfig,
        sources: Sequence[MetricSource] | None = None,
        store: LogStore | None = None,
        renderer: Renderer | None = None,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] = _local_now,
        out: Callable[[str], None] = console.echo,
    ) -> None:
        self.config = config
        self.sources = list(sources) if sources is not None else build_sources(config.battery, config.power_supply_root)
        self.store = store or LogStore(config.log_file)
        self.renderer = renderer
        self._monotonic = monotonic
        self._sleep = sleep
        self._now = now
        self._out = out

        self.state = SchedulerState.INITIALIZING
        self.cycles = 0
        self.last_cost_s = 0.0
        self.last_sample: Sample | None = None
        self._header_shown = False
        self._initialized = False
        self._stop_requested = False

    def _find(self, source_type: type) -> MetricSource | None:
        return next((s for s in self.sources if isinstance(s, source_type)), None)

    def stop(self) -> None:
        self._stop_requested = True

    def initialize(self) -> None:
        self.state = SchedulerState.INITIALIZING
        battery = self._find(BatterySource)
        if battery is not None and not battery.exists():
            raise BatteryNotFoundError(self.config.battery, available_batteries(battery.root))

        temperature = self._find(TemperatureSource)
        if temperature is not None and not temperature.has_device_sensor():
            console.warning(
                f"no temperature sensor found for {self.config.battery}, falling back to a CPU sensor if present"
            )
            logger.info("no device temperature sensor", extra={"event": "temperature_fallback"})

        self.store.ensure_header()
        self._header_shown = False
        self._out(
            f"Logging to {self.config.log_file} every {self.config.interval_text} "
            f"(battery {self.config.battery}, plotting {'on' if self.renderer is not None else 'off'})"
        )
        logger.info(
            f"sampler started file={self.config.log_file} interval_s={self.config.interval_s}",
            extra={"event": "sampler_started"},
        )
        self._initialized = True

    def sample_once(self) -> Sample:
        self.state = SchedulerState.SAMPLING
        timestamp = self._now()
        readings = {source.kind: source.read() for source in self.sources}
        return normalize(readings, timestamp)

    def publish(self, sample: Sample) -> bool:
        self.state = SchedulerState.PUBLISHING
        try:
            self.store.append(sample)
        except LogStoreError as exc:
            console.error(str(exc))
            logger.error(str(exc), extra={"event": "append_failed"})
            return False

        self.last_sample = sample
        header, row = self.store.summary_row()
        if not self._header_shown:
            self._out(header)
            self._header_shown = True
        if row is not None:
            self._out(row)
        return True

    def _render(self) -> None:
        self.state = SchedulerState.RENDERING
        try:
            self.renderer.render(self.store.path)
        except Exception as exc:
            logger.debug(f"render skipped: {exc}", extra={"event": "render_failed"})

    def run_cycle(self) -> Sample:
        start = self._monotonic()
        sample = self.sample_once()
        self.publish(sample)
        self.last_cost_s = self._monotonic() - start

        self.state = SchedulerState.SLEEPING
        self._sleep(compute_sleep(self.config.interval_s, self.last_cost_s))

        if self.renderer is not None:
            self._render()
        self.cycles += 1
        logger.info(
            "cycle complete",
            extra={"event": "cycle_complete", "cycle": self.cycles, "cost_s": round(self.last_cost_s, 3)},
        )
        return sample

    def run(self, max_cycles: int | None = None) -> None:
        if not self._initialized:
            self.initialize()
        done = 0
        while not self._stop_requested and (max_cycles is None or done < max_cycles):
            self.run_cycle()
            done += 1
        self.state = SchedulerState.STOPPED
