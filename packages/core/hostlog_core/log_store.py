"""Append-only `;`-delimited sample log."""

from __future__ import annotations

from collections import deque
from pathlib import Path

from hostlog_telemetry.models import NA, Sample

from .errors import LogStoreError


DELIMITER = ";"
HEADER_FIELDS = (
    "timestamp",
    "battery_percent",
    "power_draw_w",
    "cpu_util_percent",
    "cpu_clock",
    "temperature_c",
    "top_processes",
)
HEADER = DELIMITER.join(HEADER_FIELDS)


def _field(value: object) -> str:
    if value is None:
        return NA
    if isinstance(value, float):
        return f"{value:.12g}"
    text = str(value).replace(DELIMITER, "").replace("\n", " ").strip()
    return text or NA


def format_row(sample: Sample) -> str:
    fields = (
        sample.timestamp.isoformat(timespec="seconds"),
        sample.battery_percent,
        sample.power_draw_w,
        sample.cpu_util_percent,
        sample.cpu_clock,
        sample.temperature_c,
        ",".join(sample.top_processes) if sample.top_processes else None,
    )
    return DELIMITER.join(_field(v) for v in fields)


def align(rows: list[list[str]]) -> list[str]:
    widths = [max(len(row[i]) for row in rows if i < len(row)) for i in range(max(len(r) for r in rows))]
    return ["  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip() for row in rows]


class LogStore:
    """Owns the sample log; rows are only ever appended."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def ensure_header(self) -> bool:
        """Create the log with its header row; returns True when it was created."""
        try:
            if self.path.exists() and self.path.stat().st_size > 0:
                return False
            with self.path.open("a", encoding="utf-8") as f:
                f.write(HEADER + "\n")
        except OSError as exc:
            raise LogStoreError(f"cannot write log file {self.path}: {exc}") from exc
        return True

    def append(self, sample: Sample) -> str:
        row = format_row(sample)
        try:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(row + "\n")
        except OSError as exc:
            raise LogStoreError(f"cannot append to {self.path}: {exc}") from exc
        return row

    def _tail(self) -> list[str]:
        with self.path.open("r", encoding="utf-8") as f:
            return [line.rstrip("\n") for line in deque(f, maxlen=2)]

    def latest_row(self) -> list[str] | None:
        if not self.path.exists():
            return None
        tail = [line for line in self._tail() if line and line != HEADER]
        if not tail:
            return None
        return tail[-1].split(DELIMITER)

    def summary_row(self) -> tuple[str, str | None]:
        """Aligned header and most recent data row for console display."""
        header = list(HEADER_FIELDS)
        latest = self.latest_row()
        if latest is None:
            return align([header])[0], None
        header_line, row_line = align([header, latest])
        return header_line, row_line
