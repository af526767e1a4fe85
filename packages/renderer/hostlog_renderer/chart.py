"""Line chart of the sample log, one panel per numeric series."""

from __future__ import annotations

import csv
import os
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

from .themes import ChartTheme, get_theme, hex_rgb


@dataclass(frozen=True)
class Series:
    column: str
    title: str
    values: tuple[float | None, ...]


SERIES_COLUMNS = (
    ("battery_percent", "Battery %"),
    ("cpu_util_percent", "CPU %"),
    ("temperature_c", "Temperature °C"),
    ("power_draw_w", "Power W"),
)


def _to_float(value: str | None) -> float | None:
    if value is None or value == "NA" or value == "":
        return None
    try:
        return float(value)
    except ValueError:
        return None


def load_series(log_path: Path) -> tuple[list[str], list[Series]]:
    with Path(log_path).open("r", encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f, delimiter=";"))
    if not rows:
        raise ValueError(f"no samples in {log_path}")
    missing = [col for col, _ in SERIES_COLUMNS if col not in rows[0]]
    if missing:
        raise ValueError(f"log {log_path} is missing columns: {', '.join(missing)}")

    timestamps = [row.get("timestamp") or "" for row in rows]
    series = [Series(col, title, tuple(_to_float(row.get(col)) for row in rows)) for col, title in SERIES_COLUMNS]
    return timestamps, series


class ChartRenderer:
    """Draws the accumulated log as stacked line panels and saves a PNG beside it."""

    def __init__(self, width: int = 1200, height: int = 800, theme_name: str | None = None) -> None:
        self.width = width
        self.height = height
        self.theme = get_theme(theme_name)

    @staticmethod
    def chart_path(log_path: Path) -> Path:
        return Path(log_path).with_suffix(".png")

    def render(self, log_path: Path) -> Path:
        timestamps, series = load_series(log_path)
        image = self.render_image(timestamps, series)
        target = self.chart_path(log_path)
        tmp = target.with_name(f".{target.name}.tmp")
        image.save(tmp, format="PNG")
        os.replace(tmp, target)
        return target

    def render_image(self, timestamps: list[str], series: list[Series]) -> Image.Image:
        theme = self.theme
        image = Image.new("RGB", (self.width, self.height), hex_rgb(theme.background))
        draw = ImageDraw.Draw(image)

        top, bottom, left, right = 48, self.height - 40, 90, self.width - 24
        gap = 14
        panel_h = (bottom - top - gap * (len(series) - 1)) / max(len(series), 1)

        draw.text((left, 14), "hostlog", font=self._font(22), fill=hex_rgb(theme.text_primary))
        for i, s in enumerate(series):
            y0 = top + i * (panel_h + gap)
            colour = theme.series[i % len(theme.series)]
            self._draw_panel(draw, theme, (left, int(y0), right, int(y0 + panel_h)), s, colour)

        if timestamps:
            small = self._font(13)
            draw.text((left, bottom + 10), timestamps[0], font=small, fill=hex_rgb(theme.text_secondary))
            last = timestamps[-1]
            w = draw.textlength(last, font=small)
            draw.text((right - w, bottom + 10), last, font=small, fill=hex_rgb(theme.text_secondary))
        return image

    def _font(self, size: int):
        try:
            return ImageFont.truetype("DejaVuSans.ttf", size)
        except Exception:
            return ImageFont.load_default()

    def _draw_panel(
        self,
        draw: ImageDraw.ImageDraw,
        theme: ChartTheme,
        box: tuple[int, int, int, int],
        series: Series,
        colour: str,
    ) -> None:
        x0, y0, x1, y1 = box
        draw.rectangle(box, fill=hex_rgb(theme.panel_bg))
        small = self._font(13)
        draw.text((x0 + 8, y0 + 4), series.title, font=small, fill=hex_rgb(theme.text_primary))

        known = [v for v in series.values if v is not None]
        if not known:
            draw.text((x0 + 8, y0 + 22), "NA", font=small, fill=hex_rgb(theme.text_secondary))
            return

        lo, hi = min(known), max(known)
        if hi - lo < 1e-9:
            lo, hi = lo - 1.0, hi + 1.0
        for label, value in ((f"{hi:g}", hi), (f"{lo:g}", lo)):
            y = y1 - (value - lo) / (hi - lo) * (y1 - y0 - 24) - 4
            draw.line((x0, y, x1, y), fill=hex_rgb(theme.grid), width=1)
            w = draw.textlength(label, font=small)
            draw.text((x0 - w - 8, y - 8), label, font=small, fill=hex_rgb(theme.text_secondary))

        n = len(series.values)
        step = (x1 - x0) / max(n - 1, 1)
        segment: list[tuple[float, float]] = []
        for idx, value in enumerate(series.values):
            if value is None:
                self._flush(draw, segment, colour)
                segment = []
                continue
            x = x0 + idx * step
            y = y1 - (value - lo) / (hi - lo) * (y1 - y0 - 24) - 4
            segment.append((x, y))
        self._flush(draw, segment, colour)

    @staticmethod
    def _flush(draw: ImageDraw.ImageDraw, segment: list[tuple[float, float]], colour: str) -> None:
        if len(segment) > 1:
            draw.line(segment, fill=hex_rgb(colour), width=2)
        elif len(segment) == 1:
            x, y = segment[0]
            draw.ellipse((x - 2, y - 2, x + 2, y + 2), fill=hex_rgb(colour))
