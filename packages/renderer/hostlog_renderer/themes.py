"""Built-in chart themes."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_THEME_NAME = "Neon Slate"


@dataclass(frozen=True)
class ChartTheme:
    name: str
    background: str
    panel_bg: str
    grid: str
    text_primary: str
    text_secondary: str
    series: tuple[str, ...]


THEMES: dict[str, ChartTheme] = {
    "Neon Slate": ChartTheme(
        name="Neon Slate",
        background="#0A0F1D",
        panel_bg="#1A253F",
        grid="#2C3A5C",
        text_primary="#F4F7FF",
        text_secondary="#A9B5D1",
        series=("#8CFFB5", "#35D9FF", "#FFB347", "#FF6B8B"),
    ),
    "Paper": ChartTheme(
        name="Paper",
        background="#FFFFFF",
        panel_bg="#F4F6FA",
        grid="#D5DBE6",
        text_primary="#1B2333",
        text_secondary="#5B6478",
        series=("#2E9E5B", "#1F77B4", "#E07B00", "#C8324B"),
    ),
}


def get_theme(name: str | None) -> ChartTheme:
    if not name:
        return THEMES[DEFAULT_THEME_NAME]
    return THEMES.get(name, THEMES[DEFAULT_THEME_NAME])


def hex_rgb(value: str) -> tuple[int, int, int]:
    return tuple(int(value[i : i + 2], 16) for i in (1, 3, 5))  # type: ignore[return-value]
