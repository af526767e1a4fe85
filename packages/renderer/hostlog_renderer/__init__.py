"""Chart rendering for hostlog sample logs."""

from .chart import ChartRenderer, Series, load_series
from .themes import DEFAULT_THEME_NAME, ChartTheme, get_theme

__all__ = [
    "ChartRenderer",
    "ChartTheme",
    "DEFAULT_THEME_NAME",
    "Series",
    "get_theme",
    "load_series",
]
