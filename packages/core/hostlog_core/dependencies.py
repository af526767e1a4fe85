"""Startup check for external tools the metric sources shell out to."""

from __future__ import annotations

import shutil
from collections.abc import Callable


REQUIRED_TOOLS: dict[str, str] = {
    "sensors": "lm-sensors",
}


def missing_tools(which: Callable[[str], str | None] = shutil.which) -> dict[str, str]:
    return {tool: package for tool, package in REQUIRED_TOOLS.items() if which(tool) is None}
