"""Operator-facing terminal output with ANSI colour markers."""

from __future__ import annotations

import sys
from typing import TextIO

CSI = "\033["
CLR_RESET = f"{CSI}0m"
CLR_RED = f"{CSI}31m"
CLR_YEL = f"{CSI}33m"
CLR_GRN = f"{CSI}32m"


def _colour_enabled(stream: TextIO) -> bool:
    return hasattr(stream, "isatty") and stream.isatty()


def paint(text: str, colour: str, stream: TextIO | None = None) -> str:
    stream = stream or sys.stdout
    if not _colour_enabled(stream):
        return text
    return f"{colour}{text}{CLR_RESET}"


def echo(text: str = "", stream: TextIO | None = None) -> None:
    stream = stream or sys.stdout
    print(text, file=stream, flush=True)


def error(text: str) -> None:
    echo(paint(f"Error: {text}", CLR_RED, sys.stderr), sys.stderr)


def warning(text: str) -> None:
    echo(paint(f"Warning: {text}", CLR_YEL, sys.stderr), sys.stderr)


def info(text: str) -> None:
    echo(paint(text, CLR_GRN))
