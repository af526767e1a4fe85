"""Command line entrypoint: resolve settings, check tools, run the sampler."""

from __future__ import annotations

import argparse
import signal
from collections.abc import Sequence

from hostlog_core import (
    BatteryNotFoundError,
    Defaults,
    LogStoreError,
    SamplerConfig,
    SamplingScheduler,
    build_config,
    load_defaults,
    missing_tools,
)
from hostlog_core import console
from hostlog_core.logging_setup import configure_logging, get_logger, install_crash_hooks


EPILOG = """\
Examples:
  hostlog -f power.csv -i 30s -b BAT1 -p
  hostlog power.csv 5m BAT0

Positional FILE INTERVAL BATTERY are used only when no flags are given.
INTERVAL takes an optional s/m/h/d suffix (seconds by default)."""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hostlog",
        description="Periodically log battery, power, CPU and temperature readings.",
        epilog=EPILOG,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("-f", dest="log_file", metavar="FILE", default=None, help="Log file path (default: sys-log.csv)")
    parser.add_argument("-i", dest="interval", metavar="INTERVAL", default=None, help="Sampling interval (default: 60s)")
    parser.add_argument("-b", dest="battery", metavar="BATTERY", default=None, help="Battery identifier (default: BAT0)")
    parser.add_argument("-p", dest="plot", action="store_true", default=None, help="Render a chart after every sample")
    parser.add_argument("positional", nargs="*", metavar="ARG", help="FILE INTERVAL BATTERY")
    return parser


def resolve_config(argv: Sequence[str] | None, defaults: Defaults) -> tuple[SamplerConfig, list[str]]:
    parser = build_parser()
    args = parser.parse_intermixed_args(argv)
    warnings: list[str] = []

    if len(args.positional) > 3:
        parser.error("at most three positional arguments (FILE INTERVAL BATTERY) are accepted")

    flagged = any(v is not None for v in (args.log_file, args.interval, args.battery, args.plot))
    log_file, interval, battery = args.log_file, args.interval, args.battery
    if args.positional and flagged:
        warnings.append(f"ignoring positional arguments when flags are used: {' '.join(args.positional)}")
    elif args.positional:
        padded = list(args.positional) + [None] * (3 - len(args.positional))
        log_file, interval, battery = padded

    try:
        config = build_config(defaults, log_file=log_file, interval=interval, battery=battery, plot=args.plot)
    except ValueError as exc:
        parser.error(str(exc))
    return config, warnings


def _raise_interrupt(_signum, _frame) -> None:
    raise KeyboardInterrupt


def _build_renderer(config: SamplerConfig):
    if not config.plot:
        return None
    from hostlog_renderer import ChartRenderer

    return ChartRenderer()


def main(argv: Sequence[str] | None = None) -> int:
    configure_logging()
    install_crash_hooks()
    logger = get_logger()

    config, warnings = resolve_config(argv, load_defaults())
    for text in warnings:
        console.warning(text)

    missing = missing_tools()
    if missing:
        console.error("missing required tools:")
        for tool, package in sorted(missing.items()):
            console.echo(f"  {tool:<10} install package '{package}'")
        logger.error(f"missing tools: {', '.join(sorted(missing))}", extra={"event": "missing_tools"})
        return 1

    scheduler = SamplingScheduler(config, renderer=_build_renderer(config))
    try:
        scheduler.initialize()
    except BatteryNotFoundError as exc:
        console.info(f"Battery '{exc.battery}' does not exist.")
        console.echo("Valid identifiers: " + (", ".join(exc.available) or "none found"))
        logger.info(str(exc), extra={"event": "battery_not_found"})
        return 0
    except LogStoreError as exc:
        console.error(str(exc))
        logger.error(str(exc), extra={"event": "log_not_writable"})
        return 1

    signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        scheduler.run()
    except KeyboardInterrupt:
        console.echo()
        logger.info(f"sampler stopped after {scheduler.cycles} cycles", extra={"event": "sampler_stopped"})
        return 130
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
