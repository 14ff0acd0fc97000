"""Command-line interface for filetail."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import os
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any, TextIO

from rich.console import Console

from filetail.config.schema import LinesConfig, LoggingConfig, Settings, WatchConfig
from filetail.errors import ConfigError, TailError
from filetail.logging import get_logger, setup_logging
from filetail.tailing.pipeline import BackpressureStrategy
from filetail.watching.events import ChangeKind, parse_kinds

console = Console(stderr=True)
log = get_logger("cli")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="filetail",
        description="Follow a growing file using native change notifications",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be repeated)",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Settings file (merged over system/user/project settings)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    tail_parser = subparsers.add_parser("tail", help="Print content appended to a file")
    tail_parser.add_argument("path", type=Path, help="File to follow")
    tail_parser.add_argument(
        "--bytes",
        action="store_true",
        help="Write raw chunks instead of decoded lines",
    )
    start = tail_parser.add_mutually_exclusive_group()
    start.add_argument(
        "--from-start",
        action="store_true",
        help="Start at the beginning of the file (default: current end)",
    )
    start.add_argument("--position", type=int, help="Start at this byte offset")
    tail_parser.add_argument("--chunk-size", type=int, help="Max bytes per read")
    tail_parser.add_argument("--encoding", help="Text encoding (default: utf-8)")
    tail_parser.add_argument(
        "--backpressure",
        choices=[s.value for s in BackpressureStrategy],
        help="Policy for triggers arriving while output is blocked",
    )
    tail_parser.add_argument("--sample-window", type=float, help="Burst sampling window (seconds)")
    tail_parser.add_argument(
        "--every",
        type=float,
        metavar="SECONDS",
        help="Check the file on a timer instead of using change notifications",
    )
    tail_parser.add_argument(
        "--timeout",
        type=float,
        metavar="SECONDS",
        help="Stop after this many seconds",
    )
    _add_watch_arguments(tail_parser)

    events_parser = subparsers.add_parser("events", help="Print change notifications for a path")
    events_parser.add_argument("path", type=Path, help="File or directory to watch")
    events_parser.add_argument(
        "--kinds",
        nargs="+",
        choices=[k.value for k in ChangeKind],
        help="Notification kinds to report (default: all)",
    )
    events_parser.add_argument(
        "--timeout",
        type=float,
        metavar="SECONDS",
        help="Stop after this many seconds",
    )
    _add_watch_arguments(events_parser)

    return parser


def _add_watch_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--poll-interval", type=float, help="Seconds between polls")
    parser.add_argument(
        "--blocking",
        action="store_true",
        help="Wait for notifications on a dedicated thread instead of polling",
    )
    parser.add_argument(
        "--polling-observer",
        action="store_true",
        help="Detect changes by stat polling (for network filesystems)",
    )


def _logging_config(settings: Settings, parsed: argparse.Namespace) -> LoggingConfig:
    config = settings.logging
    if parsed.quiet:
        return dataclasses.replace(config, verbose=0)
    if parsed.verbose:
        return dataclasses.replace(config, verbose=min(2 + parsed.verbose, 4))
    return config


def _watch_overrides(parsed: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if parsed.poll_interval is not None:
        overrides["poll_interval"] = parsed.poll_interval
    if parsed.blocking:
        overrides["blocking"] = True
    if parsed.polling_observer:
        overrides["use_polling_observer"] = True
    return overrides


def build_lines_config(settings: Settings, parsed: argparse.Namespace) -> LinesConfig:
    """Apply command-line options on top of the loaded settings."""
    overrides = _watch_overrides(parsed)
    if parsed.from_start:
        overrides["start_position"] = 0
    elif parsed.position is not None:
        overrides["start_position"] = parsed.position
    else:
        overrides["start_position"] = _current_length(parsed.path)
    if parsed.chunk_size is not None:
        overrides["chunk_size"] = parsed.chunk_size
    if parsed.encoding:
        overrides["encoding"] = parsed.encoding
    if parsed.backpressure:
        overrides["backpressure"] = parsed.backpressure
    if parsed.sample_window is not None:
        overrides["sample_window"] = parsed.sample_window
    return dataclasses.replace(settings.lines, **overrides)


def build_watch_config(settings: Settings, parsed: argparse.Namespace) -> WatchConfig:
    """Watch options for the ``events`` command."""
    base = settings.tail
    values = {f.name: getattr(base, f.name) for f in dataclasses.fields(WatchConfig)}
    values.update(_watch_overrides(parsed))
    if parsed.kinds:
        values["kinds"] = parse_kinds(parsed.kinds)
    return WatchConfig(**values)


def _current_length(path: Path) -> int:
    try:
        return os.stat(path).st_size
    except FileNotFoundError:
        return 0


async def _run_tail(path: Path, config: LinesConfig, raw: bool, every: float | None) -> None:
    from filetail.api import tail_bytes, tail_lines
    from filetail.tailing.triggers import interval

    events = interval(every) if every else None
    if raw:
        out = sys.stdout.buffer
        async for chunk in tail_bytes(path, config, events=events):
            out.write(chunk)
            out.flush()
    else:
        async for line in tail_lines(path, config, events=events):
            print(line, flush=True)


async def _run_events(path: Path, config: WatchConfig, out: TextIO) -> None:
    from filetail.api import watch

    async for notification in watch(path, config):
        print(notification, file=out, flush=True)


async def _with_timeout(coro: Any, timeout: float | None) -> None:
    if timeout is None:
        await coro
        return
    try:
        await asyncio.wait_for(coro, timeout)
    except asyncio.TimeoutError:
        log.debug("Stopped after %.1fs timeout", timeout)


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return 1

    from filetail.config.loader import load_settings

    try:
        settings = load_settings(project_root=Path.cwd(), config_file=parsed.config)
        setup_logging(_logging_config(settings, parsed))
        if parsed.command == "tail":
            lines_config = build_lines_config(settings, parsed)
            job = _run_tail(parsed.path, lines_config, parsed.bytes, parsed.every)
        else:
            watch_config = build_watch_config(settings, parsed)
            job = _run_events(parsed.path, watch_config, sys.stdout)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 2

    if not parsed.quiet:
        console.print(f"[dim]Following {parsed.path} (Ctrl+C to stop)[/dim]")

    try:
        asyncio.run(_with_timeout(job, parsed.timeout))
    except KeyboardInterrupt:
        return 0
    except TailError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    return 0
