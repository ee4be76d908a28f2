"""Command-line decoder for scope telemetry streamed over a serial link."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import IO, Callable, Sequence

from ..config import LOG_LEVELS, Settings, SettingsError, load_settings
from ..objects.registry import view_object
from ..objects.scope import ScopeView
from .reader import LineReader
from .session import DecoderSession
from .sources import ByteSource, DemoSource, ReplaySource, SerialByteSource, TransportError

LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Return parsed arguments for the decoder CLI."""

    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a TOML file with serial and decoder settings",
    )
    parser.add_argument("--port", default=None, help="Serial device to open")
    parser.add_argument("--baud", type=int, default=None, help="Serial baud rate")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds a serial read may block before reporting no data",
    )
    source_group = parser.add_mutually_exclusive_group()
    source_group.add_argument(
        "--replay",
        dest="replay_path",
        type=Path,
        default=None,
        help="Decode a capture file of raw device bytes instead of a port",
    )
    source_group.add_argument(
        "--demo",
        action="store_true",
        help="Decode a synthetic sine and sawtooth stream",
    )
    parser.add_argument(
        "--demo-rate",
        type=float,
        default=None,
        help="Rows per second produced by --demo (default: 60)",
    )
    parser.add_argument(
        "--queue-limit",
        type=int,
        default=None,
        help="Maximum queued lines before new lines are dropped (0 = unbounded)",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds between queue drains",
    )
    parser.add_argument(
        "--summary-interval",
        type=float,
        default=None,
        help="Seconds between scope summaries printed to stdout",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=None,
        help="Logging threshold (default: WARNING)",
    )
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    """Merge the optional settings file with command-line overrides."""

    settings = load_settings(args.config) if args.config is not None else Settings()
    return settings.with_overrides(
        port=args.port,
        baud=args.baud,
        timeout=args.timeout,
        queue_limit=args.queue_limit,
        poll_interval=args.poll_interval,
        summary_interval=args.summary_interval,
        demo_rate=args.demo_rate,
        log_level=args.log_level,
        replay_path=args.replay_path,
    )


def open_source(args: argparse.Namespace, settings: Settings) -> ByteSource:
    """Open the byte source selected by ``args`` and ``settings``."""

    if args.demo:
        return DemoSource(rate=settings.decoder.demo_rate)
    if settings.replay_path is not None:
        return ReplaySource(settings.replay_path)
    return SerialByteSource.open(settings.serial)


def format_scope_summary(view: ScopeView) -> str:
    """Render a one-line description of ``view``."""

    if not view.signals:
        return f"{view.name}: no signals"
    parts = []
    for signal in view.signals:
        latest = f"{signal.history[-1]:g}" if signal.history else "-"
        parts.append(f"{signal.name}={latest} ({len(signal.history)})")
    return f"{view.name}: " + " ".join(parts)


def write_summary(session: DecoderSession, output_stream: IO[str]) -> None:
    for obj in session.registry.objects.values():
        output_stream.write(format_scope_summary(view_object(obj)) + "\n")
    output_stream.flush()


def drive_decoder(
    session: DecoderSession,
    reader: LineReader,
    *,
    poll_interval: float,
    summary_interval: float,
    duration: float | None = None,
    output_stream: IO[str] = sys.stdout,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], object] = time.sleep,
    join_timeout: float = 5.0,
) -> int:
    """Poll ``session`` until the reader finishes or ``duration`` elapses.

    Returns the number of lines routed. ``reader`` is stopped and joined
    before the final drain and summary.
    """

    started = clock()
    next_summary = started + summary_interval
    routed = 0
    try:
        while True:
            routed += session.poll()
            now = clock()
            if now >= next_summary:
                write_summary(session, output_stream)
                next_summary = now + summary_interval
            if duration is not None and now - started >= duration:
                break
            if not reader.is_alive() and session.lines.empty():
                break
            sleep(poll_interval)
    except KeyboardInterrupt:  # pragma: no cover - user interrupt
        output_stream.write("\n")
    finally:
        reader.stop()
        if reader.is_alive():
            reader.join(timeout=join_timeout)
        routed += session.poll()
    write_summary(session, output_stream)
    return routed


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the decoder CLI."""

    args = parse_args(argv)
    try:
        settings = build_settings(args)
    except (OSError, SettingsError) as exc:
        print(f"serialscope: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(level=getattr(logging, settings.log_level), format=LOG_FORMAT)

    try:
        source = open_source(args, settings)
    except TransportError as exc:
        print(f"serialscope: {exc}", file=sys.stderr)
        return 1

    session = DecoderSession(queue_limit=settings.decoder.queue_limit)
    reader = LineReader(
        source,
        session.lines,
        read_size=settings.serial.read_size,
        retry_delay=settings.serial.retry_delay,
    )
    reader.start()
    try:
        routed = drive_decoder(
            session,
            reader,
            poll_interval=settings.decoder.poll_interval,
            summary_interval=settings.decoder.summary_interval,
            duration=args.duration,
            output_stream=sys.stdout,
            join_timeout=settings.serial.timeout + settings.serial.retry_delay,
        )
    finally:
        source.close()
    LOGGER.info(
        "routed %d lines (%d dropped, %d read errors)",
        routed,
        session.registry.dropped + reader.dropped_lines,
        reader.read_errors,
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - exercised via python -m
    raise SystemExit(main())


__all__ = [
    "build_settings",
    "drive_decoder",
    "format_scope_summary",
    "main",
    "open_source",
    "parse_args",
    "write_summary",
]
