"""Command-line entry point for the file monitor."""
from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from pathlib import Path
from typing import List, Optional, TextIO

from .config import DEFAULT_PERIOD, ConfigError, MonitorConfig, TimeUnit, load_config
from .errors import MonitorError
from .monitor import FileMonitor
from .nodes import EventType, MonitorNode
from .notifier import ChangeNotifier, LoggingNotifier


class JsonLinesNotifier(ChangeNotifier):
    """Print one JSON object per change."""

    def __init__(self, stream: TextIO):
        self._stream = stream
        self._lock = threading.Lock()

    def on_created(self, *nodes: MonitorNode) -> None:
        for node in nodes:
            self._emit({"event": EventType.CREATED.value, **node.to_dict()})

    def on_updated(self, *nodes: MonitorNode) -> None:
        for node in nodes:
            self._emit({"event": EventType.UPDATED.value, **node.to_dict()})

    def on_deleted(self, *paths: str) -> None:
        self._emit({"event": EventType.DELETED.value, "paths": list(paths)})

    def _emit(self, payload: dict) -> None:
        with self._lock:
            self._stream.write(json.dumps(payload, sort_keys=True) + "\n")
            self._stream.flush()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tamperwatch",
        description="Watch a file or directory tree for external modification",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--config", help="Path to a YAML configuration file")
    source.add_argument("--entry", help="File or directory to watch")
    parser.add_argument(
        "--period",
        type=float,
        default=None,
        help=f"Scan period (default: {DEFAULT_PERIOD})",
    )
    parser.add_argument(
        "--time-unit",
        choices=[unit.value for unit in TimeUnit],
        default=None,
        help="Unit of --period (default: milliseconds)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument("--once", action="store_true", help="Run a single scan and exit")
    parser.add_argument("--json", action="store_true", help="Print changes as JSON lines")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        if args.config:
            app_config = load_config(Path(args.config))
            monitor_config = app_config.monitor
            log_level = args.log_level or app_config.log_level
        else:
            monitor_config = MonitorConfig(entry_path=Path(args.entry))
            log_level = args.log_level or "INFO"
    except ConfigError as exc:
        logging.error("%s", exc)
        return 2

    if args.period is not None:
        monitor_config.period = args.period
    if args.time_unit is not None:
        monitor_config.time_unit = TimeUnit(args.time_unit)

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    notifier: ChangeNotifier = JsonLinesNotifier(sys.stdout) if args.json else LoggingNotifier()
    try:
        monitor = FileMonitor.from_config(monitor_config, notifier)
        monitor.set_entry(monitor_config.entry_path)
    except MonitorError as exc:
        logging.error("%s", exc)
        return 2

    if args.once:
        result = monitor.check_and_report()
        return 0 if result.ok else 1

    monitor.start()
    try:
        while monitor.is_running:
            monitor.join(timeout=1.0)
    except KeyboardInterrupt:
        logging.info("Monitor interrupted by user")
    finally:
        monitor.stop()
        stats = monitor.stats
        logging.info(
            "Monitor stopped after %s passes, %s events, %s failures",
            stats.passes,
            stats.events_emitted,
            stats.failures,
        )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
