"""File monitor combining the scan engine with a periodic scheduler."""
from __future__ import annotations

import logging
import os
from typing import Optional

from .config import DEFAULT_INITIAL_DELAY_MS, DEFAULT_PERIOD, MonitorConfig, TimeUnit
from .engine import DEFAULT_MAX_DEPTH, ErrorObserver, ScanEngine, ScanResult, ScanStats
from .errors import InvalidArgumentError
from .nodes import MonitorNode, PathLike, absolute_path
from .notifier import ChangeNotifier
from .scheduler import PeriodicScheduler, SchedulerState
from .store import SnapshotStore

logger = logging.getLogger(__name__)


class FileMonitor:
    """Polls an entry path and reports changes to a notifier.

    Construction does not register anything; call :meth:`set_entry` or
    :meth:`add_file_under_monitor` to take a baseline, otherwise the first
    pass reports every existing entry as created.
    """

    def __init__(
        self,
        entry: Optional[PathLike] = None,
        *,
        period: float = DEFAULT_PERIOD,
        time_unit: TimeUnit = TimeUnit.MILLISECONDS,
        initial_delay_ms: int = DEFAULT_INITIAL_DELAY_MS,
        notifier: Optional[ChangeNotifier] = None,
        store: Optional[SnapshotStore] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        error_observer: Optional[ErrorObserver] = None,
    ):
        self._entry: Optional[str] = absolute_path(entry) if entry else None
        self._engine = ScanEngine(
            store,
            notifier,
            max_depth=max_depth,
            error_observer=error_observer,
        )
        self._scheduler = PeriodicScheduler(
            self.check_and_report,
            period=TimeUnit(time_unit).to_seconds(period),
            initial_delay=initial_delay_ms / 1000.0,
        )

    @classmethod
    def from_config(
        cls,
        config: MonitorConfig,
        notifier: Optional[ChangeNotifier] = None,
        **kwargs,
    ) -> "FileMonitor":
        return cls(
            config.entry_path,
            period=config.period,
            time_unit=config.time_unit,
            initial_delay_ms=config.initial_delay_ms,
            max_depth=config.max_depth,
            notifier=notifier,
            **kwargs,
        )

    @property
    def entry(self) -> Optional[str]:
        return self._entry

    @property
    def engine(self) -> ScanEngine:
        return self._engine

    @property
    def store(self) -> SnapshotStore:
        return self._engine.store

    @property
    def stats(self) -> ScanStats:
        return self._engine.stats

    @property
    def state(self) -> SchedulerState:
        return self._scheduler.state

    @property
    def is_running(self) -> bool:
        return self._scheduler.is_running

    def set_entry(self, entry: Optional[PathLike]) -> MonitorNode:
        """Point the monitor at ``entry`` and take a baseline of it."""

        if not entry:
            raise InvalidArgumentError("invalid entry")
        abs_entry = absolute_path(entry)
        if not os.path.exists(abs_entry):
            raise InvalidArgumentError(f"entry file must exist: {abs_entry}")
        self._entry = abs_entry
        logger.info("Monitoring %s", abs_entry)
        return self.add_file_under_monitor(abs_entry)

    def set_notifier(self, notifier: Optional[ChangeNotifier]) -> None:
        self._engine.notifier = notifier

    def add_file_under_monitor(self, path: PathLike) -> MonitorNode:
        return self._engine.register_root(path)

    def remove_file_from_monitor(self, path: Optional[PathLike]) -> Optional[MonitorNode]:
        return self._engine.unregister(path)

    def check_and_report(self) -> ScanResult:
        """Run one reconciliation pass over the entry."""

        if self._entry is None:
            raise InvalidArgumentError("no entry configured")
        return self._engine.reconcile(self._entry)

    def start(self) -> None:
        if self._entry is None:
            raise InvalidArgumentError("no entry configured")
        self._scheduler.start()

    def stop(self) -> None:
        self._scheduler.stop()

    def join(self, timeout: Optional[float] = None) -> bool:
        return self._scheduler.join(timeout)
