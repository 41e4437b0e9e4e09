"""Fixed-rate background scheduler for reconciliation passes."""
from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Callable, Optional

from .errors import InvalidArgumentError

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class PeriodicScheduler:
    """Runs ``task`` on a single worker thread at a fixed rate.

    The first run happens ``initial_delay`` seconds after :meth:`start`;
    later runs are spaced ``period`` seconds apart, measured from the start
    of the previous run. A run that overruns the period is followed
    immediately by the next one, never by a concurrent one.
    """

    def __init__(
        self,
        task: Callable[[], object],
        *,
        period: float,
        initial_delay: float = 1.0,
        name: str = "tamperwatch-scheduler",
    ):
        if period <= 0:
            raise InvalidArgumentError("period must be positive")
        if initial_delay < 0:
            raise InvalidArgumentError("initial_delay must not be negative")
        self._task = task
        self._period = period
        self._initial_delay = initial_delay
        self._name = name
        self._state = SchedulerState.STOPPED
        self._control_lock = threading.Lock()
        self._run_lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        self.runs = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is SchedulerState.RUNNING

    @property
    def period(self) -> float:
        return self._period

    def start(self) -> None:
        """Start the worker unless it is already running."""

        with self._control_lock:
            if self._state is SchedulerState.RUNNING:
                return
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._loop,
                args=(stop_event,),
                name=self._name,
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
            self._state = SchedulerState.RUNNING
            thread.start()
            logger.info(
                "Scheduler started: first run in %.3fs, then every %.3fs",
                self._initial_delay,
                self._period,
            )

    def stop(self) -> None:
        """Cancel future runs; a run already in progress is not waited for."""

        with self._control_lock:
            if self._state is SchedulerState.STOPPED:
                return
            if self._stop_event is not None:
                self._stop_event.set()
            self._stop_event = None
            self._state = SchedulerState.STOPPED
            logger.info("Scheduler stopped after %s runs", self.runs)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the most recent worker thread to exit.

        Returns True if no worker is alive afterwards.
        """

        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def _loop(self, stop_event: threading.Event) -> None:
        if stop_event.wait(self._initial_delay):
            return
        while not stop_event.is_set():
            started_at = time.monotonic()
            self._run_once(stop_event)
            self._sleep_until_next_cycle(started_at, stop_event)

    def _run_once(self, stop_event: threading.Event) -> None:
        with self._run_lock:
            if stop_event.is_set():
                return
            try:
                self._task()
            except Exception:
                logger.exception("Scheduled task failed; will retry next period")
            self.runs += 1

    def _sleep_until_next_cycle(self, started_at: float, stop_event: threading.Event) -> None:
        elapsed = time.monotonic() - started_at
        remaining = max(self._period - elapsed, 0.0)
        if remaining > 0:
            stop_event.wait(remaining)
