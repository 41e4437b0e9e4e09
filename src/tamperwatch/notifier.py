"""Change notification interface and stock notifier implementations."""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, List, Optional, Tuple

from .nodes import EventType, MonitorNode

logger = logging.getLogger(__name__)

NodeCallback = Callable[..., None]


class ChangeNotifier:
    """Receives change events from the scan engine.

    Created and updated nodes arrive one call per node. Deletions arrive once
    per reconciliation pass, carrying every path removed in that pass.
    Subclasses override whichever hooks they care about.
    """

    def on_created(self, *nodes: MonitorNode) -> None:
        pass

    def on_updated(self, *nodes: MonitorNode) -> None:
        pass

    def on_deleted(self, *paths: str) -> None:
        pass


class LoggingNotifier(ChangeNotifier):
    """Write every change to a logger."""

    def __init__(self, level: int = logging.INFO, log: Optional[logging.Logger] = None):
        self._level = level
        self._logger = log or logger

    def on_created(self, *nodes: MonitorNode) -> None:
        for node in nodes:
            self._logger.log(self._level, "File %s was created (%s bytes)", node.path, node.size)

    def on_updated(self, *nodes: MonitorNode) -> None:
        for node in nodes:
            self._logger.log(self._level, "File %s was modified (%s bytes)", node.path, node.size)

    def on_deleted(self, *paths: str) -> None:
        for path in paths:
            self._logger.log(self._level, "File %s was deleted", path)


class CallbackNotifier(ChangeNotifier):
    """Adapt plain callables to the notifier interface."""

    def __init__(
        self,
        on_created: Optional[NodeCallback] = None,
        on_updated: Optional[NodeCallback] = None,
        on_deleted: Optional[NodeCallback] = None,
    ):
        self._on_created = on_created
        self._on_updated = on_updated
        self._on_deleted = on_deleted

    def on_created(self, *nodes: MonitorNode) -> None:
        if self._on_created is not None:
            self._on_created(*nodes)

    def on_updated(self, *nodes: MonitorNode) -> None:
        if self._on_updated is not None:
            self._on_updated(*nodes)

    def on_deleted(self, *paths: str) -> None:
        if self._on_deleted is not None:
            self._on_deleted(*paths)


class RecordingNotifier(ChangeNotifier):
    """Keep every notification in memory, in arrival order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.calls: List[Tuple[EventType, Tuple[Any, ...]]] = []

    def on_created(self, *nodes: MonitorNode) -> None:
        self._record(EventType.CREATED, nodes)

    def on_updated(self, *nodes: MonitorNode) -> None:
        self._record(EventType.UPDATED, nodes)

    def on_deleted(self, *paths: str) -> None:
        self._record(EventType.DELETED, paths)

    def _record(self, event_type: EventType, args: Tuple[Any, ...]) -> None:
        with self._lock:
            self.calls.append((event_type, args))

    def calls_of(self, event_type: EventType) -> List[Tuple[Any, ...]]:
        with self._lock:
            return [args for kind, args in self.calls if kind is event_type]

    @property
    def created_paths(self) -> List[str]:
        return [node.path for args in self.calls_of(EventType.CREATED) for node in args]

    @property
    def updated_paths(self) -> List[str]:
        return [node.path for args in self.calls_of(EventType.UPDATED) for node in args]

    @property
    def deleted_batches(self) -> List[Tuple[str, ...]]:
        return self.calls_of(EventType.DELETED)

    def clear(self) -> None:
        with self._lock:
            self.calls.clear()


def safe_notify(notifier: Optional[ChangeNotifier], event_type: EventType, *args: Any) -> None:
    """Deliver one notification, logging instead of raising on failure."""

    if notifier is None:
        return
    method = {
        EventType.CREATED: notifier.on_created,
        EventType.UPDATED: notifier.on_updated,
        EventType.DELETED: notifier.on_deleted,
    }[event_type]
    try:
        method(*args)
    except Exception:
        logger.exception("Notifier %r failed handling %s event", notifier, event_type.value)
