"""Thread-safe snapshot store keyed by absolute path."""
from __future__ import annotations

import threading
from typing import Dict, Iterator, List, Optional, Set

from .nodes import MonitorNode


class SnapshotStore:
    """Last observed :class:`MonitorNode` for every tracked path.

    The scheduler's worker and external register/unregister calls share one
    store. The lock only protects the dict itself; callers never hold it
    while touching the filesystem.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._nodes: Dict[str, MonitorNode] = {}

    def put(self, path: str, node: MonitorNode) -> None:
        with self._lock:
            self._nodes[path] = node

    def get(self, path: str) -> Optional[MonitorNode]:
        with self._lock:
            return self._nodes.get(path)

    def remove(self, path: str) -> Optional[MonitorNode]:
        """Drop ``path`` if tracked and return its node."""

        with self._lock:
            return self._nodes.pop(path, None)

    def keys(self) -> Set[str]:
        """Return a copy of the tracked paths."""

        with self._lock:
            return set(self._nodes)

    def nodes(self) -> List[MonitorNode]:
        with self._lock:
            return list(self._nodes.values())

    def clear(self) -> None:
        with self._lock:
            self._nodes.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._nodes

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())
