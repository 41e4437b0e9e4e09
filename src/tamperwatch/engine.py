"""Snapshot-diff scan engine."""
from __future__ import annotations

import errno
import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Iterable, Iterator, List, Optional, Tuple

from .errors import InvalidArgumentError, PathNotFoundError, TransientScanError
from .nodes import EventType, MonitorNode, PathLike, absolute_path
from .notifier import ChangeNotifier, safe_notify
from .store import SnapshotStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 256

# Entries that can never be stat'ed through their path; skipped like dangling links.
_UNREACHABLE_ERRNOS = frozenset({errno.ELOOP, errno.ENAMETOOLONG})

ErrorObserver = Callable[[BaseException], None]

# (st_dev, st_ino) of a directory
DirKey = Tuple[int, int]


@dataclass
class ScanResult:
    """Outcome of a single reconciliation pass."""

    root: str
    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    errors: List[BaseException] = field(default_factory=list)

    @property
    def error(self) -> Optional[BaseException]:
        return self.errors[0] if self.errors else None

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def unreadable(self) -> List[str]:
        """Paths skipped this pass because they could not be read."""

        return [
            exc.path
            for exc in self.errors
            if isinstance(exc, TransientScanError) and exc.path is not None
        ]

    @property
    def event_count(self) -> int:
        return len(self.created) + len(self.updated) + len(self.deleted)


@dataclass
class ScanStats:
    """Counters kept by the engine for observability."""

    passes: int = 0
    failures: int = 0
    events_emitted: int = 0


class ScanEngine:
    """Reconciles a snapshot store against the live filesystem.

    A pass walks the tree below a root twice: first to report created and
    updated entries, then to find tracked paths that are no longer on disk.
    Deletions are reported as one batch per pass. A directory that cannot be
    read is skipped along with everything below it; its tracked entries are
    kept until it can be read again.
    """

    def __init__(
        self,
        store: Optional[SnapshotStore] = None,
        notifier: Optional[ChangeNotifier] = None,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        error_observer: Optional[ErrorObserver] = None,
    ):
        if max_depth <= 0:
            raise InvalidArgumentError("max_depth must be positive")
        self.store = store if store is not None else SnapshotStore()
        self.notifier = notifier
        self.max_depth = max_depth
        self.error_observer = error_observer
        self._stats = ScanStats()
        self._stats_lock = threading.Lock()

    @property
    def stats(self) -> ScanStats:
        with self._stats_lock:
            return ScanStats(**vars(self._stats))

    def register_root(self, path: PathLike) -> MonitorNode:
        """Start tracking ``path`` and everything currently below it.

        Entries found here form a silent baseline: later passes only report
        them if they change or disappear. Subtrees that cannot be read are
        logged and left out.
        """

        abs_path = absolute_path(path)
        if not os.path.exists(abs_path):
            raise PathNotFoundError(f"file does not exist: {abs_path}")

        failures: List[TransientScanError] = []
        root: Optional[MonitorNode] = None
        registered = 0
        for node in self._walk(abs_path, failures):
            if root is None:
                root = node
            self.store.put(node.path, node)
            registered += 1
        for failure in failures:
            logger.warning("Skipped %s while registering %s: %s", failure.path, abs_path, failure)

        if root is None:
            raise PathNotFoundError(f"file does not exist: {abs_path}")
        logger.debug("Registered %s (%s entries)", abs_path, registered)
        return root

    def unregister(self, path: Optional[PathLike]) -> Optional[MonitorNode]:
        """Stop tracking ``path``; entries below it stay tracked."""

        if not path:
            return None
        return self.store.remove(absolute_path(path))

    def reconcile(self, root_path: PathLike) -> ScanResult:
        """Run one reconciliation pass over ``root_path``.

        Errors raised while scanning are logged, passed to the error
        observer and recorded on the returned result; they never propagate.
        """

        abs_root = absolute_path(root_path)
        result = ScanResult(root=abs_root)
        try:
            self._check_update_or_create(abs_root, result)
            self._check_deleted(abs_root, result)
        except Exception as exc:
            logger.exception("Unexpected error while scanning %s", abs_root)
            self._record_failure(result, exc)

        with self._stats_lock:
            self._stats.passes += 1
            self._stats.events_emitted += result.event_count
        if result.event_count:
            logger.debug(
                "Scan of %s: %s created, %s updated, %s deleted",
                abs_root,
                len(result.created),
                len(result.updated),
                len(result.deleted),
            )
        return result

    def _check_update_or_create(self, abs_root: str, result: ScanResult) -> None:
        failures: List[TransientScanError] = []
        for node in self._walk(abs_root, failures):
            previous = self.store.get(node.path)
            if previous is None:
                self.store.put(node.path, node)
                result.created.append(node.path)
                safe_notify(self.notifier, EventType.CREATED, node)
            elif node.differs_from(previous):
                self.store.put(node.path, node)
                result.updated.append(node.path)
                safe_notify(self.notifier, EventType.UPDATED, node)
        self._record_scan_failures(result, failures)

    def _check_deleted(self, abs_root: str, result: ScanResult) -> None:
        tracked = self.store.keys()
        if not tracked:
            return
        failures: List[TransientScanError] = []
        on_disk = {node.path for node in self._walk(abs_root, failures)}
        self._record_scan_failures(result, failures)

        missing = tracked - on_disk
        unreadable = result.unreadable
        deleted = sorted(path for path in missing if not _is_within(path, unreadable))
        if not deleted:
            return
        for path in deleted:
            self.store.remove(path)
        result.deleted.extend(deleted)
        safe_notify(self.notifier, EventType.DELETED, *deleted)

    def _record_scan_failures(self, result: ScanResult, failures: List[TransientScanError]) -> None:
        # Both walks of a pass usually hit the same unreadable paths.
        seen = set(result.unreadable)
        for failure in failures:
            if failure.path in seen:
                continue
            seen.add(failure.path)
            logger.warning("Scan of %s skipped %s: %s", result.root, failure.path, failure)
            self._record_failure(result, failure)

    def _record_failure(self, result: ScanResult, exc: BaseException) -> None:
        result.errors.append(exc)
        with self._stats_lock:
            self._stats.failures += 1
        if self.error_observer is None:
            return
        try:
            self.error_observer(exc)
        except Exception:  # pragma: no cover - protective logging
            logger.exception("Error observer failed while handling %r", exc)

    def _walk(self, abs_root: str, failures: List[TransientScanError]) -> Iterator[MonitorNode]:
        """Yield nodes for ``abs_root`` and its descendants, parents first.

        Yields nothing if the root has disappeared. Paths that cannot be
        read are appended to ``failures`` and skipped with their subtrees.
        """

        entry = _stat_entry(abs_root, failures)
        if entry is None:
            return
        root, root_key = entry
        yield root
        if not root.is_directory:
            return

        stack: List[Tuple[MonitorNode, DirKey, int, FrozenSet[DirKey]]] = [
            (root, root_key, 0, frozenset())
        ]
        while stack:
            node, key, depth, ancestors = stack.pop()
            if depth:
                yield node
            if not node.is_directory:
                continue
            if key in ancestors:
                logger.debug("Not descending into %s: it contains itself", node.path)
                continue
            if depth >= self.max_depth:
                logger.warning(
                    "Not descending into %s: maximum depth %s reached", node.path, self.max_depth
                )
                continue
            try:
                children = _list_children(node.path, failures)
            except TransientScanError as exc:
                failures.append(exc)
                continue
            inner = ancestors | {key}
            stack.extend(
                (child, child_key, depth + 1, inner) for child, child_key in reversed(children)
            )


def _stat_entry(
    path: str, failures: List[TransientScanError]
) -> Optional[Tuple[MonitorNode, DirKey]]:
    try:
        st = os.stat(path)
    except FileNotFoundError:
        # Removed since listing, or a dangling symlink.
        return None
    except OSError as exc:
        if exc.errno in _UNREACHABLE_ERRNOS:
            logger.debug("Skipping %s: %s", path, exc)
            return None
        failures.append(_scan_error(f"Unable to stat {path}: {exc}", path, exc))
        return None
    return MonitorNode.from_stat(path, st), (st.st_dev, st.st_ino)


def _list_children(
    dir_path: str, failures: List[TransientScanError]
) -> List[Tuple[MonitorNode, DirKey]]:
    try:
        with os.scandir(dir_path) as entries:
            child_paths = [entry.path for entry in entries]
    except (FileNotFoundError, NotADirectoryError):
        return []
    except OSError as exc:
        raise _scan_error(f"Unable to list {dir_path}: {exc}", dir_path, exc) from exc

    children = []
    for child_path in child_paths:
        entry = _stat_entry(child_path, failures)
        if entry is not None:
            children.append(entry)
    return children


def _scan_error(message: str, path: str, cause: OSError) -> TransientScanError:
    error = TransientScanError(message, path=path)
    error.__cause__ = cause
    return error


def _is_within(path: str, prefixes: Iterable[str]) -> bool:
    for prefix in prefixes:
        if path == prefix or path.startswith(prefix.rstrip(os.sep) + os.sep):
            return True
    return False
