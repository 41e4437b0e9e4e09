"""Metadata snapshots of individual filesystem entries."""
from __future__ import annotations

import os
import stat
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Union

from .errors import InvalidArgumentError

PathLike = Union[str, os.PathLike]


class EventType(str, Enum):
    """Types of filesystem changes reported by the monitor."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


def absolute_path(path: PathLike) -> str:
    """Return the absolute form of ``path`` without resolving symlinks."""

    if path is None:
        raise InvalidArgumentError("path must not be empty")
    text = os.fspath(path)
    if not text:
        raise InvalidArgumentError("path must not be empty")
    return os.path.abspath(text)


@dataclass(frozen=True)
class MonitorNode:
    """State of one file or directory at the moment it was scanned."""

    path: str
    name: str
    parent_path: str
    size: int
    last_modified: int
    is_directory: bool
    is_exists: bool = True

    @classmethod
    def from_path(cls, path: PathLike) -> "MonitorNode":
        """Stat ``path`` and build a node for it.

        Raises :class:`InvalidArgumentError` if the entry does not exist.
        Other ``OSError`` subclasses (permission problems, for example) are
        left to the caller.
        """

        abs_path = absolute_path(path)
        try:
            st = os.stat(abs_path)
        except FileNotFoundError as exc:
            raise InvalidArgumentError(f"file must exist: {abs_path}") from exc
        return cls.from_stat(abs_path, st)

    @classmethod
    def from_stat(cls, abs_path: str, st: os.stat_result) -> "MonitorNode":
        is_directory = stat.S_ISDIR(st.st_mode)
        return cls(
            path=abs_path,
            name=os.path.basename(abs_path),
            parent_path=os.path.dirname(abs_path),
            size=0 if is_directory else st.st_size,
            last_modified=st.st_mtime_ns // 1_000_000,
            is_directory=is_directory,
        )

    def differs_from(self, other: "MonitorNode") -> bool:
        """Return True when size or modification time changed."""

        return self.size != other.size or self.last_modified != other.last_modified

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
