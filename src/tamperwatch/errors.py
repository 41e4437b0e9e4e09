"""Exception types raised by the monitor components."""
from __future__ import annotations

from typing import Optional


class MonitorError(Exception):
    """Base class for monitor errors."""


class InvalidArgumentError(MonitorError, ValueError):
    """Raised when a path argument is empty or does not name an existing entry."""


class PathNotFoundError(InvalidArgumentError, FileNotFoundError):
    """Raised when a path registered for monitoring does not exist."""


class TransientScanError(MonitorError):
    """Raised when a reconciliation pass hits an I/O failure.

    These never leave the pass that raised them; the next scheduled pass
    retries from scratch.
    """

    def __init__(self, message: str, *, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
