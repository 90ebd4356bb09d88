"""Exceptions raised by pathwatch."""
from __future__ import annotations


class PathWatcherError(Exception):
    """Base class for all pathwatch errors."""


class WatcherUsageError(PathWatcherError, ValueError):
    """Raised when an argument violates a precondition."""


class WatcherStateError(PathWatcherError, RuntimeError):
    """Raised when a watcher is started or stopped in the wrong state."""


class WatchSetupError(PathWatcherError, OSError):
    """Raised when the watch service cannot be opened or the root cannot be registered."""


class ClosedWatchServiceError(PathWatcherError):
    """Raised when a closed watch service is used."""


__all__ = [
    "ClosedWatchServiceError",
    "PathWatcherError",
    "WatchSetupError",
    "WatcherStateError",
    "WatcherUsageError",
]
