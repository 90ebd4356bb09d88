"""pathwatch package exports."""

from .config import ObserverBackend, WatchServiceOptions
from .errors import (
    ClosedWatchServiceError,
    PathWatcherError,
    WatchSetupError,
    WatcherStateError,
    WatcherUsageError,
)
from .factory import WatcherFactory, create_single_path_watcher
from .listeners import (
    LifecycleListener,
    LoggingLifecycleListener,
    LoggingPathChangeListener,
    PathChangeListener,
)
from .logger import configure_logging
from .task import WatcherTask
from .types import EventKind

__all__ = [
    "ClosedWatchServiceError",
    "EventKind",
    "LifecycleListener",
    "LoggingLifecycleListener",
    "LoggingPathChangeListener",
    "ObserverBackend",
    "PathChangeListener",
    "PathWatcherError",
    "WatchServiceOptions",
    "WatchSetupError",
    "WatcherFactory",
    "WatcherStateError",
    "WatcherTask",
    "WatcherUsageError",
    "configure_logging",
    "create_single_path_watcher",
]
