"""Listener base classes and adapters."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

from .errors import WatcherUsageError
from .logger import get_logger, log_event
from .types import EventKind

PathCallback = Callable[[EventKind, Path], None]


class PathChangeListener:
    """Receives change notifications from a watcher thread.

    Either override :meth:`on_path_changed` or any of the per-kind hooks.
    Implementations must return promptly; if one instance is shared between
    several watchers it must be thread safe.
    """

    def on_path_changed(self, kind: EventKind, path: Path) -> None:
        if kind is EventKind.CREATED:
            self.on_path_created(path)
        elif kind is EventKind.MODIFIED:
            self.on_path_modified(path)
        elif kind is EventKind.DELETED:
            self.on_path_deleted(path)
        else:
            raise ValueError(f"Unrecognized event kind '{kind}'.")

    def on_path_created(self, path: Path) -> None:
        pass

    def on_path_modified(self, path: Path) -> None:
        pass

    def on_path_deleted(self, path: Path) -> None:
        pass


class LifecycleListener:
    """Receives start, exception and stop notifications of watchers.

    All hooks are called from the watcher thread and must not block.
    """

    def on_start(self, watcher: Any) -> None:
        pass

    def on_exception(self, watcher: Any, error: BaseException) -> None:
        pass

    def on_stop(self, watcher: Any) -> None:
        pass


NO_OP_LIFECYCLE_LISTENER = LifecycleListener()


class SinglePathChangeListener(PathChangeListener):
    """Forwards only events for exactly one path."""

    def __init__(self, path: Path, delegate: PathCallback) -> None:
        self.path = path
        self._delegate = delegate

    def on_path_changed(self, kind: EventKind, path: Path) -> None:
        if path == self.path:
            self._delegate(kind, path)


class LoggingPathChangeListener(PathChangeListener):
    """Writes every change as a structured log entry."""

    def __init__(self, logger: logging.Logger | None = None, *, level: int = logging.INFO) -> None:
        self.logger = logger or get_logger("changes")
        self.level = level

    def on_path_changed(self, kind: EventKind, path: Path) -> None:
        log_event(
            self.logger,
            level=self.level,
            action=f"path.{kind.name.lower()}",
            message=f"Path {kind.name.lower()}",
            path=path,
        )


class LoggingLifecycleListener(LifecycleListener):
    """Writes watcher lifecycle transitions as structured log entries."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or get_logger("lifecycle")

    def on_start(self, watcher: Any) -> None:
        log_event(self.logger, level=logging.INFO, action="lifecycle.start", message="Watcher started", watcher=str(watcher))

    def on_exception(self, watcher: Any, error: BaseException) -> None:
        log_event(
            self.logger,
            level=logging.ERROR,
            action="lifecycle.exception",
            message="Watcher failed",
            watcher=str(watcher),
            extra={"error": repr(error)},
        )

    def on_stop(self, watcher: Any) -> None:
        log_event(self.logger, level=logging.INFO, action="lifecycle.stop", message="Watcher stopped", watcher=str(watcher))


def adapt_path_listener(listener: Any) -> PathCallback:
    """Return a ``(kind, path)`` callable for any supported listener shape.

    Accepted are objects with ``on_path_changed``, objects with the per-kind
    ``on_path_created``/``on_path_modified``/``on_path_deleted`` hooks, and
    plain callables taking ``(kind, path)``.
    """

    if listener is None:
        raise WatcherUsageError("'listener' must not be None")
    on_path_changed = getattr(listener, "on_path_changed", None)
    if callable(on_path_changed):
        return on_path_changed
    hooks = {
        EventKind.CREATED: getattr(listener, "on_path_created", None),
        EventKind.MODIFIED: getattr(listener, "on_path_modified", None),
        EventKind.DELETED: getattr(listener, "on_path_deleted", None),
    }
    if any(callable(hook) for hook in hooks.values()):

        def dispatch(kind: EventKind, path: Path) -> None:
            hook = hooks[kind]
            if callable(hook):
                hook(path)

        return dispatch
    if callable(listener):
        return listener
    raise WatcherUsageError(f"'listener' ({listener!r}) is not a path change listener")


__all__ = [
    "LifecycleListener",
    "LoggingLifecycleListener",
    "LoggingPathChangeListener",
    "NO_OP_LIFECYCLE_LISTENER",
    "PathCallback",
    "PathChangeListener",
    "SinglePathChangeListener",
    "adapt_path_listener",
]
