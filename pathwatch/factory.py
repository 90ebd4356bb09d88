"""Public entry point for creating path watchers."""
from __future__ import annotations

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from pathlib import Path
from typing import Any

from .config import WatchServiceOptions
from .engine import ServiceFactory, WatchEngine
from .errors import WatcherUsageError
from .listeners import NO_OP_LIFECYCLE_LISTENER, LifecycleListener, SinglePathChangeListener, adapt_path_listener
from .task import WatcherTask
from .watch_service import open_watch_service


def _is_shutdown(executor: Executor) -> bool:
    return bool(getattr(executor, "_shutdown", False) or getattr(executor, "_shutdown_thread", False))


def _check_executor(executor: Executor | None) -> Executor:
    if executor is None:
        raise WatcherUsageError("'executor' must not be None")
    if _is_shutdown(executor):
        raise WatcherUsageError("'executor' must not be shut down")
    return executor


class WatcherFactory:
    """Creates path watchers that run on a shared executor.

    Every watcher created by a factory occupies one executor thread while it
    runs, even if several watchers observe the same directory, so the
    executor must provide a worker per concurrently running watcher. A
    factory may be used from several threads.
    """

    def __init__(
        self,
        executor: Executor,
        lifecycle_listener: LifecycleListener | None = None,
        *,
        options: WatchServiceOptions | None = None,
        service_factory: ServiceFactory = open_watch_service,
        logger: logging.Logger | None = None,
    ) -> None:
        self.executor = _check_executor(executor)
        self.lifecycle_listener = lifecycle_listener or NO_OP_LIFECYCLE_LISTENER
        self.options = options or WatchServiceOptions()
        self._service_factory = service_factory
        self.logger = logger

    def create_recursive_watcher(self, root: Path | str, listener: Any) -> WatcherTask:
        """Create an unstarted watcher for *root* and all directories below it."""

        return self._create_watcher(root, True, listener)

    def create_non_recursive_watcher(self, root: Path | str, listener: Any) -> WatcherTask:
        """Create an unstarted watcher for the direct entries of *root*."""

        return self._create_watcher(root, False, listener)

    def _create_watcher(self, root: Path | str, recursive: bool, listener: Any) -> WatcherTask:
        if root is None:
            raise WatcherUsageError("'root' must not be None")
        _check_executor(self.executor)
        engine = WatchEngine(
            Path(root),
            listener,
            recursive=recursive,
            options=self.options,
            service_factory=self._service_factory,
            logger=self.logger,
        )
        return WatcherTask(engine, self.executor, self.lifecycle_listener, logger=self.logger)


def create_single_path_watcher(
    path: Path | str,
    listener: Any,
    executor: Executor | None = None,
    lifecycle_listener: LifecycleListener | None = None,
    *,
    options: WatchServiceOptions | None = None,
    service_factory: ServiceFactory = open_watch_service,
) -> WatcherTask:
    """Create an unstarted watcher reporting changes of exactly *path*.

    The parent directory of *path* is watched non-recursively and events for
    other entries are dropped. Without an *executor* a dedicated
    single-thread executor is created.
    """

    if path is None:
        raise WatcherUsageError("'path' must not be None")
    target = Path(path)
    delegate = adapt_path_listener(listener)
    if executor is None:
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pathwatch")
    factory = WatcherFactory(executor, lifecycle_listener, options=options, service_factory=service_factory)
    return factory.create_non_recursive_watcher(target.parent, SinglePathChangeListener(target, delegate))


__all__ = ["WatcherFactory", "create_single_path_watcher"]
