"""Runs a watch engine as a cancellable unit of work on an executor."""
from __future__ import annotations

import logging
from concurrent.futures import Executor, Future
from pathlib import Path
from typing import Any, Callable

from .engine import WatchEngine
from .errors import WatcherStateError
from .listeners import LifecycleListener
from .logger import get_logger, log_event
from .types import TaskState

LOGGER = get_logger("task")


def call_silently(callback: Callable[..., Any], *args: Any, logger: logging.Logger = LOGGER) -> None:
    """Invoke a client callback, logging instead of raising its exceptions."""

    try:
        callback(*args)
    except Exception as exc:
        log_event(
            logger,
            level=logging.WARNING,
            action="listener.failed",
            message=f"Listener {callback!r} raised an exception",
            extra={"error": repr(exc)},
        )


class WatcherTask:
    """A path watcher whose event loop runs on an executor thread.

    :meth:`start` only schedules the loop and :meth:`stop` only requests
    cancellation; wait for the ``on_stop`` notification of the lifecycle
    listener to know the loop has exited. A stopped task cannot be started
    again.
    """

    def __init__(
        self,
        engine: WatchEngine,
        executor: Executor,
        lifecycle_listener: LifecycleListener,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._engine = engine
        self._executor = executor
        self._lifecycle_listener = lifecycle_listener
        self.logger = logger or LOGGER
        self._future: Future[None] | None = None
        self._state = TaskState.NOT_STARTED

    @property
    def root(self) -> Path:
        return self._engine.root

    @property
    def recursive(self) -> bool:
        return self._engine.recursive

    @property
    def state(self) -> TaskState:
        return self._state

    def start(self) -> "WatcherTask":
        """Register the watched directories and schedule the event loop.

        Raises :class:`WatcherStateError` if the task is already scheduled and
        :class:`~pathwatch.errors.WatchSetupError` if watching cannot begin.
        """

        if self._future is not None:
            raise WatcherStateError("Cannot start a path watcher that is already running.")
        self._engine.open()
        log_event(self.logger, level=logging.DEBUG, action="task.submit", message="Submitting watcher to executor", watcher=str(self))
        try:
            self._future = self._executor.submit(self._run)
        except RuntimeError:
            self._engine.stop()
            raise
        self._state = TaskState.SCHEDULED
        return self

    def is_running(self) -> bool:
        return self._engine.is_running()

    def stop(self) -> None:
        """Request that the watcher stops.

        Raises :class:`WatcherStateError` if the watcher was never started or
        has already been asked to stop.
        """

        future = self._future
        if future is None:
            raise WatcherStateError("Cannot stop a path watcher that is not running.")
        self._future = None
        log_event(self.logger, level=logging.DEBUG, action="task.stop", message="Requesting that watcher stops", watcher=str(self))
        if future.cancel():
            # The loop never began, so nothing else will clean up.
            self._engine.stop()
            self._state = TaskState.FINISHED
        else:
            self._engine.cancel()

    def _run(self) -> None:
        log_event(self.logger, level=logging.DEBUG, action="task.run", message="Running watcher", watcher=str(self))
        call_silently(self._lifecycle_listener.on_start, self, logger=self.logger)
        try:
            self._engine.watch()
        except Exception as exc:
            log_event(
                self.logger,
                level=logging.DEBUG,
                action="task.exception",
                message="Watcher raised an exception",
                watcher=str(self),
                extra={"error": repr(exc)},
            )
            call_silently(self._lifecycle_listener.on_exception, self, exc, logger=self.logger)
            try:
                self._future = None
                self._engine.stop()
            except Exception as cleanup_exc:
                log_event(
                    self.logger,
                    level=logging.WARNING,
                    action="task.cleanup_failed",
                    message="Could not stop watcher properly",
                    watcher=str(self),
                    extra={"error": repr(cleanup_exc)},
                )
        finally:
            self._state = TaskState.FINISHED
            call_silently(self._lifecycle_listener.on_stop, self, logger=self.logger)

    def __enter__(self) -> "WatcherTask":
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        if self._future is not None:
            self.stop()

    def __repr__(self) -> str:
        return repr(self._engine)


__all__ = ["WatcherTask", "call_silently"]
