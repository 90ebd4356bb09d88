"""Event loop turning watch service events into path change callbacks."""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Callable

from .config import WatchServiceOptions
from .errors import ClosedWatchServiceError, WatchSetupError, WatcherStateError, WatcherUsageError
from .listeners import adapt_path_listener
from .logger import get_logger, log_event
from .registration import RegistrationStrategy, create_registration_strategy
from .types import EventKind, RawEventKind, WatcherState
from .utils.fs import check_watchable_directory
from .watch_service import WatchKey, WatchService, open_watch_service, supports_native_recursion

LOGGER = get_logger("engine")

ServiceFactory = Callable[[WatchServiceOptions], WatchService]


class WatchEngine:
    """Watches one root directory and reports changes to a listener.

    The engine is single use: :meth:`open` registers the root, :meth:`watch`
    blocks the calling thread while dispatching events, and once stopped the
    engine cannot be started again. After :meth:`open` only the thread
    running :meth:`watch` touches the registry.
    """

    def __init__(
        self,
        root: Path,
        listener: Any,
        *,
        recursive: bool,
        options: WatchServiceOptions | None = None,
        service_factory: ServiceFactory = open_watch_service,
        logger: logging.Logger | None = None,
    ) -> None:
        if root is None:
            raise WatcherUsageError("'root' must not be None")
        self.root = check_watchable_directory(Path(root), "root")
        self.recursive = recursive
        self.options = options or WatchServiceOptions()
        self.logger = logger or LOGGER
        self._listener = adapt_path_listener(listener)
        self._service_factory = service_factory
        self._keys: dict[WatchKey, Path] = {}
        self._strategy = create_registration_strategy(
            self._keys,
            recursive,
            native_recursion=supports_native_recursion(self.options),
        )
        self._service: WatchService | None = None
        self._state = WatcherState.IDLE
        self._running = threading.Event()
        self._cancelled = threading.Event()
        self._lock = threading.Lock()

    @property
    def state(self) -> WatcherState:
        return self._state

    @property
    def strategy(self) -> RegistrationStrategy:
        return self._strategy

    def is_running(self) -> bool:
        return self._running.is_set()

    def open(self) -> None:
        """Open the watch service and register the root directory."""

        with self._lock:
            if self._state is WatcherState.RUNNING:
                raise WatcherStateError("Cannot start a path watcher that is already running.")
            if self._state is WatcherState.STOPPED:
                raise WatcherStateError("Cannot restart a stopped path watcher; create a new one.")
            try:
                service = self._service_factory(self.options)
            except OSError as exc:
                raise WatchSetupError(f"Could not open watch service for '{self.root}': {exc}") from exc
            try:
                self._strategy.register_root(service, self.root)
            except OSError as exc:
                self._keys.clear()
                self._close_service(service)
                raise WatchSetupError(f"Could not register '{self.root}': {exc}") from exc
            self._service = service
            self._state = WatcherState.RUNNING
            self._running.set()

    def start(self) -> "WatchEngine":
        """Open the engine and run the event loop on the calling thread."""

        self.open()
        self.watch()
        return self

    def watch(self) -> None:
        """Run the event loop until stopped, cancelled or out of directories."""

        service = self._service
        if service is None:
            raise WatcherStateError("Cannot watch before the path watcher has been opened.")
        log_event(self.logger, level=logging.DEBUG, action="watch.loop", message="Waiting for file system events", watcher=str(self))
        try:
            while not self._cancelled.is_set():
                key = self._take_key(service)
                if key is None:
                    break
                self._handle_key(service, key)
                if not self._reset_key(key):
                    break
        finally:
            self._shutdown()

    def cancel(self) -> None:
        """Ask a running loop to exit; returns without waiting for it."""

        self._cancelled.set()
        service = self._service
        if service is not None:
            service.interrupt()

    def stop(self) -> None:
        """Close the watch service and clear the registry.

        Raises :class:`WatcherStateError` if the engine was never opened.
        """

        if self._state is WatcherState.IDLE:
            raise WatcherStateError("Cannot stop a path watcher that has not been started.")
        self._shutdown()

    def _take_key(self, service: WatchService) -> WatchKey | None:
        try:
            key = service.take()
        except ClosedWatchServiceError:
            log_event(self.logger, level=logging.DEBUG, action="watch.closed", message="Watch service closed while waiting", watcher=str(self))
            return None
        if key is None:
            log_event(self.logger, level=logging.DEBUG, action="watch.interrupted", message="Interrupted while waiting for events", watcher=str(self))
        return key

    def _handle_key(self, service: WatchService, key: WatchKey) -> None:
        directory = self._keys.get(key)
        if directory is None:
            log_event(
                self.logger,
                level=logging.WARNING,
                action="watch.unknown_key",
                message=f"Watch key '{key}' not recognized",
                watcher=str(self),
            )
            return
        for event in key.poll_events():
            if event.kind is RawEventKind.OVERFLOW:
                log_event(self.logger, level=logging.DEBUG, action="watch.overflow", message="Events were lost", path=directory)
                continue
            child = directory / event.context
            if child == self.root:
                continue
            kind = EventKind.from_raw(event.kind)
            log_event(
                self.logger,
                level=logging.DEBUG,
                action="watch.event",
                message=f"Handling {kind.name.lower()} event",
                path=child,
            )
            self._listener(kind, child)
            if kind is EventKind.CREATED:
                try:
                    self._strategy.register_child(service, child)
                except (OSError, ClosedWatchServiceError) as exc:
                    log_event(
                        self.logger,
                        level=logging.WARNING,
                        action="watch.child_register_failed",
                        message="Could not register watch",
                        path=child,
                        extra={"error": repr(exc)},
                    )

    def _reset_key(self, key: WatchKey) -> bool:
        if key.reset():
            return True
        self._keys.pop(key, None)
        log_event(self.logger, level=logging.DEBUG, action="watch.key_invalid", message="Directory no longer accessible", path=key.directory)
        if not self._keys:
            log_event(self.logger, level=logging.INFO, action="watch.exhausted", message="No directories left to watch", watcher=str(self))
            return False
        return True

    def _shutdown(self) -> None:
        with self._lock:
            if self._state is WatcherState.STOPPED:
                return
            service, self._service = self._service, None
            try:
                if service is not None:
                    self._close_service(service)
            finally:
                self._keys.clear()
                self._state = WatcherState.STOPPED
                self._running.clear()

    def _close_service(self, service: WatchService) -> None:
        try:
            service.close()
        except Exception as exc:
            log_event(
                self.logger,
                level=logging.WARNING,
                action="watch.close_failed",
                message=f"Could not close '{self}' properly",
                extra={"error": repr(exc)},
            )

    def __repr__(self) -> str:
        return f"PathWatcher for '{self.root}'"


__all__ = ["ServiceFactory", "WatchEngine"]
