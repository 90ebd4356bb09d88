"""Watch service built on top of a watchdog observer.

A :class:`WatchService` hands out one :class:`WatchKey` per registered
directory. Raw events reported by watchdog for that directory are buffered
on the key; the key is queued on the service the first time it is
signalled and stays out of the queue until the consumer drains it and
calls :meth:`WatchKey.reset`. :meth:`WatchService.take` blocks until a key
is queued.
"""
from __future__ import annotations

import logging
import os
import sys
import threading
from pathlib import Path
from queue import Queue
from typing import Any

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from .config import ObserverBackend, WatchServiceOptions
from .errors import ClosedWatchServiceError
from .logger import get_logger, log_event
from .types import RawEvent, RawEventKind

LOGGER = get_logger("watch_service")

_SELF = Path(".")

_RAW_KIND_FOR_EVENT_TYPE = {
    EVENT_TYPE_CREATED: RawEventKind.CREATE,
    EVENT_TYPE_MODIFIED: RawEventKind.MODIFY,
    EVENT_TYPE_DELETED: RawEventKind.DELETE,
}


class _Wakeup:
    """Queue marker that makes a blocked :meth:`WatchService.take` return ``None``."""


class _Closed:
    """Queue marker that makes a blocked :meth:`WatchService.take` fail."""


def supports_native_recursion(options: WatchServiceOptions | None = None) -> bool:
    """Tell whether the selected backend watches whole subtrees on its own."""

    options = options or WatchServiceOptions()
    if options.native_recursion is not None:
        return options.native_recursion
    if options.backend is ObserverBackend.POLLING:
        return False
    return sys.platform == "win32" or sys.platform == "darwin"


class WatchKey:
    """Handle for one directory registered with a :class:`WatchService`."""

    def __init__(self, service: "WatchService", directory: Path, *, max_pending_events: int) -> None:
        self.directory = directory
        self._service = service
        self._max_pending_events = max_pending_events
        self._events: list[RawEvent] = []
        self._signalled = False
        self._valid = True
        self._watch: Any = None
        self._lock = threading.Lock()

    @property
    def valid(self) -> bool:
        return self._valid

    def signal_event(self, kind: RawEventKind, context: Path) -> None:
        """Record an event and queue this key if it is not queued already."""

        with self._lock:
            if not self._valid:
                return
            if len(self._events) >= self._max_pending_events:
                if self._events[-1].kind is not RawEventKind.OVERFLOW:
                    self._events.append(RawEvent(RawEventKind.OVERFLOW, _SELF))
            else:
                event = RawEvent(kind, context)
                if not (kind is RawEventKind.MODIFY and self._events and self._events[-1] == event):
                    self._events.append(event)
            if not self._signalled:
                self._signalled = True
                self._service._enqueue(self)

    def signal_gone(self) -> None:
        """Queue this key so that its consumer notices the directory is gone."""

        with self._lock:
            if self._valid and not self._signalled:
                self._signalled = True
                self._service._enqueue(self)

    def poll_events(self) -> list[RawEvent]:
        """Remove and return all pending events."""

        with self._lock:
            events, self._events = self._events, []
            return events

    def reset(self) -> bool:
        """Re-arm the key. Return ``False`` when it is no longer valid."""

        if self._valid and not self.directory.is_dir():
            self.cancel()
        with self._lock:
            if not self._valid:
                return False
            if self._events:
                self._service._enqueue(self)
            else:
                self._signalled = False
            return True

    def cancel(self) -> None:
        """Stop watching the directory; the key becomes invalid."""

        with self._lock:
            if not self._valid:
                return
            self._valid = False
            self._events.clear()
        self._service._cancel(self)

    def _invalidate(self) -> None:
        with self._lock:
            self._valid = False
            self._events.clear()

    def __repr__(self) -> str:
        return f"WatchKey({str(self.directory)!r})"


class _KeyEventHandler(FileSystemEventHandler):
    """Translates watchdog events for one watch into raw events on a key."""

    def __init__(self, key: WatchKey) -> None:
        super().__init__()
        self._key = key

    def dispatch(self, event: FileSystemEvent) -> None:
        if event.event_type == EVENT_TYPE_MOVED:
            self._signal(RawEventKind.DELETE, event.src_path)
            self._signal(RawEventKind.CREATE, event.dest_path)
            return
        kind = _RAW_KIND_FOR_EVENT_TYPE.get(event.event_type)
        if kind is not None:
            self._signal(kind, event.src_path)

    def _signal(self, kind: RawEventKind, raw_path: Any) -> None:
        if not raw_path:
            return
        try:
            context = Path(os.fsdecode(raw_path)).relative_to(self._key.directory)
        except ValueError:
            return
        # The watched directory itself reports modifications only; its removal
        # invalidates the key instead.
        if context != _SELF or kind is RawEventKind.MODIFY:
            self._key.signal_event(kind, context)
        elif kind is RawEventKind.DELETE:
            self._key.signal_gone()


class WatchService:
    """Blocking, key-based view on a watchdog observer."""

    def __init__(
        self,
        observer: Any,
        *,
        native_recursion: bool = False,
        max_pending_events: int = 512,
        shutdown_timeout: float = 5.0,
    ) -> None:
        self._observer = observer
        self._native_recursion = native_recursion
        self._max_pending_events = max_pending_events
        self._shutdown_timeout = shutdown_timeout
        self._ready: Queue[Any] = Queue()
        self._keys: dict[Path, WatchKey] = {}
        self._lock = threading.Lock()
        self._closed = threading.Event()
        observer.start()

    @property
    def supports_native_recursion(self) -> bool:
        return self._native_recursion

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def register(self, directory: Path, *, recursive: bool = False) -> WatchKey:
        """Watch *directory* and return its key.

        Registering a directory that already has a valid key returns that key.
        """

        self._check_open()
        with self._lock:
            key = self._keys.get(directory)
            if key is not None and key.valid:
                return key
            key = WatchKey(self, directory, max_pending_events=self._max_pending_events)
            key._watch = self._observer.schedule(_KeyEventHandler(key), str(directory), recursive=recursive)
            self._keys[directory] = key
        return key

    def take(self) -> WatchKey | None:
        """Block until a key is signalled.

        Returns ``None`` when woken up by :meth:`interrupt`; raises
        :class:`ClosedWatchServiceError` once the service is closed.
        """

        self._check_open()
        item = self._ready.get()
        if isinstance(item, _Closed):
            # Leave the marker for any other waiter.
            self._ready.put(item)
            raise ClosedWatchServiceError("Watch service is closed")
        if isinstance(item, _Wakeup):
            return None
        return item

    def interrupt(self) -> None:
        """Wake up a thread blocked in :meth:`take`."""

        self._ready.put(_Wakeup())

    def close(self) -> None:
        """Stop the observer and invalidate every key."""

        if self._closed.is_set():
            return
        self._closed.set()
        with self._lock:
            keys = list(self._keys.values())
            self._keys.clear()
        for key in keys:
            key._invalidate()
        try:
            self._observer.stop()
            if self._observer.is_alive():
                self._observer.join(self._shutdown_timeout)
        finally:
            self._ready.put(_Closed())

    def _check_open(self) -> None:
        if self._closed.is_set():
            raise ClosedWatchServiceError("Watch service is closed")

    def _enqueue(self, key: WatchKey) -> None:
        self._ready.put(key)

    def _cancel(self, key: WatchKey) -> None:
        with self._lock:
            if self._keys.get(key.directory) is key:
                del self._keys[key.directory]
        if key._watch is None or self._closed.is_set():
            return
        try:
            self._observer.unschedule(key._watch)
        except (KeyError, OSError) as exc:
            log_event(
                LOGGER,
                level=logging.DEBUG,
                action="watch.unschedule_failed",
                message="Watch was already removed from the observer",
                path=key.directory,
                extra={"error": repr(exc)},
            )


def open_watch_service(options: WatchServiceOptions | None = None) -> WatchService:
    """Create a started :class:`WatchService` for the configured backend."""

    options = options or WatchServiceOptions()
    if options.backend is ObserverBackend.POLLING:
        observer = PollingObserver(timeout=options.poll_interval)
    else:
        observer = Observer(timeout=options.poll_interval)
    return WatchService(
        observer,
        native_recursion=supports_native_recursion(options),
        max_pending_events=options.max_pending_events,
        shutdown_timeout=options.shutdown_timeout,
    )


__all__ = ["WatchKey", "WatchService", "open_watch_service", "supports_native_recursion"]
