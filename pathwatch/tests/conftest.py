"""Fixtures shared by the pathwatch unit tests."""
from __future__ import annotations

import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import pytest

from pathwatch.config import WatchServiceOptions
from pathwatch.listeners import LifecycleListener
from pathwatch.types import EventKind
from pathwatch.watch_service import WatchService, supports_native_recursion


@dataclass(frozen=True)
class FakeWatch:
    path: str
    recursive: bool


class FakeObserver:
    """In-memory replacement for a watchdog observer.

    Tests hand real watchdog event objects to :meth:`emit`, which forwards
    them to the handler scheduled for that directory.
    """

    def __init__(self) -> None:
        self.handlers: dict[FakeWatch, Any] = {}
        self.unscheduled: list[str] = []
        self.refused: set[str] = set()
        self.started = False
        self.stopped = False
        self._lock = threading.Lock()

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def is_alive(self) -> bool:
        return False

    def join(self, timeout: float | None = None) -> None:
        pass

    def schedule(self, handler: Any, path: str, recursive: bool = False) -> FakeWatch:
        if path in self.refused:
            raise PermissionError(f"Permission denied: '{path}'")
        if not os.path.isdir(path):
            raise FileNotFoundError(f"No such directory: '{path}'")
        watch = FakeWatch(path, recursive)
        with self._lock:
            self.handlers[watch] = handler
        return watch

    def unschedule(self, watch: FakeWatch) -> None:
        with self._lock:
            del self.handlers[watch]
        self.unscheduled.append(watch.path)

    def scheduled(self) -> dict[str, bool]:
        with self._lock:
            return {watch.path: watch.recursive for watch in self.handlers}

    def emit(self, directory: Path, event: Any) -> None:
        with self._lock:
            handlers = [handler for watch, handler in self.handlers.items() if watch.path == str(directory)]
        for handler in handlers:
            handler.dispatch(event)


class RecordingPathListener:
    """Collects ``(kind, path)`` pairs delivered by a watcher."""

    def __init__(self) -> None:
        self.events: list[tuple[EventKind, Path]] = []
        self._lock = threading.Lock()

    def on_path_changed(self, kind: EventKind, path: Path) -> None:
        with self._lock:
            self.events.append((kind, path))

    def snapshot(self) -> list[tuple[EventKind, Path]]:
        with self._lock:
            return list(self.events)

    def kinds_for(self, path: Path) -> list[EventKind]:
        return [kind for kind, event_path in self.snapshot() if event_path == path]

    def paths(self) -> set[Path]:
        return {path for _, path in self.snapshot()}


class RecordingLifecycleListener(LifecycleListener):
    """Remembers every lifecycle notification."""

    def __init__(self) -> None:
        self.started = threading.Event()
        self.stopped = threading.Event()
        self.exceptions: list[BaseException] = []
        self.calls: list[str] = []

    def on_start(self, watcher: Any) -> None:
        self.calls.append("start")
        self.started.set()

    def on_exception(self, watcher: Any, error: BaseException) -> None:
        self.calls.append("exception")
        self.exceptions.append(error)

    def on_stop(self, watcher: Any) -> None:
        self.calls.append("stop")
        self.stopped.set()


@pytest.fixture()
def fake_observer() -> FakeObserver:
    return FakeObserver()


@pytest.fixture()
def service_factory(fake_observer: FakeObserver) -> Callable[[WatchServiceOptions], WatchService]:
    def factory(options: WatchServiceOptions) -> WatchService:
        return WatchService(
            fake_observer,
            native_recursion=supports_native_recursion(options),
            max_pending_events=options.max_pending_events,
            shutdown_timeout=options.shutdown_timeout,
        )

    return factory


@pytest.fixture()
def recorder() -> RecordingPathListener:
    return RecordingPathListener()


@pytest.fixture()
def lifecycle() -> RecordingLifecycleListener:
    return RecordingLifecycleListener()


@pytest.fixture()
def executor():
    pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="pathwatch-test")
    yield pool
    pool.shutdown(wait=False, cancel_futures=True)


@pytest.fixture()
def wait_until() -> Callable[..., bool]:
    def wait(predicate: Callable[[], bool], *, timeout: float = 2.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(0.01)
        return predicate()

    return wait
