"""End-to-end tests running watchers against the real file system.

The polling backend is used so that the behaviour does not depend on the
native notification facility of the test machine.
"""
from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from pathwatch import (
    EventKind,
    LifecycleListener,
    ObserverBackend,
    WatchServiceOptions,
    WatcherFactory,
    create_single_path_watcher,
)

POLLING = WatchServiceOptions(backend=ObserverBackend.POLLING, poll_interval=0.05)


class Recorder:
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


class Lifecycle(LifecycleListener):
    def __init__(self) -> None:
        self.started = threading.Event()
        self.stopped = threading.Event()
        self.exceptions: list[BaseException] = []

    def on_start(self, watcher) -> None:
        self.started.set()

    def on_exception(self, watcher, error: BaseException) -> None:
        self.exceptions.append(error)

    def on_stop(self, watcher) -> None:
        self.stopped.set()


def wait_for(predicate, *, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


def wait_until_watched(directory: Path, recorder: Recorder, *, timeout: float = 5.0) -> bool:
    """Touch probe files in *directory* until the watcher reports one."""

    deadline = time.monotonic() + timeout
    index = 0
    while time.monotonic() < deadline:
        probe = directory / f".probe{index}"
        probe.touch()
        if wait_for(lambda: EventKind.CREATED in recorder.kinds_for(probe), timeout=0.3):
            return True
        index += 1
    return False


@pytest.fixture()
def executor():
    pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="pathwatch-it")
    yield pool
    pool.shutdown(wait=False, cancel_futures=True)


@pytest.fixture()
def lifecycle() -> Lifecycle:
    return Lifecycle()


@pytest.fixture()
def factory(executor, lifecycle) -> WatcherFactory:
    return WatcherFactory(executor, lifecycle, options=POLLING)


def test_non_recursive_watcher_reports_direct_children(factory, lifecycle, tmp_path: Path) -> None:
    recorder = Recorder()
    watcher = factory.create_non_recursive_watcher(tmp_path, recorder).start()
    assert lifecycle.started.wait(5)
    assert wait_until_watched(tmp_path, recorder)

    text = tmp_path / "text.txt"
    text.write_text("hello", encoding="utf-8")
    assert wait_for(lambda: EventKind.CREATED in recorder.kinds_for(text))
    nested = tmp_path / "dir0"
    nested.mkdir()
    assert wait_for(lambda: EventKind.CREATED in recorder.kinds_for(nested))
    (nested / "inner.txt").write_text("ignored", encoding="utf-8")
    text.unlink()
    assert wait_for(lambda: EventKind.DELETED in recorder.kinds_for(text))

    watcher.stop()
    assert lifecycle.stopped.wait(5)
    assert not watcher.is_running()
    paths = {path for _, path in recorder.snapshot()}
    assert nested / "inner.txt" not in paths
    assert tmp_path not in paths


def test_recursive_watcher_follows_new_directories(factory, lifecycle, tmp_path: Path) -> None:
    recorder = Recorder()
    existing = tmp_path / "existing"
    existing.mkdir()
    watcher = factory.create_recursive_watcher(tmp_path, recorder).start()
    assert lifecycle.started.wait(5)
    assert wait_until_watched(existing, recorder)

    dir0 = tmp_path / "dir0"
    dir0.mkdir()
    assert wait_for(lambda: EventKind.CREATED in recorder.kinds_for(dir0))
    assert wait_until_watched(dir0, recorder)
    dir1 = dir0 / "dir1"
    dir1.mkdir()
    assert wait_for(lambda: EventKind.CREATED in recorder.kinds_for(dir1))
    dir1.rmdir()
    assert wait_for(lambda: EventKind.DELETED in recorder.kinds_for(dir1))

    watcher.stop()
    assert lifecycle.stopped.wait(5)
    events = recorder.snapshot()
    assert events.index((EventKind.CREATED, dir1)) < events.index((EventKind.DELETED, dir1))
    assert tmp_path not in {path for _, path in events}


def test_no_events_after_stop(factory, lifecycle, tmp_path: Path) -> None:
    recorder = Recorder()
    watcher = factory.create_non_recursive_watcher(tmp_path, recorder).start()
    assert lifecycle.started.wait(5)

    watcher.stop()
    assert lifecycle.stopped.wait(5)
    (tmp_path / "late.txt").write_text("late", encoding="utf-8")
    time.sleep(0.3)

    assert recorder.snapshot() == []
    assert lifecycle.exceptions == []


def test_rogue_listener_stops_the_watcher(factory, lifecycle, tmp_path: Path) -> None:
    failure = RuntimeError("rogue listener")

    def listener(kind: EventKind, path: Path) -> None:
        raise failure

    watcher = factory.create_non_recursive_watcher(tmp_path, listener).start()
    assert lifecycle.started.wait(5)
    for index in range(10):
        (tmp_path / f"trigger{index}.txt").write_text("x", encoding="utf-8")
        if lifecycle.stopped.wait(0.5):
            break

    assert lifecycle.stopped.is_set()
    assert lifecycle.exceptions == [failure]
    assert not watcher.is_running()


def test_watcher_ends_when_root_is_removed(factory, lifecycle, tmp_path: Path) -> None:
    root = tmp_path / "root"
    root.mkdir()
    recorder = Recorder()
    watcher = factory.create_non_recursive_watcher(root, recorder).start()
    assert lifecycle.started.wait(5)
    assert wait_until_watched(root, recorder)

    for probe in root.iterdir():
        probe.unlink()
    root.rmdir()

    assert lifecycle.stopped.wait(5)
    assert lifecycle.exceptions == []
    assert not watcher.is_running()


def test_single_path_watcher(executor, lifecycle, tmp_path: Path) -> None:
    target = tmp_path / "settings.json"
    other = tmp_path / "other.json"
    recorder = Recorder()
    watcher = create_single_path_watcher(target, recorder, executor, lifecycle, options=POLLING).start()
    assert lifecycle.started.wait(5)
    time.sleep(0.2)

    other.write_text("{}", encoding="utf-8")
    target.write_text("{}", encoding="utf-8")
    assert wait_for(lambda: EventKind.CREATED in recorder.kinds_for(target))
    target.unlink()
    assert wait_for(lambda: EventKind.DELETED in recorder.kinds_for(target))

    watcher.stop()
    assert lifecycle.stopped.wait(5)
    assert {path for _, path in recorder.snapshot()} == {target}
