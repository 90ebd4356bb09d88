"""Strategies deciding which directories are registered with the watch service."""
from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from .logger import get_logger, log_event
from .utils.fs import is_real_directory, walk_directories
from .watch_service import WatchKey, WatchService

LOGGER = get_logger("registration")


class RegistrationMode(Enum):
    """How a watcher covers the directories below its root."""

    NON_RECURSIVE = "non-recursive"
    TREE_WALK = "tree-walk"
    NATIVE_RECURSIVE = "native-recursive"


class RegistrationStrategy:
    """Registers directories for one watcher and records them in *keys*.

    ``NON_RECURSIVE`` registers the root only. ``TREE_WALK`` registers every
    directory below the root and every directory tree created later on.
    ``NATIVE_RECURSIVE`` registers the root once and relies on the watch
    service to report the whole subtree.
    """

    def __init__(self, mode: RegistrationMode, keys: dict[WatchKey, Path]) -> None:
        self.mode = mode
        self._keys = keys

    def register_root(self, service: WatchService, root: Path) -> None:
        if self.mode is RegistrationMode.TREE_WALK:
            self._register_all(service, root)
        else:
            self._register(service, root, recursive=self.mode is RegistrationMode.NATIVE_RECURSIVE)

    def register_child(self, service: WatchService, child: Path) -> None:
        # Walking the new child also covers directories created inside it
        # before its own watch was in place.
        if self.mode is RegistrationMode.TREE_WALK and is_real_directory(child):
            self._register_all(service, child)

    def _register_all(self, service: WatchService, start: Path) -> None:
        log_event(LOGGER, level=logging.DEBUG, action="watch.scan", message="Scanning directory tree", path=start)
        for directory in walk_directories(start):
            self._register(service, directory, recursive=False)

    def _register(self, service: WatchService, directory: Path, *, recursive: bool) -> None:
        key = service.register(directory, recursive=recursive)
        previous = self._keys.get(key)
        if previous is None:
            log_event(LOGGER, level=logging.DEBUG, action="watch.register", message="Registering path", path=directory)
        elif previous != directory:
            log_event(
                LOGGER,
                level=logging.DEBUG,
                action="watch.register",
                message="Updating path",
                path=directory,
                extra={"previous": previous},
            )
        self._keys[key] = directory

    def __repr__(self) -> str:
        return f"RegistrationStrategy({self.mode.value})"


def create_registration_strategy(
    keys: dict[WatchKey, Path],
    recursive: bool,
    *,
    native_recursion: bool,
) -> RegistrationStrategy:
    """Pick the registration mode for a watcher.

    Non-recursive watchers behave the same everywhere; recursive watchers use
    the service's own recursion where it has one and walk the tree otherwise.
    """

    if not recursive:
        mode = RegistrationMode.NON_RECURSIVE
    elif native_recursion:
        mode = RegistrationMode.NATIVE_RECURSIVE
    else:
        mode = RegistrationMode.TREE_WALK
    return RegistrationStrategy(mode, keys)


__all__ = ["RegistrationMode", "RegistrationStrategy", "create_registration_strategy"]
