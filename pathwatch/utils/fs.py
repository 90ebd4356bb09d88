"""Filesystem helpers used by pathwatch."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator

from ..errors import WatcherUsageError


def check_watchable_directory(path: Path, name: str) -> Path:
    """Ensure that *path* exists, is readable and is a directory; return it."""

    if not path.exists():
        raise WatcherUsageError(f"'{name}' ({path}) must exist")
    if not os.access(path, os.R_OK):
        raise WatcherUsageError(f"'{name}' ({path}) must be readable")
    if not path.is_dir():
        raise WatcherUsageError(f"'{name}' ({path}) must be a directory")
    return path


def is_real_directory(path: Path) -> bool:
    """Return ``True`` for a directory that is not reached through a symlink."""

    return path.is_dir() and not path.is_symlink()


def walk_directories(start: Path) -> Iterator[Path]:
    """Yield *start* and every directory below it, parents first.

    Symbolic links are not followed. Any error while listing a directory is
    raised to the caller.
    """

    def _raise(error: OSError) -> None:
        raise error

    for dirpath, _, _ in os.walk(start, onerror=_raise, followlinks=False):
        yield Path(dirpath)


__all__ = ["check_watchable_directory", "is_real_directory", "walk_directories"]
