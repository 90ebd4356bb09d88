"""Shared type definitions for the path watcher."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path


class RawEventKind(Enum):
    """Event kinds reported by the watch service for a registered directory."""

    CREATE = auto()
    MODIFY = auto()
    DELETE = auto()
    OVERFLOW = auto()


class EventKind(Enum):
    """Change kinds delivered to path change listeners."""

    CREATED = auto()
    MODIFIED = auto()
    DELETED = auto()

    @classmethod
    def from_raw(cls, raw_kind: RawEventKind) -> "EventKind":
        try:
            return _RAW_TO_EVENT_KIND[raw_kind]
        except KeyError:
            raise ValueError(f"Unrecognized event kind '{raw_kind}'.") from None


_RAW_TO_EVENT_KIND = {
    RawEventKind.CREATE: EventKind.CREATED,
    RawEventKind.MODIFY: EventKind.MODIFIED,
    RawEventKind.DELETE: EventKind.DELETED,
}


@dataclass(frozen=True, slots=True)
class RawEvent:
    """A single change reported by a watch key.

    ``context`` is the changed entry relative to the directory the key was
    registered for; ``Path(".")`` denotes the directory itself.
    """

    kind: RawEventKind
    context: Path


class WatcherState(Enum):
    """Lifecycle of a :class:`~pathwatch.engine.WatchEngine`."""

    IDLE = auto()
    RUNNING = auto()
    STOPPED = auto()


class TaskState(Enum):
    """Lifecycle of a :class:`~pathwatch.task.WatcherTask`."""

    NOT_STARTED = auto()
    SCHEDULED = auto()
    FINISHED = auto()


__all__ = ["EventKind", "RawEvent", "RawEventKind", "TaskState", "WatcherState"]
