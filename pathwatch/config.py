"""Configuration for the watch service backing every watcher."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Mapping, Optional


class ObserverBackend(str, Enum):
    """Supported watchdog observer backends."""

    NATIVE = "native"
    POLLING = "polling"


@dataclass
class WatchServiceOptions:
    """Options that control how directories are observed."""

    backend: ObserverBackend = ObserverBackend.NATIVE
    poll_interval: float = 1.0
    native_recursion: Optional[bool] = None
    max_pending_events: int = 512
    shutdown_timeout: float = 5.0

    def __post_init__(self) -> None:
        self.backend = ObserverBackend(self.backend)
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.max_pending_events < 1:
            raise ValueError(f"max_pending_events must be at least 1, got {self.max_pending_events}")
        if self.shutdown_timeout < 0:
            raise ValueError(f"shutdown_timeout must not be negative, got {self.shutdown_timeout}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "WatchServiceOptions":
        """Build options from a plain mapping such as parsed JSON."""

        known = {item.name for item in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown watch service options: {', '.join(unknown)}")
        return cls(**dict(data))


__all__ = ["ObserverBackend", "WatchServiceOptions"]
