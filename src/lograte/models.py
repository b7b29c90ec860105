from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from .debounce import DebounceGate


class SessionState(str, Enum):
    IDLE = "idle"
    WATCHING = "watching"
    CLOSED = "closed"


@dataclass
class WatchSession:
    """
    State of one observation over a single log file.

    path and threshold are fixed when the session is created. entries holds
    accepted change timestamps in arrival order; last_notification_time is
    only written when a notification goes out.
    """
    path: Path
    threshold: int
    debounce: DebounceGate
    entries: list[float] = field(default_factory=list)
    last_notification_time: float | None = None
    state: SessionState = SessionState.IDLE
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @property
    def is_watching(self) -> bool:
        return self.state is SessionState.WATCHING


@dataclass(frozen=True)
class RateAlert:
    """Payload handed to notifiers when the write rate is exceeded."""
    path: Path
    count: int
    threshold: int
    triggered_at: float  # unix timestamp

    @property
    def message(self) -> str:
        return f"There have been {self.count} errors thrown during the last minute"

    def to_payload(self) -> dict:
        return {
            "event": "rate_exceeded",
            "path": str(self.path),
            "count": self.count,
            "threshold": self.threshold,
            "triggered_at": datetime.fromtimestamp(self.triggered_at, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "message": self.message,
        }
