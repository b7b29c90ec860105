"""lograte: notify when a log file is written to too often."""
from __future__ import annotations

from .errors import InvalidArgument, LograteError, NotifierError, WatchSourceError
from .models import RateAlert, SessionState, WatchSession
from .watcher import RateWatcher, WatchHandle

__all__ = [
    "InvalidArgument",
    "LograteError",
    "NotifierError",
    "RateAlert",
    "RateWatcher",
    "SessionState",
    "WatchHandle",
    "WatchSession",
    "WatchSourceError",
]

__version__ = "0.1.0"
