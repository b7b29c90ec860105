from __future__ import annotations


class LograteError(Exception):
    pass


class InvalidArgument(LograteError, ValueError):
    """Bad path or threshold passed to RateWatcher.start()."""


class WatchSourceError(LograteError):
    """The underlying file observation failed (missing, removed, renamed)."""


class NotifierError(LograteError):
    """A notification transport failed. Logged and dropped by the watcher."""
