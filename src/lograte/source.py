"""Filesystem change source for a single file (watchdog backed)."""
from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .errors import WatchSourceError

log = logging.getLogger(__name__)


def _event_path(raw: str | bytes) -> Path:
    return Path(os.fsdecode(raw)).resolve()


class _SingleFileHandler(FileSystemEventHandler):
    """Filters parent-directory events down to the one watched file."""

    def __init__(self, source: "ChangeSource"):
        self._source = source

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        if _event_path(event.src_path) == self._source.path:
            self._source._emit_change()

    def on_deleted(self, event: FileSystemEvent) -> None:
        if _event_path(event.src_path) == self._source.path:
            self._source._emit_error(WatchSourceError(f"Watched file removed: {self._source.path}"))

    def on_moved(self, event: FileSystemEvent) -> None:
        if _event_path(event.src_path) == self._source.path:
            self._source._emit_error(WatchSourceError(f"Watched file renamed: {self._source.path}"))


class ChangeSource:
    """
    Emits one callback per content change of `path`.

    The observer watches the parent directory (non-recursive) because most
    platforms cannot watch a single file directly. Rename and delete of the
    file are reported through `on_error`, never as changes.

    close() is idempotent; the observer is stopped exactly once.
    """

    def __init__(
        self,
        path: Path,
        on_change: Callable[[], None],
        on_error: Callable[[WatchSourceError], None],
    ):
        self.path = Path(path).resolve()
        self._on_change = on_change
        self._on_error = on_error
        self._observer = None
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """
        Begin observing.

        Raises:
            WatchSourceError: path is missing, not a regular file, or the OS
                watch could not be established
        """
        if not self.path.exists():
            raise WatchSourceError(f"Log file not found: {self.path}")
        if not self.path.is_file():
            raise WatchSourceError(f"Not a regular file: {self.path}")

        observer = Observer()
        try:
            observer.schedule(_SingleFileHandler(self), str(self.path.parent), recursive=False)
            observer.start()
        except OSError as e:
            raise WatchSourceError(f"Cannot watch {self.path}: {e}") from e

        self._observer = observer
        log.info(f"Watching {self.path} for changes")

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            observer = self._observer
            self._observer = None

        if observer is None:
            return

        observer.stop()
        # Observer callbacks may close the source from the observer thread itself
        if threading.current_thread() is not observer:
            observer.join(timeout=5)
        log.info(f"Stopped watching {self.path}")

    def _emit_change(self) -> None:
        if self._closed:
            return
        self._on_change()

    def _emit_error(self, error: WatchSourceError) -> None:
        if self._closed:
            return
        log.error(str(error))
        self._on_error(error)
