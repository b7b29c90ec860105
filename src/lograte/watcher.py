"""Sliding-window write-rate watcher with throttled notifications."""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from pathlib import Path
from typing import Callable

from .debounce import DEFAULT_DEBOUNCE_SECONDS, DebounceGate
from .errors import InvalidArgument, WatchSourceError
from .models import RateAlert, SessionState, WatchSession
from .notify import LogNotifier, Notifier
from .source import ChangeSource
from .window import WINDOW_SECONDS, prune_entries, throttle_allows

log = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 10

ErrorCallback = Callable[[WatchSourceError], None]


class WatchHandle:
    """
    Returned by RateWatcher.start(); controls and reports on one session.

    Closing is idempotent: the debounce timer is cancelled, the change source
    released and the notification worker shut down exactly once. A failed
    watch closes itself and keeps the error in `error`.
    """

    def __init__(self, session: WatchSession, pool: ThreadPoolExecutor):
        self.session = session
        self._pool = pool
        self._source: ChangeSource | None = None
        self._error: WatchSourceError | None = None
        self._error_callbacks: list[ErrorCallback] = []
        self._closed = threading.Event()

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def is_active(self) -> bool:
        return self.session.is_watching

    @property
    def error(self) -> WatchSourceError | None:
        return self._error

    def add_error_callback(self, callback: ErrorCallback) -> None:
        """Register for watch failures. Called at once if already failed."""
        with self.session.lock:
            error = self._error
            if error is None:
                self._error_callbacks.append(callback)
        if error is not None:
            callback(error)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the session closes. Returns False on timeout."""
        return self._closed.wait(timeout)

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for queued notifications. Returns False on timeout."""
        with self.session.lock:
            if self.session.state is SessionState.CLOSED:
                return True
            marker = self._pool.submit(lambda: None)
        done, _ = wait([marker], timeout=timeout)
        return bool(done)

    def close(self) -> None:
        self._shutdown()

    def __enter__(self) -> "WatchHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _fail(self, error: WatchSourceError) -> None:
        self._shutdown(error)

    def _shutdown(self, error: WatchSourceError | None = None) -> None:
        with self.session.lock:
            if self.session.state is SessionState.CLOSED:
                return
            self.session.state = SessionState.CLOSED
            callbacks: list[ErrorCallback] = []
            if error is not None:
                self._error = error
                callbacks = list(self._error_callbacks)
            self._error_callbacks.clear()

        self.session.debounce.cancel()
        if self._source is not None:
            self._source.close()
        self._pool.shutdown(wait=False)
        self._closed.set()

        if error is not None:
            log.error(f"Watch on {self.session.path} closed: {error}")
        else:
            log.info(f"Watch on {self.session.path} closed")

        for callback in callbacks:
            try:
                callback(error)
            except Exception as e:
                log.error(f"Error callback failed: {e}")


class RateWatcher:
    """
    Turns file change events into throttled rate alerts.

    Per accepted event (first of each debounce window) the monotonic
    timestamp is recorded, entries older than the window are pruned, and if
    more than `threshold` entries remain a notification goes out, unless one was
    already sent within the last window. Sending clears the entries so the
    next alert needs a fresh burst.
    """

    def __init__(
        self,
        notifier: Notifier | None = None,
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        window_seconds: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
        source_factory: Callable[..., ChangeSource] = ChangeSource,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        self.notifier = notifier or LogNotifier()
        self.debounce_seconds = debounce_seconds
        self.window_seconds = window_seconds
        self._clock = clock
        self._wall_clock = wall_clock
        self._source_factory = source_factory
        self._timer_factory = timer_factory

    def start(self, path: str | Path, threshold: int = DEFAULT_THRESHOLD) -> WatchHandle:
        """
        Begin watching `path`.

        Args:
            path: Log file to watch
            threshold: Max changes per rolling minute before notifying

        Returns:
            WatchHandle for the new session. If the file cannot be watched the
            handle comes back already closed with `error` set.

        Raises:
            InvalidArgument: empty path or non-positive threshold
        """
        if path is None or str(path).strip() in ("", "."):
            raise InvalidArgument("path must be a non-empty string")
        if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold <= 0:
            raise InvalidArgument(f"threshold must be a positive integer, got {threshold!r}")

        session = WatchSession(
            path=Path(path),
            threshold=threshold,
            debounce=DebounceGate(self.debounce_seconds, timer_factory=self._timer_factory),
        )
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="lograte-notify")
        handle = WatchHandle(session, pool)

        handle._source = self._source_factory(
            session.path,
            on_change=lambda: self.process_change(handle),
            on_error=handle._fail,
        )
        session.state = SessionState.WATCHING

        try:
            handle._source.start()
        except WatchSourceError as e:
            handle._fail(e)
            return handle

        log.info(f"Watching {session.path} (threshold {threshold}/min)")
        return handle

    def stop(self, handle: WatchHandle) -> None:
        handle.close()

    def process_change(self, handle: WatchHandle) -> bool:
        """
        Handle one change event for the session behind `handle`.

        Returns:
            True if the event was recorded, False if it was debounced or the
            session is no longer watching.
        """
        session = handle.session
        with session.lock:
            if not session.is_watching:
                return False

            if not session.debounce.arm():
                log.debug(f"Change on {session.path} debounced")
                return False

            now = self._clock()
            session.entries.append(now)
            session.entries = prune_entries(session.entries, now, self.window_seconds)

            count = len(session.entries)
            log.debug(f"Change recorded on {session.path} ({count} in window)")
            if count <= session.threshold:
                return True

            if not throttle_allows(session.last_notification_time, now, self.window_seconds):
                log.debug(f"Threshold exceeded on {session.path}, already notified this window")
                return True

            alert = RateAlert(
                path=session.path,
                count=count,
                threshold=session.threshold,
                triggered_at=self._wall_clock(),
            )
            session.last_notification_time = now
            session.entries = []
            handle._pool.submit(self._dispatch, alert)

        return True

    def _dispatch(self, alert: RateAlert) -> None:
        try:
            self.notifier.notify(alert)
        except Exception as e:
            log.error(f"Notification for {alert.path} failed: {e}")
