"""Shared fakes for the lograte test suite.

Time, debounce timers and the filesystem change source are all replaced with
in-memory fakes so the watcher logic can be driven one event at a time.
"""
from __future__ import annotations

import threading

import pytest

from lograte.errors import WatchSourceError


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeTimer:
    """threading.Timer stand-in that only fires when told to."""

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function()


class TimerFactory:
    def __init__(self):
        self.timers: list[FakeTimer] = []

    def __call__(self, interval, function) -> FakeTimer:
        timer = FakeTimer(interval, function)
        self.timers.append(timer)
        return timer

    def expire_all(self) -> None:
        for timer in list(self.timers):
            timer.fire()


class FakeSource:
    def __init__(self, path, on_change, on_error, start_error: WatchSourceError | None = None):
        self.path = path
        self.on_change = on_change
        self.on_error = on_error
        self.start_error = start_error
        self.started = False
        self.close_calls = 0

    def start(self):
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    def close(self):
        self.close_calls += 1

    def emit(self):
        self.on_change()

    def fail(self, error: WatchSourceError):
        self.on_error(error)


class SourceFactory:
    def __init__(self):
        self.sources: list[FakeSource] = []
        self.start_error: WatchSourceError | None = None

    def __call__(self, path, on_change, on_error) -> FakeSource:
        source = FakeSource(path, on_change, on_error, start_error=self.start_error)
        self.sources.append(source)
        return source

    @property
    def last(self) -> FakeSource:
        return self.sources[-1]


class RecordingNotifier:
    def __init__(self):
        self.alerts = []
        self.received = threading.Event()

    def notify(self, alert):
        self.alerts.append(alert)
        self.received.set()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timers() -> TimerFactory:
    return TimerFactory()


@pytest.fixture
def sources() -> SourceFactory:
    return SourceFactory()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def watcher_factory(clock, timers, sources, notifier):
    """Build a RateWatcher wired to the fakes above."""
    from lograte.watcher import RateWatcher

    def _make(**kwargs):
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("wall_clock", clock)
        kwargs.setdefault("timer_factory", timers)
        kwargs.setdefault("source_factory", sources)
        chosen = kwargs.pop("notifier", notifier)
        return RateWatcher(chosen, **kwargs)

    return _make
