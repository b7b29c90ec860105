"""Sliding one-minute window over change timestamps."""
from __future__ import annotations

from typing import Iterable

WINDOW_SECONDS = 60.0


def window_start(now: float, window_seconds: float = WINDOW_SECONDS) -> float:
    """Oldest timestamp still inside the window ending at `now`."""
    return now - window_seconds


def prune_entries(
    entries: Iterable[float],
    now: float,
    window_seconds: float = WINDOW_SECONDS
) -> list[float]:
    """
    Keep only entries recorded within the window ending at `now`.

    Entries exactly at the window start are kept; anything strictly older is
    dropped. Arrival order is preserved.
    """
    cutoff = window_start(now, window_seconds)
    return [entry for entry in entries if entry >= cutoff]


def throttle_allows(
    last_notification_time: float | None,
    now: float,
    window_seconds: float = WINDOW_SECONDS
) -> bool:
    """
    Check whether a notification may be sent at `now`.

    True if nothing has been sent yet, or the last notification is at least
    one window old. Exactly one window counts as old enough (>= 60s), not
    strictly older.
    """
    if last_notification_time is None:
        return True
    return last_notification_time <= window_start(now, window_seconds)
