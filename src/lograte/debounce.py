"""Leading-edge debounce for bursts of filesystem events."""
from __future__ import annotations

import logging
import threading
from typing import Callable

log = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.1


class DebounceGate:
    """
    Collapses a burst of events into the first one.

    Debounce semantics:
    - arm() on an idle gate starts a timer and returns True (event accepted)
    - arm() while the timer is pending returns False (event dropped), the
      timer is NOT re-armed
    - timer expiry only disarms the gate
    - cancel() stops a pending timer; safe to call repeatedly
    """

    def __init__(
        self,
        delay_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        timer_factory: Callable[[float, Callable[[], None]], threading.Timer] = threading.Timer,
    ):
        """
        Args:
            delay_seconds: How long events are ignored after an accepted one
            timer_factory: Builds the scheduled task (threading.Timer signature)
        """
        self.delay_seconds = delay_seconds
        self._timer_factory = timer_factory
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    @property
    def is_pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def arm(self) -> bool:
        """Start the debounce window unless one is already running."""
        with self._lock:
            if self._timer is not None:
                return False

            timer = self._timer_factory(self.delay_seconds, lambda: self._expire(timer))
            timer.daemon = True
            self._timer = timer
            timer.start()
            return True

    def cancel(self) -> None:
        with self._lock:
            timer = self._timer
            self._timer = None

        if timer is not None:
            timer.cancel()
            log.debug("Pending debounce timer cancelled")

    def _expire(self, timer: threading.Timer) -> None:
        with self._lock:
            # A cancelled-then-rearmed gate owns a different timer now
            if self._timer is timer:
                self._timer = None
