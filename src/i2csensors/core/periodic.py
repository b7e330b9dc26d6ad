"""
Background timer used by continuous-sampling drivers.

The schedule is drift-corrected: each tick targets the *previous target*
time plus one period, so a slow callback does not stretch the long-term rate.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTimer:
    """Call ``callback`` after ``initial_delay`` s, then every ``period`` s."""

    def __init__(
        self,
        callback: Callable[[], None],
        initial_delay: float,
        period: float,
        *,
        name: str = "periodic-timer",
    ) -> None:
        if period <= 0:
            raise ValueError("period must be positive")
        self._callback = callback
        self._initial_delay = max(0.0, float(initial_delay))
        self._period = float(period)
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def running(self) -> bool:
        return self._thread.is_alive() and not self._stop.is_set()

    def start(self) -> None:
        self._thread.start()

    def cancel(self, timeout: Optional[float] = 2.0) -> None:
        """Stop the timer; a tick already in progress is allowed to finish."""
        self._stop.set()
        # A callback may cancel its own timer (e.g. a subscriber reconfiguring
        # the sensor); joining would deadlock in that case.
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout)

    def _run(self) -> None:
        next_t = time.monotonic() + self._initial_delay
        while not self._stop.wait(max(0.0, next_t - time.monotonic())):
            try:
                self._callback()
            except Exception:
                logger.exception("Periodic timer callback failed")
            next_t += self._period
            now = time.monotonic()
            if next_t < now:
                # Skip missed ticks instead of firing a burst.
                missed = int((now - next_t) // self._period) + 1
                logger.debug("Periodic timer overran by %d tick(s)", missed)
                next_t += missed * self._period
