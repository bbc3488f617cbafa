"""
Wall-clock source for the ETA engine.

Throttle gates, transit countdowns and movement timestamps all read time
through a Clock so they can be driven deterministically in tests.
"""
import time
from typing import Protocol


class Clock(Protocol):
    def now_ms(self) -> int:
        """Current wall-clock time in epoch milliseconds."""
        ...


class SystemClock:
    """Clock backed by time.time()."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)
