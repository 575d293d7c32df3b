from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic millisecond clock.

    Engine code reads time only through this interface so tests can drive it.
    """

    def now_ms(self) -> float:
        """Return monotonic milliseconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0
