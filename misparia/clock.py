from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    Sessions read time only through this interface so timers can be driven
    by a ``FakeClock`` in tests and headless simulations.
    """

    def now(self) -> float:
        """Return monotonic seconds."""
        ...


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, *, start: float = 0.0) -> None:
        self._t = float(start)

    def now(self) -> float:
        return self._t

    def advance(self, dt: float) -> None:
        if dt < 0:
            raise ValueError("dt must be non-negative")
        self._t += float(dt)
