"""Clock collaborator — the single temporal input to the engine.

The engine never advances time. It samples ``now()`` exactly once per
operation and uses that value for every accrual computed in the call.
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Monotonically non-decreasing integer time source (seconds)."""

    def now(self) -> int:
        ...


class SystemClock:
    """Wall-clock seconds, clamped so it never runs backwards."""

    def __init__(self) -> None:
        self._last = 0

    def now(self) -> int:
        current = int(time.time())
        if current < self._last:
            current = self._last
        self._last = current
        return current


class ManualClock:
    """Externally driven clock for simulations and tests.

    Usage:
        clock = ManualClock(start=1_000)
        clock.advance(3600)
        clock.now()  # 4600
    """

    def __init__(self, start: int = 0) -> None:
        if start < 0:
            raise ValueError("Clock cannot start before zero")
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        """Move time forward by ``seconds`` and return the new time."""
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self._now += seconds
        return self._now

    def set(self, timestamp: int) -> int:
        """Jump to an absolute time at or after the current time."""
        if timestamp < self._now:
            raise ValueError(
                f"Clock cannot move backwards: {timestamp} < {self._now}"
            )
        self._now = timestamp
        return self._now
