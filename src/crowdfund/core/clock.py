"""
Time sources for deadline checks.

The ledger reads "now" through a Clock so deadlines can be driven
explicitly in tests and simulations.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Source of the current Unix time in whole seconds."""

    @abstractmethod
    def now(self) -> int:
        """Return the current time."""
        ...


class SystemClock(Clock):
    """Wall-clock time."""

    def now(self) -> int:
        return int(time.time())


class ManualClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: int = 0) -> None:
        self._now = start

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> None:
        """Jump to an absolute time."""
        self._now = timestamp

    def advance(self, seconds: int) -> int:
        """Move forward and return the new time."""
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self._now += seconds
        return self._now
