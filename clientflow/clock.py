"""
clientflow.clock
================

Injectable wall‑clock so the executor never calls ``datetime.now()``
directly and tests can pin or step time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


class Clock(ABC):
    """Source of timezone‑aware UTC timestamps."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    """Production clock (actual system time)."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value until :pymeth:`advance` is called.
    With ``step`` set, every call to ``now()`` moves time forward by that
    many seconds *after* returning, which gives strictly increasing
    timestamps without manual bookkeeping.
    """

    def __init__(self, start: Optional[datetime] = None, step: float = 0.0):
        self._now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        if self._now.tzinfo is None:
            raise ValueError("FixedClock start must be timezone-aware")
        self._step = timedelta(seconds=step)

    def now(self) -> datetime:
        current = self._now
        self._now += self._step
        return current

    def advance(self, seconds: float = 1.0) -> datetime:
        self._now += timedelta(seconds=seconds)
        return self._now
