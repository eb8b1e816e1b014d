"""
GRC Access Time - Clock
=======================
Lock deadlines, assignment expiry and audit timestamps all read "now"
through one seam. Services accept an optional Clock and otherwise fall
back to the process default, which tests pin with FixedClock.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol


class Clock(Protocol):
    def now_utc(self) -> datetime:
        ...  # pragma: no cover


class SystemClock:
    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    A clock that only moves when told to.

    Lockout and expiry tests step it past a deadline instead of sleeping:

        clock = FixedClock(locked_at)
        clock.advance(timedelta(minutes=30))
    """

    def __init__(self, instant: datetime) -> None:
        if instant.utcoffset() is None:
            raise ValueError("FixedClock requires a timezone-aware datetime.")
        self._instant = instant.astimezone(timezone.utc)

    def now_utc(self) -> datetime:
        return self._instant

    def advance(self, delta: timedelta) -> datetime:
        if delta < timedelta(0):
            raise ValueError("FixedClock cannot move backwards.")
        self._instant = self._instant + delta
        return self._instant


_default_clock: Clock = SystemClock()


def set_default_clock(clock: Optional[Clock]) -> None:
    """Swap the process-wide clock. ``None`` restores the system clock."""
    global _default_clock
    _default_clock = clock if clock is not None else SystemClock()


def get_default_clock() -> Clock:
    return _default_clock


def now_utc(clock: Optional[Clock] = None) -> datetime:
    """Read ``clock`` if one was injected, else the process default."""
    return (clock or _default_clock).now_utc()
