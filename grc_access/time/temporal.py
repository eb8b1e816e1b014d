"""
GRC Access Time - Temporal Helpers
==================================
Pure functions for expiry logic.
All functions take explicit datetime arguments; none read a clock.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional


def is_active_until(deadline: Optional[datetime], now: datetime) -> bool:
    """
    True iff `deadline` is set and strictly in the future.

    Shared by lockout (`locked_until`) and assignment expiry
    (`expires_at`): a deadline at or before `now` counts as elapsed.
    """
    if deadline is None:
        return False
    return deadline > now


def minutes_from(now: datetime, minutes: int) -> datetime:
    """Return `now` shifted forward by a whole number of minutes."""
    if not isinstance(minutes, int) or isinstance(minutes, bool) or minutes <= 0:
        raise ValueError("minutes must be a positive integer.")
    return now + timedelta(minutes=minutes)
