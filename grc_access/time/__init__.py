"""
GRC Access Time - Public API
============================
Explicit clock protocol and expiry helpers.
"""

from grc_access.time.clock import (
    Clock,
    FixedClock,
    SystemClock,
    get_default_clock,
    now_utc,
    set_default_clock,
)
from grc_access.time.temporal import is_active_until, minutes_from

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "get_default_clock",
    "set_default_clock",
    "now_utc",
    "is_active_until",
    "minutes_from",
]
