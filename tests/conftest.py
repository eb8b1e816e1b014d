from __future__ import annotations

from datetime import datetime, timezone

import pytest

from grc_access.time.clock import FixedClock, set_default_clock

T0 = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_clock():
    clock = FixedClock(T0)
    set_default_clock(clock)
    yield clock
    set_default_clock(None)
