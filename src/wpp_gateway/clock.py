"""Calendar-day source for quota accounting."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime
from zoneinfo import ZoneInfo

Clock = Callable[[], date]


def make_clock(timezone: str = "UTC") -> Clock:
    """Return a callable giving today's date in ``timezone``.

    Quota counters roll over at local midnight of this zone, so every
    component asking "what day is it" must share one clock.
    """
    tz = ZoneInfo(timezone)

    def today() -> date:
        return datetime.now(tz).date()

    return today
