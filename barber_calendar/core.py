# barber_calendar/core.py

from datetime import date, datetime
from typing import NamedTuple
from zoneinfo import ZoneInfo

from .config import SHOP_TIMEZONE


class SlotKey(NamedTuple):
    """Composite key of one bookable cell: (staff, date, time label)."""

    barber_id: int
    date: date
    time_slot: str


def overlaps(start_a, end_a, start_b, end_b) -> bool:
    # half-open intervals: touching ranges do not overlap
    return start_a < end_b and start_b < end_a


class SystemClock:
    """Reads the wall clock in the shop's local timezone."""

    def __init__(self, tz_name: str = SHOP_TIMEZONE):
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        # naive local time; dates and labels are compared in local terms only
        return datetime.now(self.tz).replace(tzinfo=None)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Clock pinned to a given local time; advance it by assigning ``current``."""

    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self.current.date()
