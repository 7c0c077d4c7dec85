# barber_calendar/recurrence.py
"""
Recurrence rules of a Series.

Occurrences are computed facts, never stored: ``is_series_due`` answers for a
single date and ``iter_due_dates`` projects a series onto a date window.
"""

from datetime import date, timedelta
from typing import Iterator, Optional

from .calendar_utils import whole_days_between

INTERVAL_TYPES = ("weekly", "biweekly", "monthly", "custom")


def interval_weeks(series) -> Optional[int]:
    """Week step of a series, or None for monthly series."""
    if series.interval_type == "weekly":
        return 1
    if series.interval_type == "biweekly":
        return 2
    if series.interval_type == "custom":
        if not series.interval_weeks or series.interval_weeks < 1:
            raise ValueError("custom series need interval_weeks >= 1")
        return series.interval_weeks
    if series.interval_type == "monthly":
        return None
    raise ValueError(f"Unknown interval_type: {series.interval_type!r}")


def in_series_range(series, day: date) -> bool:
    if day < series.start_date:
        return False
    return series.end_date is None or day <= series.end_date


def is_series_due(series, day: date) -> bool:
    if not in_series_range(series, day):
        return False
    if day.isoweekday() != series.day_of_week:
        return False

    if series.interval_type == "monthly":
        # months without the start's day-of-month are skipped, not clamped
        return day.day == series.start_date.day

    step = interval_weeks(series)
    if step == 1:
        return True

    weeks = whole_days_between(series.start_date, day) // 7
    return weeks >= 0 and weeks % step == 0


def first_matching_weekday(series, day: date) -> date:
    offset = (series.day_of_week - day.isoweekday()) % 7
    return day + timedelta(days=offset)


def iter_due_dates(series, from_date: date, until: date) -> Iterator[date]:
    """Due dates in ``[from_date, until)`` in ascending order."""
    start = max(from_date, series.start_date)
    current = first_matching_weekday(series, start)
    while current < until:
        if series.end_date is not None and current > series.end_date:
            break
        if is_series_due(series, current):
            yield current
        current += timedelta(days=7)
