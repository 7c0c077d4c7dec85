# barber_calendar/calendar_utils.py
"""
Local-date arithmetic and the slot grid.

Dates are plain ``datetime.date`` values in the shop's local calendar and
time labels are zero-padded ``"HH:MM"`` strings, so label order equals
chronological order.
"""

from datetime import date, datetime, time, timedelta
from typing import Iterator, List, Optional, Union

from .config import SLOT_MINUTES, WEEK_CUTOVER_HOUR


def local_date_key(value: Union[date, datetime]) -> str:
    """Canonical ``YYYY-MM-DD`` of a local date (never shifted to UTC)."""
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime("%Y-%m-%d")


def parse_date_key(value: str) -> date:
    return datetime.strptime(value, "%Y-%m-%d").date()


def weekday_number(day: date) -> int:
    # 1=Mon .. 7=Sun
    return day.isoweekday()


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Every date from ``start`` to ``end``, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def whole_days_between(start: date, end: date) -> int:
    # date ordinals are calendar days, so DST never skews the difference
    return end.toordinal() - start.toordinal()


def monday_of_week(now: datetime, offset_weeks: int = 0, cutover_hour: int = WEEK_CUTOVER_HOUR) -> date:
    """
    Monday of the week shown for ``offset_weeks``.

    On Sundays, and on Saturdays from ``cutover_hour`` on, the current week
    is over for booking purposes and offset 0 already means next week.
    """
    today = now.date()
    is_sunday = today.isoweekday() == 7
    is_late_saturday = today.isoweekday() == 6 and now.hour >= cutover_hour
    auto_offset = 1 if (is_sunday or is_late_saturday) else 0

    monday = today - timedelta(days=today.weekday())
    return monday + timedelta(weeks=offset_weeks + auto_offset)


def week_dates(monday: date) -> List[date]:
    return [monday + timedelta(days=i) for i in range(7)]


def iso_week_number(day: date) -> int:
    return day.isocalendar()[1]


def normalize_label(value: Union[str, time]) -> str:
    """Accepts ``time`` objects, ``"9:00"`` or ``"09:00:00"`` and returns ``"09:00"``."""
    if isinstance(value, time):
        return value.strftime("%H:%M")
    parts = value.strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time label: {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Invalid time label: {value!r}")
    return f"{hours:02d}:{minutes:02d}"


def label_to_minutes(label: str) -> int:
    hours, minutes = normalize_label(label).split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_label(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


def next_slot(label: str, bucket_minutes: int = SLOT_MINUTES) -> str:
    return minutes_to_label(label_to_minutes(label) + bucket_minutes)


def prev_slot(label: str, bucket_minutes: int = SLOT_MINUTES) -> Optional[str]:
    minutes = label_to_minutes(label) - bucket_minutes
    if minutes < 0:
        return None
    return minutes_to_label(minutes)


def generate_slot_grid(open_time: str, close_time: str, bucket_minutes: int = SLOT_MINUTES) -> List[str]:
    """
    Start labels of every bucket that fits completely into ``[open, close)``.

    A pure function of its bounds: calling it again yields the same list.
    """
    if bucket_minutes <= 0:
        raise ValueError("bucket_minutes must be positive")

    start = label_to_minutes(open_time)
    end = label_to_minutes(close_time)

    labels = []
    current = start
    while current + bucket_minutes <= end:
        labels.append(minutes_to_label(current))
        current += bucket_minutes
    return labels


def slot_within_hours(label: str, open_time: str, close_time: str, bucket_minutes: int = SLOT_MINUTES) -> bool:
    start = label_to_minutes(label)
    return label_to_minutes(open_time) <= start and start + bucket_minutes <= label_to_minutes(close_time)


def current_slot_label(
    now: datetime, open_time: str, close_time: str, bucket_minutes: int = SLOT_MINUTES
) -> Optional[str]:
    """The bucket ``now`` falls into, or None outside business hours."""
    open_minutes = label_to_minutes(open_time)
    close_minutes = label_to_minutes(close_time)
    now_minutes = now.hour * 60 + now.minute

    if now_minutes < open_minutes or now_minutes >= close_minutes:
        return None

    floored = open_minutes + ((now_minutes - open_minutes) // bucket_minutes) * bucket_minutes
    return minutes_to_label(floored)


def slot_has_started(day: date, label: str, now: datetime) -> bool:
    start = datetime.combine(day, time.fromisoformat(normalize_label(label)))
    return start <= now
