# barber_calendar/availability.py
"""
Bookable slots of one staff member on one date.

Everything here is a pure function of its arguments (the clock reading is
passed in as ``now``), so results can be recomputed from freshly fetched
data at any time.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Set

from .calendar_utils import normalize_label, slot_has_started, slot_within_hours, week_dates
from .config import DEFAULT_BUNDESLAND, SLOT_MINUTES
from .holidays import get_holidays
from .occupancy import merge_occupants, occupied_labels


@dataclass
class CalendarContext:
    """Shop-wide and per-staff calendar facts for a date window."""

    opening_hours: Dict[int, object] = field(default_factory=dict)  # weekday -> OpeningHours
    working_hours: List[object] = field(default_factory=list)
    free_day_exceptions: List[object] = field(default_factory=list)
    time_off: List[object] = field(default_factory=list)
    closed_dates: Dict[date, Optional[str]] = field(default_factory=dict)  # date -> reason
    open_sundays: Dict[date, object] = field(default_factory=dict)
    open_sunday_staff: List[object] = field(default_factory=list)
    open_holidays: Set[date] = field(default_factory=set)
    bundesland: str = DEFAULT_BUNDESLAND
    bucket_minutes: int = SLOT_MINUTES
    max_date: Optional[date] = None  # last bookable date, None for unlimited


@dataclass
class DayResolution:
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    reason: Optional[str] = None  # why the day yields nothing
    partial_time_off: List[object] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.reason is None


def _closed(reason: str) -> DayResolution:
    return DayResolution(reason=reason)


def _time_off_for(ctx: CalendarContext, staff_id: int, day: date):
    return [t for t in ctx.time_off if t.staff_id == staff_id and t.start_date <= day <= t.end_date]


def _sunday_assignment(ctx: CalendarContext, staff_id: int, open_sunday):
    for assignment in ctx.open_sunday_staff:
        if assignment.open_sunday_id == open_sunday.id and assignment.staff_id == staff_id:
            return assignment
    return None


def blocked_by_time_off(time_off, label: str) -> bool:
    """Whether a slot label falls into a time-off record (inclusive end label)."""
    if time_off.start_time is None or time_off.end_time is None:
        return True
    return normalize_label(time_off.start_time) <= label <= normalize_label(time_off.end_time)


def resolve_day(staff, day: date, ctx: CalendarContext, now: datetime) -> DayResolution:
    """Day gating, staff-day gating and effective hours, in that order."""
    weekday = day.isoweekday()

    # 1. day gating
    if day < now.date():
        return _closed("past")
    if ctx.max_date is not None and day > ctx.max_date:
        return _closed("beyond_booking_horizon")
    if day in ctx.closed_dates:
        return _closed("closed")
    if day in get_holidays(day.year, ctx.bundesland) and day not in ctx.open_holidays:
        return _closed("holiday")

    sunday_hours = None
    if weekday == 7:
        open_sunday = ctx.open_sundays.get(day)
        if open_sunday is None:
            return _closed("sunday")
        assignment = _sunday_assignment(ctx, staff.id, open_sunday)
        if assignment is None:
            return _closed("not_assigned")
        sunday_hours = (
            assignment.start_time or open_sunday.open_time,
            assignment.end_time or open_sunday.close_time,
        )

    # 2. staff-day gating
    exceptions = [e for e in ctx.free_day_exceptions if e.staff_id == staff.id]
    exception = next((e for e in exceptions if e.date == day), None)
    if staff.free_day is not None and staff.free_day == weekday and exception is None:
        return _closed("free_day")
    if any(e.replacement_date == day for e in exceptions):
        return _closed("replacement_day")

    absences = _time_off_for(ctx, staff.id, day)
    if any(t.is_full_day for t in absences):
        return _closed("time_off")

    # 3. effective hours
    if sunday_hours is not None:
        open_time, close_time = sunday_hours
    elif exception is not None and exception.start_time and exception.end_time:
        open_time, close_time = exception.start_time, exception.end_time
    else:
        own = next(
            (w for w in ctx.working_hours if w.staff_id == staff.id and w.day_of_week == weekday),
            None,
        )
        if own is not None:
            open_time, close_time = own.start_time, own.end_time
        else:
            shop = ctx.opening_hours.get(weekday)
            if shop is None or shop.is_closed or not shop.open_time or not shop.close_time:
                return _closed("closed_weekday")
            open_time, close_time = shop.open_time, shop.close_time

    return DayResolution(
        open_time=normalize_label(open_time),
        close_time=normalize_label(close_time),
        partial_time_off=absences,
    )


def available_slots(
    staff,
    day: date,
    all_slots: Iterable[str],
    appointments: Iterable,
    series_list: Iterable,
    ctx: CalendarContext,
    now: datetime,
) -> List[str]:
    """Ascending, duplicate-free labels ``staff`` can still be booked into on ``day``."""
    resolution = resolve_day(staff, day, ctx, now)
    if not resolution.is_open:
        return []

    appointments = [a for a in appointments if a.barber_id == staff.id and a.date == day]
    series_list = [s for s in series_list if s.barber_id == staff.id]
    taken = occupied_labels(merge_occupants(appointments, series_list, [day]), staff.id, day)

    result = set()
    for raw in all_slots:
        label = normalize_label(raw)
        if not slot_within_hours(label, resolution.open_time, resolution.close_time, ctx.bucket_minutes):
            continue
        if day == now.date() and slot_has_started(day, label, now):
            continue
        if label in taken:
            continue
        if any(blocked_by_time_off(t, label) for t in resolution.partial_time_off):
            continue
        result.add(label)

    return sorted(result)


def week_availability(
    staff,
    monday: date,
    all_slots: Iterable[str],
    appointments: Iterable,
    series_list: Iterable,
    ctx: CalendarContext,
    now: datetime,
) -> Dict[date, List[str]]:
    all_slots = list(all_slots)
    appointments = list(appointments)
    series_list = list(series_list)
    return {
        day: available_slots(staff, day, all_slots, appointments, series_list, ctx, now)
        for day in week_dates(monday)
    }


def booking_horizon(today: date, advance_weeks: int) -> date:
    return today + timedelta(weeks=advance_weeks)

