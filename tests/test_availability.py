"""
Tests for the availability resolver.

All inputs are plain model instances, nothing touches the database.
"""

from datetime import date, datetime

from barber_calendar.availability import (
    CalendarContext,
    available_slots,
    booking_horizon,
    resolve_day,
    week_availability,
)
from barber_calendar.calendar_utils import generate_slot_grid
from barber_calendar.models import (
    Appointment,
    FreeDayException,
    OpeningHours,
    OpenSunday,
    OpenSundayStaff,
    Series,
    StaffMember,
    StaffTimeOff,
    StaffWorkingHours,
)

NOW = datetime(2024, 5, 27, 8, 0)  # Monday
GRID = generate_slot_grid("08:00", "20:00", 30)
MAX = StaffMember(id=1, name="Max", free_day=1)
TOM = StaffMember(id=2, name="Tom")

MONDAY = date(2024, 6, 3)
TUESDAY = date(2024, 6, 4)
SUNDAY = date(2024, 6, 9)


def context(**overrides):
    hours = {d: OpeningHours(day_of_week=d, open_time="09:00", close_time="18:00") for d in range(1, 7)}
    hours[7] = OpeningHours(day_of_week=7, is_closed=True)
    ctx = CalendarContext(opening_hours=hours, bundesland="NW")
    for name, value in overrides.items():
        setattr(ctx, name, value)
    return ctx


def slots(staff, day, ctx=None, appointments=(), series_list=(), now=NOW):
    return available_slots(staff, day, GRID, appointments, series_list, ctx or context(), now)


class TestDayGating:
    def test_regular_day_uses_opening_hours(self):
        result = slots(TOM, TUESDAY)
        assert result[0] == "09:00"
        assert result[-1] == "17:30"
        assert len(result) == 18

    def test_past_day(self):
        assert resolve_day(TOM, date(2024, 5, 24), context(), NOW).reason == "past"

    def test_closed_date(self):
        assert slots(TOM, TUESDAY, context(closed_dates={TUESDAY: "Renovation"})) == []

    def test_holiday_and_open_override(self):
        fronleichnam = date(2024, 5, 30)
        assert resolve_day(TOM, fronleichnam, context(), NOW).reason == "holiday"
        assert slots(TOM, fronleichnam, context(open_holidays={fronleichnam})) != []
        # not a holiday in Berlin
        assert slots(TOM, fronleichnam, context(bundesland="BE")) != []

    def test_booking_horizon(self):
        ctx = context(max_date=booking_horizon(NOW.date(), 1))
        assert ctx.max_date == date(2024, 6, 3)
        assert slots(TOM, date(2024, 6, 3), ctx) != []
        assert resolve_day(TOM, date(2024, 6, 4), ctx, NOW).reason == "beyond_booking_horizon"


class TestSundays:
    def test_plain_sunday_is_closed(self):
        assert resolve_day(TOM, SUNDAY, context(), NOW).reason == "sunday"

    def test_open_sunday_needs_assignment(self):
        sunday = OpenSunday(id=5, date=SUNDAY, open_time="12:00", close_time="16:00")
        ctx = context(open_sundays={SUNDAY: sunday})
        assert resolve_day(TOM, SUNDAY, ctx, NOW).reason == "not_assigned"

        ctx.open_sunday_staff = [OpenSundayStaff(open_sunday_id=5, staff_id=2)]
        assert slots(TOM, SUNDAY, ctx) == ["12:00", "12:30", "13:00", "13:30", "14:00", "14:30", "15:00", "15:30"]

    def test_staff_window_on_open_sunday(self):
        sunday = OpenSunday(id=5, date=SUNDAY, open_time="12:00", close_time="16:00")
        ctx = context(
            open_sundays={SUNDAY: sunday},
            open_sunday_staff=[OpenSundayStaff(open_sunday_id=5, staff_id=2, start_time="13:00", end_time="14:00")],
        )
        assert slots(TOM, SUNDAY, ctx) == ["13:00", "13:30"]


class TestStaffDay:
    def test_free_day_without_exception(self):
        assert resolve_day(MAX, MONDAY, context(), NOW).reason == "free_day"

    def test_free_day_exception_with_custom_hours(self):
        exception = FreeDayException(staff_id=1, date=MONDAY, start_time="10:00", end_time="14:00")
        result = slots(MAX, MONDAY, context(free_day_exceptions=[exception]))
        assert result == ["10:00", "10:30", "11:00", "11:30", "12:00", "12:30", "13:00", "13:30"]

    def test_replacement_date_is_off(self):
        exception = FreeDayException(staff_id=1, date=MONDAY, replacement_date=TUESDAY)
        ctx = context(free_day_exceptions=[exception])
        assert resolve_day(MAX, TUESDAY, ctx, NOW).reason == "replacement_day"
        # without custom hours the exception day falls back to opening hours
        assert len(slots(MAX, MONDAY, ctx)) == 18

    def test_full_day_time_off(self):
        vacation = StaffTimeOff(staff_id=2, start_date=TUESDAY, end_date=date(2024, 6, 7))
        assert resolve_day(TOM, date(2024, 6, 5), context(time_off=[vacation]), NOW).reason == "time_off"

    def test_working_hours_override_opening_hours(self):
        own = StaffWorkingHours(staff_id=2, day_of_week=2, start_time="12:00", end_time="14:00")
        assert slots(TOM, TUESDAY, context(working_hours=[own])) == ["12:00", "12:30", "13:00", "13:30"]

    def test_closed_weekday(self):
        ctx = context()
        ctx.opening_hours[2] = OpeningHours(day_of_week=2, is_closed=True)
        assert resolve_day(TOM, TUESDAY, ctx, NOW).reason == "closed_weekday"


class TestSlotFiltering:
    def test_booked_and_series_slots_are_removed(self):
        booked = Appointment(id=1, barber_id=2, date=TUESDAY, time_slot="10:00", customer_name="A")
        cancelled = Appointment(
            id=2, barber_id=2, date=TUESDAY, time_slot="11:00", customer_name="B", status="cancelled"
        )
        weekly = Series(
            id=3,
            barber_id=2,
            day_of_week=2,
            time_slot="15:00",
            customer_name="C",
            start_date=date(2024, 1, 2),
            interval_type="weekly",
        )
        result = slots(TOM, TUESDAY, appointments=[booked, cancelled], series_list=[weekly])
        assert "10:00" not in result
        assert "11:00" in result
        assert "15:00" not in result

    def test_partial_time_off_end_label_is_blocked(self):
        lunch = StaffTimeOff(staff_id=2, start_date=TUESDAY, end_date=TUESDAY, start_time="12:00", end_time="13:00")
        result = slots(TOM, TUESDAY, context(time_off=[lunch]))
        assert "11:30" in result
        assert not {"12:00", "12:30", "13:00"} & set(result)
        assert "13:30" in result

    def test_started_slots_disappear_today(self):
        now = datetime(2024, 6, 4, 10, 15)
        result = slots(TOM, TUESDAY, now=now)
        assert result[0] == "10:30"

    def test_result_is_subset_of_grid(self):
        result = slots(TOM, TUESDAY)
        assert set(result) <= set(generate_slot_grid("09:00", "18:00", 30))
        assert result == sorted(set(result))

    def test_week_availability(self):
        week = week_availability(TOM, MONDAY, GRID, [], [], context(), NOW)
        assert list(week) == [date(2024, 6, d) for d in range(3, 10)]
        assert week[SUNDAY] == []
        assert len(week[MONDAY]) == 18
