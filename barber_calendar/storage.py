# barber_calendar/storage.py
"""
Storage collaborator on SQLModel.

The confirmed-slot invariant is enforced by the ``uq_confirmed_slot`` partial
unique index; an insert or update that violates it comes back as a
``conflict`` result no matter what pre-check the caller did.
"""

import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, List, Optional, TypeVar

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlmodel import Session, select

from .availability import CalendarContext
from .calendar_utils import iter_dates
from .config import (
    DEFAULT_BUNDESLAND,
    READ_RETRY_ATTEMPTS,
    READ_RETRY_DELAY_SECONDS,
    SLOT_MINUTES,
)
from .core import SlotKey
from .errors import SlotConflict, TransientIOError
from .models import (
    Appointment,
    ClosedDate,
    FreeDayException,
    OpenHoliday,
    OpeningHours,
    OpenSunday,
    OpenSundayStaff,
    Series,
    Setting,
    StaffMember,
    StaffTimeOff,
    StaffWorkingHours,
)
from .realtime import ChangeFeed, change_feed

logger = logging.getLogger(__name__)

T = TypeVar("T")

# fields that make up an appointment's content (identity and audit excluded)
APPOINTMENT_FIELDS = (
    "barber_id",
    "date",
    "time_slot",
    "service_id",
    "customer_name",
    "customer_phone",
    "customer_email",
    "customer_id",
    "status",
    "source",
    "series_id",
    "is_pause",
    "cancelled_by",
    "cancelled_at",
)


def appointment_snapshot(appt: Appointment) -> dict:
    return {name: getattr(appt, name) for name in APPOINTMENT_FIELDS}


def with_read_retry(
    load: Callable[[], T],
    attempts: int = READ_RETRY_ATTEMPTS,
    delay: float = READ_RETRY_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run a read-only load, retrying transient failures a bounded number of times."""
    last_error = None
    for attempt in range(1, attempts + 1):
        try:
            return load()
        except TransientIOError as e:
            last_error = e
            logger.warning(f"Read attempt {attempt}/{attempts} failed: {e}")
            if attempt < attempts:
                sleep(delay)
    raise TransientIOError(f"Load failed after {attempts} attempts") from last_error


@dataclass
class CreateResult:
    success: bool
    appointment: Optional[Appointment] = None
    error: Optional[str] = None  # "conflict" or "unknown"


class CalendarStore:
    def __init__(self, session: Session, feed: ChangeFeed = change_feed):
        self.session = session
        self.feed = feed

    # --- plumbing ---------------------------------------------------------

    def _all(self, stmt) -> list:
        try:
            return list(self.session.exec(stmt).all())
        except OperationalError as e:
            self.session.rollback()
            raise TransientIOError(str(e)) from e

    def _get(self, model, ident):
        try:
            return self.session.get(model, ident)
        except OperationalError as e:
            self.session.rollback()
            raise TransientIOError(str(e)) from e

    def _notify(self, changed_dates) -> None:
        if changed_dates:
            self.feed.publish(*changed_dates)
        else:
            self.feed.publish_all()

    def _save(self, obj, *changed_dates: date):
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        self._notify(changed_dates)
        return obj

    def _remove(self, obj, *changed_dates: date) -> None:
        self.session.delete(obj)
        self.session.commit()
        self._notify(changed_dates)

    # --- staff --------------------------------------------------------------

    def get_staff(self, staff_id: int) -> Optional[StaffMember]:
        return self._get(StaffMember, staff_id)

    def list_staff(self, active_only: bool = True) -> List[StaffMember]:
        stmt = select(StaffMember)
        if active_only:
            stmt = stmt.where(StaffMember.active == True)  # noqa: E712
        return self._all(stmt.order_by(StaffMember.sort_order, StaffMember.id))

    def create_staff(self, **fields) -> StaffMember:
        return self._save(StaffMember(**fields))

    # --- appointments -------------------------------------------------------

    def get_appointment(self, appointment_id: int) -> Optional[Appointment]:
        return self._get(Appointment, appointment_id)

    def get_appointments(self, start: date, end: date, include_cancelled: bool = False) -> List[Appointment]:
        """
        Appointments in ``[start, end]``.

        Cancelled rows are left out unless they carry a series id: those are
        exceptions and the calendar needs them to hide the occurrence.
        """
        stmt = select(Appointment).where(Appointment.date >= start).where(Appointment.date <= end)
        if not include_cancelled:
            stmt = stmt.where(
                or_(Appointment.status == "confirmed", Appointment.series_id != None)  # noqa: E711
            )
        return self._all(stmt.order_by(Appointment.date, Appointment.time_slot))

    def get_series_rows(self, series_id: int, day: Optional[date] = None, from_date: Optional[date] = None) -> List[Appointment]:
        stmt = select(Appointment).where(Appointment.series_id == series_id)
        if day is not None:
            stmt = stmt.where(Appointment.date == day)
        if from_date is not None:
            stmt = stmt.where(Appointment.date >= from_date)
        return self._all(stmt.order_by(Appointment.date))

    def create_appointment(self, fields: dict) -> CreateResult:
        appt = Appointment(**fields)
        self.session.add(appt)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            logger.info(
                f"Slot conflict on insert: barber={fields.get('barber_id')} "
                f"date={fields.get('date')} slot={fields.get('time_slot')}"
            )
            return CreateResult(success=False, error="conflict")
        except OperationalError as e:
            self.session.rollback()
            logger.error(f"Error creating appointment: {e}")
            return CreateResult(success=False, error="unknown")

        self.session.refresh(appt)
        self.feed.publish(appt.date)
        return CreateResult(success=True, appointment=appt)

    def update_appointment(self, appointment_id: int, **fields) -> Optional[Appointment]:
        appt = self.get_appointment(appointment_id)
        if appt is None:
            return None

        old_date = appt.date
        for name, value in fields.items():
            setattr(appt, name, value)
        key = SlotKey(appt.barber_id, appt.date, appt.time_slot)
        self.session.add(appt)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            logger.info(f"Slot conflict on update: {key}")
            raise SlotConflict(key)

        self.session.refresh(appt)
        self.feed.publish(old_date, appt.date)
        return appt

    def delete_appointment(self, appointment_id: int) -> bool:
        appt = self.get_appointment(appointment_id)
        if appt is None:
            return False
        self._remove(appt, appt.date)
        return True

    def delete_series_rows(
        self, series_id: int, from_date: Optional[date] = None, status: Optional[str] = None
    ) -> List[dict]:
        """Hard-delete a series' rows; returns their snapshots."""
        rows = self.get_series_rows(series_id, from_date=from_date)
        if status is not None:
            rows = [r for r in rows if r.status == status]

        snapshots = [appointment_snapshot(r) for r in rows]
        dates = {r.date for r in rows}
        for row in rows:
            self.session.delete(row)
        self.session.commit()
        self.feed.publish(*dates)
        return snapshots

    # --- series -------------------------------------------------------------

    def get_series(self, series_id: int) -> Optional[Series]:
        return self._get(Series, series_id)

    def list_series(self, barber_id: Optional[int] = None) -> List[Series]:
        stmt = select(Series)
        if barber_id is not None:
            stmt = stmt.where(Series.barber_id == barber_id)
        return self._all(stmt.order_by(Series.day_of_week, Series.time_slot))

    def create_series(self, fields: dict) -> Series:
        return self._save(Series(**fields))

    def update_series(self, series_id: int, **fields) -> Optional[Series]:
        series = self.get_series(series_id)
        if series is None:
            return None
        for name, value in fields.items():
            setattr(series, name, value)
        return self._save(series)

    def delete_series(self, series_id: int) -> bool:
        series = self.get_series(series_id)
        if series is None:
            return False
        self._remove(series)
        return True

    # --- time off -----------------------------------------------------------

    def get_time_off(self, time_off_id: int) -> Optional[StaffTimeOff]:
        return self._get(StaffTimeOff, time_off_id)

    def list_time_off(self, staff_id: Optional[int] = None) -> List[StaffTimeOff]:
        stmt = select(StaffTimeOff)
        if staff_id is not None:
            stmt = stmt.where(StaffTimeOff.staff_id == staff_id)
        return self._all(stmt.order_by(StaffTimeOff.start_date))

    def get_staff_time_off_for_range(self, start: date, end: date) -> List[StaffTimeOff]:
        # overlap: start_date <= end and end_date >= start
        stmt = select(StaffTimeOff).where(StaffTimeOff.start_date <= end).where(StaffTimeOff.end_date >= start)
        return self._all(stmt.order_by(StaffTimeOff.start_date))

    def create_staff_time_off(self, fields: dict) -> StaffTimeOff:
        block = StaffTimeOff(**fields)
        return self._save(block, *iter_dates(block.start_date, block.end_date))

    def update_staff_time_off(self, time_off_id: int, **fields) -> Optional[StaffTimeOff]:
        block = self.get_time_off(time_off_id)
        if block is None:
            return None
        old_dates = list(iter_dates(block.start_date, block.end_date))
        for name, value in fields.items():
            setattr(block, name, value)
        return self._save(block, *old_dates, *iter_dates(block.start_date, block.end_date))

    def delete_staff_time_off(self, time_off_id: int) -> bool:
        block = self.get_time_off(time_off_id)
        if block is None:
            return False
        self._remove(block, *iter_dates(block.start_date, block.end_date))
        return True

    # --- shop calendar ------------------------------------------------------

    def get_closed_dates(self) -> List[ClosedDate]:
        return self._all(select(ClosedDate).order_by(ClosedDate.date))

    def create_closed_date(self, day: date, reason: Optional[str] = None) -> ClosedDate:
        return self._save(ClosedDate(date=day, reason=reason), day)

    def _delete_dated(self, model, ident) -> bool:
        row = self._get(model, ident)
        if row is None:
            return False
        self._remove(row, row.date)
        return True

    def delete_closed_date(self, closed_date_id: int) -> bool:
        return self._delete_dated(ClosedDate, closed_date_id)

    def get_open_sundays(self) -> List[OpenSunday]:
        return self._all(select(OpenSunday).order_by(OpenSunday.date))

    def create_open_sunday(self, day: date, open_time: str, close_time: str) -> OpenSunday:
        return self._save(OpenSunday(date=day, open_time=open_time, close_time=close_time), day)

    def delete_open_sunday(self, open_sunday_id: int) -> bool:
        """Withdraw an open Sunday together with its staff assignments."""
        sunday = self._get(OpenSunday, open_sunday_id)
        if sunday is None:
            return False
        for assignment in self.get_open_sunday_staff_assignments(open_sunday_id):
            self.session.delete(assignment)
        self._remove(sunday, sunday.date)
        return True

    def get_open_sunday_staff_assignments(self, open_sunday_id: Optional[int] = None) -> List[OpenSundayStaff]:
        stmt = select(OpenSundayStaff)
        if open_sunday_id is not None:
            stmt = stmt.where(OpenSundayStaff.open_sunday_id == open_sunday_id)
        return self._all(stmt)

    def assign_open_sunday_staff(
        self, open_sunday_id: int, staff_id: int, start_time: Optional[str] = None, end_time: Optional[str] = None
    ) -> Optional[OpenSundayStaff]:
        sunday = self._get(OpenSunday, open_sunday_id)
        if sunday is None:
            return None
        assignment = OpenSundayStaff(
            open_sunday_id=open_sunday_id, staff_id=staff_id, start_time=start_time, end_time=end_time
        )
        return self._save(assignment, sunday.date)

    def remove_open_sunday_staff(self, open_sunday_id: int, staff_id: int) -> bool:
        rows = [a for a in self.get_open_sunday_staff_assignments(open_sunday_id) if a.staff_id == staff_id]
        if not rows:
            return False
        sunday = self._get(OpenSunday, open_sunday_id)
        self._remove(rows[0], sunday.date)
        return True

    def get_open_holidays(self) -> List[OpenHoliday]:
        return self._all(select(OpenHoliday).order_by(OpenHoliday.date))

    def create_open_holiday(self, day: date, reason: Optional[str] = None) -> OpenHoliday:
        return self._save(OpenHoliday(date=day, reason=reason), day)

    def delete_open_holiday(self, open_holiday_id: int) -> bool:
        return self._delete_dated(OpenHoliday, open_holiday_id)

    def get_staff_working_hours(self, staff_id: Optional[int] = None) -> List[StaffWorkingHours]:
        stmt = select(StaffWorkingHours)
        if staff_id is not None:
            stmt = stmt.where(StaffWorkingHours.staff_id == staff_id)
        return self._all(stmt.order_by(StaffWorkingHours.staff_id, StaffWorkingHours.day_of_week))

    def set_staff_working_hours(self, staff_id: int, day_of_week: int, start_time: str, end_time: str) -> StaffWorkingHours:
        rows = self._all(
            select(StaffWorkingHours)
            .where(StaffWorkingHours.staff_id == staff_id)
            .where(StaffWorkingHours.day_of_week == day_of_week)
        )
        row = rows[0] if rows else StaffWorkingHours(staff_id=staff_id, day_of_week=day_of_week, start_time=start_time, end_time=end_time)
        row.start_time = start_time
        row.end_time = end_time
        return self._save(row)

    def delete_staff_working_hours(self, staff_id: int, day_of_week: int) -> bool:
        """Drop an override so the staff member follows the opening hours again."""
        rows = self._all(
            select(StaffWorkingHours)
            .where(StaffWorkingHours.staff_id == staff_id)
            .where(StaffWorkingHours.day_of_week == day_of_week)
        )
        if not rows:
            return False
        self._remove(rows[0])
        return True

    def get_free_day_exceptions(self, staff_id: Optional[int] = None) -> List[FreeDayException]:
        stmt = select(FreeDayException)
        if staff_id is not None:
            stmt = stmt.where(FreeDayException.staff_id == staff_id)
        return self._all(stmt.order_by(FreeDayException.date))

    def create_free_day_exception(self, fields: dict) -> FreeDayException:
        exception = FreeDayException(**fields)
        dates = [exception.date] + ([exception.replacement_date] if exception.replacement_date else [])
        return self._save(exception, *dates)

    def delete_free_day_exception(self, exception_id: int, staff_id: Optional[int] = None) -> bool:
        exception = self._get(FreeDayException, exception_id)
        if exception is None or (staff_id is not None and exception.staff_id != staff_id):
            return False
        dates = [exception.date] + ([exception.replacement_date] if exception.replacement_date else [])
        self._remove(exception, *dates)
        return True

    def get_opening_hours(self) -> Dict[int, OpeningHours]:
        return {row.day_of_week: row for row in self._all(select(OpeningHours))}

    def set_opening_hours(
        self, day_of_week: int, open_time: Optional[str], close_time: Optional[str], is_closed: bool
    ) -> OpeningHours:
        row = self._get(OpeningHours, day_of_week) or OpeningHours(day_of_week=day_of_week)
        row.open_time = open_time
        row.close_time = close_time
        row.is_closed = is_closed
        return self._save(row)

    def get_setting(self, key: str, default=None):
        row = self._get(Setting, key)
        return row.value if row is not None else default

    def set_setting(self, key: str, value) -> Setting:
        row = self._get(Setting, key) or Setting(key=key)
        row.value = value
        return self._save(row)

    # --- bundles ------------------------------------------------------------

    def load_calendar_context(self, start: date, end: date, max_date: Optional[date] = None) -> CalendarContext:
        """Everything the availability resolver needs for ``[start, end]``, with bounded retry."""

        def load() -> CalendarContext:
            open_sundays = {s.date: s for s in self.get_open_sundays()}
            return CalendarContext(
                opening_hours=self.get_opening_hours(),
                working_hours=self.get_staff_working_hours(),
                free_day_exceptions=self.get_free_day_exceptions(),
                time_off=self.get_staff_time_off_for_range(start, end),
                closed_dates={c.date: c.reason for c in self.get_closed_dates()},
                open_sundays=open_sundays,
                open_sunday_staff=self.get_open_sunday_staff_assignments(),
                open_holidays={h.date for h in self.get_open_holidays()},
                bundesland=self.get_setting("bundesland", DEFAULT_BUNDESLAND),
                bucket_minutes=SLOT_MINUTES,
                max_date=max_date,
            )

        return with_read_retry(load)
