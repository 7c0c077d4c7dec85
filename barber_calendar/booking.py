# barber_calendar/booking.py
"""
Booking engine: every mutation of appointments and series goes through here.

Each write re-checks the slot invariant against current storage state
(``conflicts.ensure_slot_free``) and then treats a late ``conflict`` from
storage as the authoritative answer.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from .availability import available_slots, booking_horizon, week_availability
from .calendar_utils import generate_slot_grid, label_to_minutes, monday_of_week, normalize_label, week_dates
from .config import (
    DEFAULT_BOOKING_ADVANCE_WEEKS,
    DEFAULT_CANCELLATION_HOURS,
    GRID_CLOSE_TIME,
    GRID_OPEN_TIME,
    SERIES_HORIZON_WEEKS,
    SLOT_MINUTES,
)
from .conflicts import collect_occupants, ensure_slot_free, occupant_at
from .core import SlotKey, SystemClock
from .errors import CancellationWindowClosed, NotFound, SchedulingError, SlotConflict, ValidationError
from .models import Appointment, Series
from .recurrence import interval_weeks, is_series_due, iter_due_dates
from .storage import appointment_snapshot

logger = logging.getLogger(__name__)

PAUSE_PREFIX = "Pause - "
CONTACT_FIELDS = ("customer_name", "customer_phone", "customer_email")


@dataclass
class SeriesGenerationResult:
    created_dates: List[date] = field(default_factory=list)
    skipped_dates: List[date] = field(default_factory=list)  # slot already taken
    exception_dates: List[date] = field(default_factory=list)  # series already has a row that day
    failed_dates: List[date] = field(default_factory=list)

    @property
    def created(self) -> int:
        return len(self.created_dates)

    @property
    def skipped(self) -> int:
        return len(self.skipped_dates)

    @property
    def total(self) -> int:
        return self.created + self.skipped + len(self.exception_dates) + len(self.failed_dates)


@dataclass
class SeriesResult:
    series: Series
    generation: SeriesGenerationResult


@dataclass
class DeletionRecord:
    """What a destructive operation removed: content snapshots plus exception rows it added."""

    appointments: List[dict] = field(default_factory=list)
    series_cancellation_ids: List[int] = field(default_factory=list)

    def extend(self, other: "DeletionRecord") -> None:
        self.appointments.extend(other.appointments)
        self.series_cancellation_ids.extend(other.series_cancellation_ids)

    def __bool__(self) -> bool:
        return bool(self.appointments or self.series_cancellation_ids)


def pause_name(name: str) -> str:
    return name if "pause" in name.lower() else f"{PAUSE_PREFIX}{name}"


class BookingEngine:
    def __init__(
        self,
        store,
        clock=None,
        cache=None,
        horizon_weeks: int = SERIES_HORIZON_WEEKS,
        bucket_minutes: int = SLOT_MINUTES,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.cache = cache
        self.horizon_weeks = horizon_weeks
        self.bucket_minutes = bucket_minutes
        self.all_slots = generate_slot_grid(GRID_OPEN_TIME, GRID_CLOSE_TIME, bucket_minutes)

    # --- helpers ------------------------------------------------------------

    def _appointment(self, appointment_id: int) -> Appointment:
        appt = self.store.get_appointment(appointment_id)
        if appt is None:
            raise NotFound("Appointment", appointment_id)
        return appt

    def _series(self, series_id: int) -> Series:
        series = self.store.get_series(series_id)
        if series is None:
            raise NotFound("Series", series_id)
        return series

    def _staff(self, staff_id: int):
        staff = self.store.get_staff(staff_id)
        if staff is None:
            raise NotFound("Staff", staff_id)
        return staff

    @staticmethod
    def _label(value) -> str:
        try:
            return normalize_label(value)
        except ValueError as e:
            raise ValidationError(str(e)) from e

    def _validate_booking(self, fields: dict, require_email: bool = False) -> dict:
        fields = dict(fields)
        name = (fields.get("customer_name") or "").strip()
        if not name:
            raise ValidationError("customer_name is required")
        if require_email and not (fields.get("customer_email") or "").strip():
            raise ValidationError("customer_email is required to create an account")
        fields["customer_name"] = name
        fields["time_slot"] = self._label(fields["time_slot"])
        return fields

    def _insert(self, fields: dict) -> Appointment:
        result = self.store.create_appointment(fields)
        if result.success:
            return result.appointment
        key = SlotKey(fields["barber_id"], fields["date"], fields["time_slot"])
        if result.error == "conflict":
            raise SlotConflict(key)
        raise SchedulingError(f"Could not create appointment at {key}")

    def _exception_row(self, series: Series, day: date, time_slot: Optional[str] = None) -> Appointment:
        """Cancelled row that hides the series occurrence on ``day``."""
        return self._insert(
            {
                "barber_id": series.barber_id,
                "date": day,
                "time_slot": time_slot or series.time_slot,
                "service_id": series.service_id,
                "customer_name": series.customer_name,
                "customer_phone": series.customer_phone,
                "customer_email": series.customer_email,
                "status": "cancelled",
                "source": "manual",
                "series_id": series.id,
                "is_pause": series.is_pause,
                "cancelled_by": "barber",
                "cancelled_at": self.clock.now(),
            }
        )

    # --- availability -------------------------------------------------------

    def booking_limit(self) -> date:
        weeks = int(self.store.get_setting("booking_advance_weeks", DEFAULT_BOOKING_ADVANCE_WEEKS))
        return booking_horizon(self.clock.today(), weeks)

    def slots_for_day(self, staff_id: int, day: date, online: bool = True) -> List[str]:
        """Free slot labels of a staff member; ``online`` applies the customer booking horizon."""
        staff = self._staff(staff_id)
        today = self.clock.today()
        max_date = self.booking_limit() if online else None
        # today's list shrinks as slots start, so only later dates are cached
        cacheable = online and self.cache is not None and day > today

        if cacheable:
            cached = self.cache.get(staff_id, day, horizon=max_date)
            if cached is not None:
                return cached

        ctx = self.store.load_calendar_context(day, day, max_date=max_date)
        slots = available_slots(
            staff,
            day,
            self.all_slots,
            self.store.get_appointments(day, day),
            self.store.list_series(staff_id),
            ctx,
            self.clock.now(),
        )
        if cacheable:
            self.cache.put(staff_id, day, slots, horizon=max_date)
        return slots

    def slots_for_week(self, staff_id: int, offset_weeks: int = 0, online: bool = True) -> Tuple[date, Dict[date, List[str]]]:
        staff = self._staff(staff_id)
        now = self.clock.now()
        monday = monday_of_week(now, offset_weeks)
        sunday = week_dates(monday)[-1]
        ctx = self.store.load_calendar_context(monday, sunday, max_date=self.booking_limit() if online else None)
        days = week_availability(
            staff,
            monday,
            self.all_slots,
            self.store.get_appointments(monday, sunday),
            self.store.list_series(staff_id),
            ctx,
            now,
        )
        return monday, days

    # --- single appointments ------------------------------------------------

    def create_appointment(self, fields: dict, require_email: bool = False) -> Appointment:
        fields = self._validate_booking(fields, require_email)
        fields.setdefault("status", "confirmed")
        key = SlotKey(fields["barber_id"], fields["date"], fields["time_slot"])
        ensure_slot_free(self.store, key)
        return self._insert(fields)

    def book_online(self, fields: dict, require_email: bool = False) -> Appointment:
        """Customer booking: the slot must be one the resolver currently offers."""
        fields = self._validate_booking(fields, require_email)
        key = SlotKey(fields["barber_id"], fields["date"], fields["time_slot"])

        if key.time_slot not in self.slots_for_day(key.barber_id, key.date, online=True):
            if occupant_at(self.store, key) is not None:
                logger.info(f"Online booking lost the race for {key}")
                raise SlotConflict(key)
            raise ValidationError(f"{key.time_slot} on {key.date} is not bookable")

        fields["source"] = "online"
        fields["status"] = "confirmed"
        return self._insert(fields)

    def move_appointment(self, appointment_id: int, barber_id: int, day: date, time_slot: str) -> Appointment:
        appt = self._appointment(appointment_id)
        key = SlotKey(barber_id, day, self._label(time_slot))
        original_date = appt.date
        series_id = appt.series_id

        if appt.status == "confirmed":
            ensure_slot_free(self.store, key, exclude_appointment_id=appt.id)

        moved = self.store.update_appointment(appt.id, barber_id=key.barber_id, date=key.date, time_slot=key.time_slot)
        if moved is None:
            raise NotFound("Appointment", appointment_id)

        if series_id is not None and original_date != key.date and moved.status == "confirmed":
            series = self.store.get_series(series_id)
            if series is not None and is_series_due(series, original_date):
                self._exception_row(series, original_date)
        return moved

    def cancel_appointment(self, appointment_id: int, cancelled_by: str = "barber") -> Appointment:
        appt = self._appointment(appointment_id)
        if appt.status == "cancelled":
            return appt
        return self.store.update_appointment(
            appt.id, status="cancelled", cancelled_by=cancelled_by, cancelled_at=self.clock.now()
        )

    def cancel_by_customer(self, appointment_id: int, customer_email: str) -> Appointment:
        appt = self._appointment(appointment_id)
        if (appt.customer_email or "").lower() != (customer_email or "").lower():
            raise NotFound("Appointment", appointment_id)

        hours = int(self.store.get_setting("cancellation_hours", DEFAULT_CANCELLATION_HOURS))
        starts_at = datetime.combine(appt.date, datetime.min.time()) + timedelta(
            minutes=label_to_minutes(appt.time_slot)
        )
        if starts_at - self.clock.now() < timedelta(hours=hours):
            raise CancellationWindowClosed(hours)
        return self.cancel_appointment(appt.id, cancelled_by="customer")

    def restore_appointment(self, appointment_id: int) -> Appointment:
        appt = self._appointment(appointment_id)
        if appt.status == "confirmed":
            return appt
        key = SlotKey(appt.barber_id, appt.date, appt.time_slot)
        ensure_slot_free(self.store, key, exclude_appointment_id=appt.id, exclude_series_id=appt.series_id)
        return self.store.update_appointment(appt.id, status="confirmed", cancelled_by=None, cancelled_at=None)

    def delete_appointment(self, appointment_id: int) -> DeletionRecord:
        """Hard delete. Missing ids are a no-op; a deleted series occurrence stays hidden."""
        record = DeletionRecord()
        appt = self.store.get_appointment(appointment_id)
        if appt is None:
            return record

        snapshot = appointment_snapshot(appt)
        if not self.store.delete_appointment(appointment_id):
            return record
        record.appointments.append(snapshot)

        if snapshot["series_id"] is not None and snapshot["status"] == "confirmed":
            series = self.store.get_series(snapshot["series_id"])
            if series is not None and is_series_due(series, snapshot["date"]):
                exception = self._exception_row(series, snapshot["date"])
                record.series_cancellation_ids.append(exception.id)
        return record

    def bulk_delete(self, appointment_ids: Iterable[int]) -> Tuple[int, DeletionRecord]:
        """Delete each id independently; returns how many went through and what was removed."""
        record = DeletionRecord()
        completed = 0
        for appointment_id in appointment_ids:
            try:
                record.extend(self.delete_appointment(appointment_id))
                completed += 1
            except SchedulingError as e:
                logger.error(f"Bulk delete failed for appointment {appointment_id}: {e}")
        return completed, record

    # --- series -------------------------------------------------------------

    def _generate(self, series: Series, from_date: date, weeks: int) -> SeriesGenerationResult:
        result = SeriesGenerationResult()
        until = from_date + timedelta(weeks=weeks)

        occupants = collect_occupants(
            self.store, series.barber_id, from_date, until - timedelta(days=1), exclude_series_id=series.id
        )
        existing = {row.date for row in self.store.get_series_rows(series.id, from_date=from_date)}

        for day in iter_due_dates(series, from_date, until):
            if day in existing:
                result.exception_dates.append(day)
                continue
            key = SlotKey(series.barber_id, day, series.time_slot)
            if key in occupants:
                result.skipped_dates.append(day)
                continue

            created = self.store.create_appointment(
                {
                    "barber_id": series.barber_id,
                    "date": day,
                    "time_slot": series.time_slot,
                    "service_id": series.service_id,
                    "customer_name": series.customer_name,
                    "customer_phone": series.customer_phone,
                    "customer_email": series.customer_email,
                    "status": "confirmed",
                    "source": "manual",
                    "series_id": series.id,
                    "is_pause": series.is_pause,
                }
            )
            if created.success:
                result.created_dates.append(day)
            elif created.error == "conflict":
                result.skipped_dates.append(day)
            else:
                result.failed_dates.append(day)

        if result.skipped_dates:
            logger.info(
                f"Series {series.id}: skipped {result.skipped} taken dates: "
                + ", ".join(d.isoformat() for d in result.skipped_dates)
            )
        return result

    def _validate_series(self, fields: dict) -> dict:
        fields = dict(fields)
        if not (fields.get("customer_name") or "").strip():
            raise ValidationError("customer_name is required")
        if fields.get("day_of_week") not in range(1, 8):
            raise ValidationError("day_of_week must be between 1 (Mon) and 7 (Sun)")
        fields["time_slot"] = self._label(fields["time_slot"])
        fields.setdefault("interval_type", "weekly")
        if fields.get("end_date") is not None and fields["end_date"] < fields["start_date"]:
            raise ValidationError("end_date must not be before start_date")
        try:
            interval_weeks(Series(**fields))
        except ValueError as e:
            raise ValidationError(str(e)) from e
        return fields

    def create_series_with_appointments(self, fields: dict, is_pause: bool = False) -> SeriesResult:
        """
        Create a series and materialize its occurrences for the coming horizon.

        Dates whose slot is already taken are skipped and reported, they never
        fail the whole series. Only a series of which not a single occurrence
        could be written for other reasons is rolled back.
        """
        fields = self._validate_series(fields)
        self._staff(fields["barber_id"])
        if is_pause:
            fields["customer_name"] = pause_name(fields["customer_name"])
            fields["is_pause"] = True

        series = self.store.create_series(fields)
        from_date = max(series.start_date, self.clock.today())
        generation = self._generate(series, from_date, self.horizon_weeks)

        if generation.failed_dates and not (generation.created or generation.skipped or generation.exception_dates):
            logger.error(f"Series {series.id} generation failed completely, rolling back")
            self.store.delete_series(series.id)
            raise SchedulingError("Series could not be created")

        series = self.store.update_series(series.id, last_generated_date=from_date + timedelta(weeks=self.horizon_weeks))
        return SeriesResult(series=series, generation=generation)

    def extend_series(self, series_id: int) -> SeriesGenerationResult:
        """Continue materialization from where the last run stopped."""
        series = self._series(series_id)
        from_date = max(series.last_generated_date or self.clock.today(), series.start_date)
        generation = self._generate(series, from_date, self.horizon_weeks)
        if generation.created or generation.skipped or generation.exception_dates:
            self.store.update_series(series.id, last_generated_date=from_date + timedelta(weeks=self.horizon_weeks))
        return generation

    def update_series_rhythm(
        self, series_id: int, interval_type: str, weeks: Optional[int] = None
    ) -> SeriesGenerationResult:
        """Switch the interval; future rows and exceptions are dropped and regenerated."""
        series = self._series(series_id)
        candidate = Series(interval_type=interval_type, interval_weeks=weeks)
        try:
            interval_weeks(candidate)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        today = self.clock.today()
        series = self.store.update_series(series.id, interval_type=interval_type, interval_weeks=weeks)
        self.store.delete_series_rows(series.id, from_date=today)

        from_date = max(today, series.start_date)
        generation = self._generate(series, from_date, self.horizon_weeks)
        self.store.update_series(series.id, last_generated_date=from_date + timedelta(weeks=self.horizon_weeks))
        return generation

    def update_series_contact(self, series_id: int, **contact) -> Series:
        """Edit the customer snapshot of a series and of its upcoming rows."""
        series = self._series(series_id)
        changes = {k: v for k, v in contact.items() if k in CONTACT_FIELDS and v is not None}
        if "customer_name" in changes:
            changes["customer_name"] = changes["customer_name"].strip()
            if not changes["customer_name"]:
                raise ValidationError("customer_name is required")
            if series.is_pause:
                changes["customer_name"] = pause_name(changes["customer_name"])
        if not changes:
            return series

        series = self.store.update_series(series.id, **changes)
        for row in self.store.get_series_rows(series.id, from_date=self.clock.today()):
            self.store.update_appointment(row.id, **changes)
        return series

    def cancel_series_occurrence(self, series_id: int, day: date, time_slot: Optional[str] = None) -> Appointment:
        """Hide one occurrence through a cancelled row. Cancelling twice changes nothing."""
        series = self._series(series_id)
        rows = self.store.get_series_rows(series.id, day=day)

        cancelled = next((r for r in rows if r.status == "cancelled"), None)
        if cancelled is not None:
            return cancelled
        confirmed = next((r for r in rows if r.status == "confirmed"), None)
        if confirmed is not None:
            return self.cancel_appointment(confirmed.id)
        if not is_series_due(series, day):
            raise ValidationError(f"Series {series.id} has no occurrence on {day}")
        return self._exception_row(series, day, self._label(time_slot) if time_slot else None)

    def delete_series(self, series_id: int) -> DeletionRecord:
        """
        Remove a series and every row referencing it.

        The snapshots in the returned record carry no series id: an undo brings
        the occurrences back as standalone appointments.
        """
        record = DeletionRecord()
        if self.store.get_series(series_id) is None:
            return record

        for snapshot in self.store.delete_series_rows(series_id):
            if snapshot["status"] != "confirmed":
                continue
            snapshot["series_id"] = None
            record.appointments.append(snapshot)
        self.store.delete_series(series_id)
        return record

    def truncate_series_from(self, series_id: int, from_date: date) -> DeletionRecord:
        """End the series before ``from_date`` and drop its rows from that date on."""
        series = self._series(series_id)
        self.store.update_series(series.id, end_date=from_date - timedelta(days=1))
        snapshots = self.store.delete_series_rows(series.id, from_date=from_date)
        return DeletionRecord(appointments=[s for s in snapshots if s["status"] == "confirmed"])
