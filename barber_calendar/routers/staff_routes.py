# barber_calendar/routers/staff_routes.py

from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response

from barber_calendar.auth import get_current_user
from barber_calendar.booking import BookingEngine
from barber_calendar.calendar_utils import iso_week_number
from barber_calendar.deps import checked_label, get_engine, get_store, require_role
from barber_calendar.schemas import (
    AvailabilityResponse,
    FreeDayExceptionCreate,
    FreeDayExceptionPublic,
    StaffCreate,
    StaffPublic,
    WeekAvailabilityResponse,
    WorkingHoursPublic,
    WorkingHoursUpdate,
)
from barber_calendar.storage import CalendarStore

router = APIRouter(
    prefix="/staff",
    tags=["staff"],
)


def _staff_or_404(store: CalendarStore, staff_id: int):
    staff = store.get_staff(staff_id)
    if staff is None:
        raise HTTPException(status_code=404, detail="Staff member not found")
    return staff


@router.get("", response_model=List[StaffPublic])
def list_staff(store: CalendarStore = Depends(get_store)):
    return store.list_staff(active_only=True)


@router.post("", response_model=StaffPublic, status_code=201)
def create_staff(
    staff: StaffCreate,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    if not staff.name.strip():
        raise HTTPException(status_code=422, detail="name must not be empty")
    return store.create_staff(**staff.model_dump())


@router.put("/{staff_id}/working-hours", response_model=WorkingHoursPublic)
def set_working_hours(
    staff_id: int,
    hours: WorkingHoursUpdate,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    _staff_or_404(store, staff_id)

    start = checked_label(hours.start_time, "start_time")
    end = checked_label(hours.end_time, "end_time")
    if start >= end:
        raise HTTPException(status_code=422, detail="start_time must be before end_time")
    return store.set_staff_working_hours(staff_id, hours.day_of_week, start, end)


@router.delete("/{staff_id}/working-hours/{day_of_week}", status_code=204)
def clear_working_hours(
    staff_id: int,
    day_of_week: int,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    """Back to the shop's opening hours on that weekday."""
    require_role(current_user, "admin")
    _staff_or_404(store, staff_id)
    if not store.delete_staff_working_hours(staff_id, day_of_week):
        raise HTTPException(status_code=404, detail="No working hours set for that day")
    return Response(status_code=204)


@router.post("/{staff_id}/free-day-exceptions", response_model=FreeDayExceptionPublic, status_code=201)
def create_free_day_exception(
    staff_id: int,
    exception: FreeDayExceptionCreate,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    _staff_or_404(store, staff_id)

    fields = exception.model_dump()
    if (fields["start_time"] is None) != (fields["end_time"] is None):
        raise HTTPException(status_code=422, detail="start_time and end_time must be given together")
    if fields["start_time"] is not None:
        fields["start_time"] = checked_label(fields["start_time"], "start_time")
        fields["end_time"] = checked_label(fields["end_time"], "end_time")
        if fields["start_time"] >= fields["end_time"]:
            raise HTTPException(status_code=422, detail="start_time must be before end_time")
    return store.create_free_day_exception({"staff_id": staff_id, **fields})


@router.delete("/{staff_id}/free-day-exceptions/{exception_id}", status_code=204)
def delete_free_day_exception(
    staff_id: int,
    exception_id: int,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    if not store.delete_free_day_exception(exception_id, staff_id=staff_id):
        raise HTTPException(status_code=404, detail="Free-day exception not found")
    return Response(status_code=204)


@router.get("/{staff_id}/availability", response_model=AvailabilityResponse)
def staff_availability(
    staff_id: int,
    date: date,
    engine: BookingEngine = Depends(get_engine),
):
    return {
        "staff_id": staff_id,
        "date": date,
        "available_starts": engine.slots_for_day(staff_id, date, online=True),
    }


@router.get("/{staff_id}/availability/week", response_model=WeekAvailabilityResponse)
def staff_week_availability(
    staff_id: int,
    offset: int = 0,
    engine: BookingEngine = Depends(get_engine),
):
    if offset < 0:
        raise HTTPException(status_code=422, detail="offset must not be negative")
    monday, days = engine.slots_for_week(staff_id, offset, online=True)
    return {
        "staff_id": staff_id,
        "monday": monday,
        "iso_week": iso_week_number(monday),
        "days": days,
    }
