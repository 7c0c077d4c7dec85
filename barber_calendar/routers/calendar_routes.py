# barber_calendar/routers/calendar_routes.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.exc import IntegrityError

from barber_calendar.auth import get_current_user
from barber_calendar.config import DEFAULT_BUNDESLAND, shop_settings
from barber_calendar.deps import checked_label, get_store, require_role
from barber_calendar.holidays import BUNDESLAENDER, holidays_list
from barber_calendar.schemas import (
    ClosedDateCreate,
    Holiday,
    OpenHolidayCreate,
    OpeningHoursUpdate,
    OpenSundayCreate,
    OpenSundayPublic,
    OpenSundayStaffCreate,
    SettingUpdate,
)
from barber_calendar.storage import CalendarStore

router = APIRouter(
    prefix="/calendar",
    tags=["calendar"],
)

# validators for runtime settings; unknown keys are rejected
SETTINGS = {
    "bundesland": lambda v: isinstance(v, str) and v in BUNDESLAENDER,
    "booking_advance_weeks": lambda v: isinstance(v, int) and v >= 1,
    "cancellation_hours": lambda v: isinstance(v, int) and v >= 0,
}


def _checked_range(open_time, close_time):
    start = checked_label(open_time, "open_time")
    end = checked_label(close_time, "close_time")
    if start >= end:
        raise HTTPException(status_code=422, detail="open_time must be before close_time")
    return start, end


def _duplicate(detail: str) -> HTTPException:
    return HTTPException(status_code=409, detail=detail)


def _deleted(found: bool, detail: str) -> Response:
    if not found:
        raise HTTPException(status_code=404, detail=detail)
    return Response(status_code=204)


@router.put("/opening-hours")
def set_opening_hours(
    hours: OpeningHoursUpdate,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    open_time = close_time = None
    if not hours.is_closed:
        if hours.open_time is None or hours.close_time is None:
            raise HTTPException(status_code=422, detail="open days need open_time and close_time")
        open_time, close_time = _checked_range(hours.open_time, hours.close_time)
    return store.set_opening_hours(hours.day_of_week, open_time, close_time, hours.is_closed)


@router.post("/closed-dates", status_code=201)
def add_closed_date(
    closed: ClosedDateCreate,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    try:
        return store.create_closed_date(closed.date, closed.reason)
    except IntegrityError:
        store.session.rollback()
        raise _duplicate("Date is already closed")


@router.delete("/closed-dates/{closed_date_id}", status_code=204)
def remove_closed_date(
    closed_date_id: int,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    return _deleted(store.delete_closed_date(closed_date_id), "Closed date not found")


@router.post("/open-sundays", response_model=OpenSundayPublic, status_code=201)
def add_open_sunday(
    sunday: OpenSundayCreate,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    if sunday.date.isoweekday() != 7:
        raise HTTPException(status_code=422, detail="date must be a Sunday")
    open_time, close_time = _checked_range(sunday.open_time, sunday.close_time)
    try:
        return store.create_open_sunday(sunday.date, open_time, close_time)
    except IntegrityError:
        store.session.rollback()
        raise _duplicate("Sunday is already open")


@router.delete("/open-sundays/{open_sunday_id}", status_code=204)
def remove_open_sunday(
    open_sunday_id: int,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    return _deleted(store.delete_open_sunday(open_sunday_id), "Open Sunday not found")


@router.post("/open-sundays/{open_sunday_id}/staff", status_code=201)
def assign_open_sunday_staff(
    open_sunday_id: int,
    assignment: OpenSundayStaffCreate,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    if store.get_staff(assignment.staff_id) is None:
        raise HTTPException(status_code=404, detail="Staff member not found")

    start_time = end_time = None
    if assignment.start_time is not None or assignment.end_time is not None:
        start_time, end_time = _checked_range(assignment.start_time, assignment.end_time)
    try:
        created = store.assign_open_sunday_staff(open_sunday_id, assignment.staff_id, start_time, end_time)
    except IntegrityError:
        store.session.rollback()
        raise _duplicate("Staff member is already assigned")
    if created is None:
        raise HTTPException(status_code=404, detail="Open Sunday not found")
    return created


@router.delete("/open-sundays/{open_sunday_id}/staff/{staff_id}", status_code=204)
def unassign_open_sunday_staff(
    open_sunday_id: int,
    staff_id: int,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    return _deleted(store.remove_open_sunday_staff(open_sunday_id, staff_id), "Assignment not found")


@router.post("/open-holidays", status_code=201)
def add_open_holiday(
    holiday: OpenHolidayCreate,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    try:
        return store.create_open_holiday(holiday.date, holiday.reason)
    except IntegrityError:
        store.session.rollback()
        raise _duplicate("Holiday is already open")


@router.delete("/open-holidays/{open_holiday_id}", status_code=204)
def remove_open_holiday(
    open_holiday_id: int,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    return _deleted(store.delete_open_holiday(open_holiday_id), "Open holiday not found")


@router.put("/settings/{key}")
def update_setting(
    key: str,
    setting: SettingUpdate,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    check = SETTINGS.get(key)
    if check is None:
        raise HTTPException(status_code=404, detail="Unknown setting")
    if not check(setting.value):
        raise HTTPException(status_code=422, detail=f"Invalid value for {key}")
    row = store.set_setting(key, setting.value)
    return {"key": row.key, "value": row.value}


@router.get("/holidays", response_model=List[Holiday])
def list_holidays(
    year: int,
    store: CalendarStore = Depends(get_store),
):
    return holidays_list(year, store.get_setting("bundesland", DEFAULT_BUNDESLAND))


@router.get("/config")
def calendar_config():
    """Grid bounds and slot width, so clients render the same grid the server books on."""
    return shop_settings
