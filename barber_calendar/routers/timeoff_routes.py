# barber_calendar/routers/timeoff_routes.py

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response

from barber_calendar.auth import get_current_user
from barber_calendar.deps import STAFF_ROLES, get_store, require_role
from barber_calendar.schemas import SlotRef, TimeOffCreate, TimeOffPublic, TimeOffUpdate
from barber_calendar.storage import CalendarStore
from barber_calendar import timeoff

router = APIRouter(
    prefix="/time-off",
    tags=["time-off"],
)


@router.post("", response_model=TimeOffPublic, status_code=201)
def create_time_off(
    block: TimeOffCreate,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    if store.get_staff(block.staff_id) is None:
        raise HTTPException(status_code=404, detail="Staff member not found")
    return timeoff.create_time_off(store, block.model_dump())


@router.get("", response_model=List[TimeOffPublic])
def list_time_off(
    staff_id: Optional[int] = None,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    return store.list_time_off(staff_id)


@router.get("/vacation-days", response_model=Dict[int, int])
def vacation_days(
    year: int,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    return timeoff.used_vacation_days(store.list_time_off(), year)


@router.patch("/{time_off_id}", response_model=TimeOffPublic)
def update_time_off(
    time_off_id: int,
    changes: TimeOffUpdate,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    fields = changes.model_dump(exclude_unset=True)
    for name in ("start_date", "end_date"):
        if name in fields and fields[name] is None:
            raise HTTPException(status_code=422, detail=f"{name} must not be null")
    return timeoff.update_time_off(store, time_off_id, fields)


@router.delete("/{time_off_id}", status_code=204)
def delete_time_off(
    time_off_id: int,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    timeoff.delete_block(store, time_off_id)
    return Response(status_code=204)


@router.post("/{time_off_id}/free-from", response_model=Optional[TimeOffPublic])
def free_from(
    time_off_id: int,
    slot: SlotRef,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    """Free the given slot and everything after it; null when nothing of the block is left."""
    require_role(current_user, *STAFF_ROLES)
    return timeoff.free_from_slot(store, time_off_id, slot.time_slot)


@router.post("/{time_off_id}/free-slot", response_model=List[TimeOffPublic])
def free_slot(
    time_off_id: int,
    slot: SlotRef,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    return timeoff.free_single_slot(store, time_off_id, slot.time_slot)
