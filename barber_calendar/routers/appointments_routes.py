# barber_calendar/routers/appointments_routes.py

import logging
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from barber_calendar.auth import get_current_user
from barber_calendar.booking import BookingEngine
from barber_calendar.deps import STAFF_ROLES, get_engine, get_store, get_undo, remember_deletion, require_role
from barber_calendar.schemas import (
    AppointmentCreate,
    AppointmentMove,
    AppointmentPublic,
    BulkDelete,
    CustomerCancel,
    DeleteResult,
    OnlineBookingCreate,
)
from barber_calendar.storage import CalendarStore
from barber_calendar.undo import UndoManager

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["appointments"],
)


@router.get("/appointments", response_model=List[AppointmentPublic])
def list_appointments(
    start: date,
    end: date,
    include_cancelled: bool = False,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    if start > end:
        raise HTTPException(status_code=422, detail="start must not be after end")
    return store.get_appointments(start, end, include_cancelled=include_cancelled)


@router.post("/appointments", response_model=AppointmentPublic, status_code=201)
def create_appointment(
    appt: AppointmentCreate,
    engine: BookingEngine = Depends(get_engine),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    return engine.create_appointment(appt.model_dump())


@router.post("/bookings", response_model=AppointmentPublic, status_code=201)
def book_online(
    booking: OnlineBookingCreate,
    engine: BookingEngine = Depends(get_engine),
):
    fields = booking.model_dump(exclude={"create_account"})
    appt = engine.book_online(fields, require_email=booking.create_account)
    logger.info(f"Online booking {appt.id} for staff {appt.barber_id} on {appt.date} {appt.time_slot}")
    return appt


@router.post("/bookings/{appt_id}/cancel", response_model=AppointmentPublic)
def customer_cancel(
    appt_id: int,
    body: CustomerCancel,
    engine: BookingEngine = Depends(get_engine),
):
    return engine.cancel_by_customer(appt_id, body.customer_email)


@router.patch("/appointments/{appt_id}/move", response_model=AppointmentPublic)
def move_appointment(
    appt_id: int,
    move: AppointmentMove,
    engine: BookingEngine = Depends(get_engine),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    return engine.move_appointment(appt_id, move.barber_id, move.date, move.time_slot)


@router.patch("/appointments/{appt_id}/cancel", response_model=AppointmentPublic)
def cancel_appointment(
    appt_id: int,
    engine: BookingEngine = Depends(get_engine),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    return engine.cancel_appointment(appt_id, cancelled_by="barber")


@router.patch("/appointments/{appt_id}/restore", response_model=AppointmentPublic)
def restore_appointment(
    appt_id: int,
    engine: BookingEngine = Depends(get_engine),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    return engine.restore_appointment(appt_id)


@router.delete("/appointments/{appt_id}", response_model=DeleteResult)
def delete_appointment(
    appt_id: int,
    engine: BookingEngine = Depends(get_engine),
    undo: UndoManager = Depends(get_undo),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    record = engine.delete_appointment(appt_id)
    return {"deleted": len(record.appointments), "undo_available": remember_deletion(undo, record)}


@router.post("/appointments/bulk-delete", response_model=DeleteResult)
def bulk_delete(
    body: BulkDelete,
    engine: BookingEngine = Depends(get_engine),
    undo: UndoManager = Depends(get_undo),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    completed, record = engine.bulk_delete(body.ids)
    return {"deleted": completed, "undo_available": remember_deletion(undo, record)}
