# barber_calendar/deps.py

from fastapi import Depends, HTTPException, Request
from sqlmodel import Session

from .auth import get_current_user
from .booking import BookingEngine, DeletionRecord
from .calendar_utils import normalize_label
from .db import get_session
from .storage import CalendarStore
from .undo import UndoManager

STAFF_ROLES = ("admin", "barber")


def require_role(user: dict, *roles: str):
    if user["role"] not in roles:
        raise HTTPException(status_code=403, detail="Forbidden")


def get_store(session: Session = Depends(get_session)) -> CalendarStore:
    return CalendarStore(session)


def get_clock(request: Request):
    return request.app.state.clock


def get_engine(
    request: Request,
    store: CalendarStore = Depends(get_store),
    clock=Depends(get_clock),
) -> BookingEngine:
    return BookingEngine(store, clock, cache=request.app.state.availability_cache)


def get_undo(request: Request, current_user: dict = Depends(get_current_user)) -> UndoManager:
    return request.app.state.undo_registry.for_user(current_user["id"])


def remember_deletion(undo: UndoManager, record: DeletionRecord) -> bool:
    """Hand a non-empty deletion to the undo window; tells the caller whether undo is possible."""
    if not record:
        return False
    undo.record_deletion(record.appointments, record.series_cancellation_ids)
    return True


def checked_label(value, field: str = "time") -> str:
    try:
        return normalize_label(value)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"{field} must be a HH:MM time")
