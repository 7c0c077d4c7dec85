# barber_calendar/routers/undo_routes.py

from fastapi import APIRouter, Depends, HTTPException

from barber_calendar.auth import get_current_user
from barber_calendar.deps import STAFF_ROLES, get_store, get_undo, require_role
from barber_calendar.schemas import UndoResponse
from barber_calendar.storage import CalendarStore
from barber_calendar.undo import UndoManager

router = APIRouter(
    prefix="/undo",
    tags=["undo"],
)


@router.post("", response_model=UndoResponse)
def undo_last_deletion(
    store: CalendarStore = Depends(get_store),
    undo: UndoManager = Depends(get_undo),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    result = undo.undo(store)
    if result is None:
        raise HTTPException(status_code=409, detail="Nothing to undo")
    return {
        "restored": len(result.restored),
        "failed": len(result.failed),
        "exceptions_removed": result.exceptions_removed,
    }


@router.post("/expire", status_code=204)
def expire_undo(
    undo: UndoManager = Depends(get_undo),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    undo.expire()
