# barber_calendar/routers/series_routes.py

from typing import List, Optional

from fastapi import APIRouter, Depends

from barber_calendar.auth import get_current_user
from barber_calendar.booking import BookingEngine, SeriesGenerationResult
from barber_calendar.deps import STAFF_ROLES, get_engine, get_store, get_undo, remember_deletion, require_role
from barber_calendar.schemas import (
    AppointmentPublic,
    DeleteResult,
    OccurrenceCancel,
    SeriesContactUpdate,
    SeriesCreate,
    SeriesCreateResult,
    SeriesGeneration,
    SeriesPublic,
    SeriesRhythmUpdate,
    SeriesTruncate,
)
from barber_calendar.storage import CalendarStore
from barber_calendar.undo import UndoManager

router = APIRouter(
    prefix="/series",
    tags=["series"],
)


def generation_summary(generation: SeriesGenerationResult) -> dict:
    return {
        "created": generation.created,
        "skipped": generation.skipped,
        "created_dates": generation.created_dates,
        "skipped_dates": generation.skipped_dates,
        "exception_dates": generation.exception_dates,
    }


@router.get("", response_model=List[SeriesPublic])
def list_series(
    barber_id: Optional[int] = None,
    store: CalendarStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    return store.list_series(barber_id)


@router.post("", response_model=SeriesCreateResult, status_code=201)
def create_series(
    series: SeriesCreate,
    engine: BookingEngine = Depends(get_engine),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    fields = series.model_dump(exclude={"is_pause"})
    fields["interval_type"] = series.interval_type.value
    result = engine.create_series_with_appointments(fields, is_pause=series.is_pause)
    return {"series": result.series, "generation": generation_summary(result.generation)}


@router.patch("/{series_id}/rhythm", response_model=SeriesGeneration)
def update_rhythm(
    series_id: int,
    rhythm: SeriesRhythmUpdate,
    engine: BookingEngine = Depends(get_engine),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    generation = engine.update_series_rhythm(series_id, rhythm.interval_type.value, rhythm.interval_weeks)
    return generation_summary(generation)


@router.patch("/{series_id}/contact", response_model=SeriesPublic)
def update_contact(
    series_id: int,
    contact: SeriesContactUpdate,
    engine: BookingEngine = Depends(get_engine),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    return engine.update_series_contact(series_id, **contact.model_dump())


@router.post("/{series_id}/extend", response_model=SeriesGeneration)
def extend_series(
    series_id: int,
    engine: BookingEngine = Depends(get_engine),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    return generation_summary(engine.extend_series(series_id))


@router.post("/{series_id}/occurrences/cancel", response_model=AppointmentPublic)
def cancel_occurrence(
    series_id: int,
    occurrence: OccurrenceCancel,
    engine: BookingEngine = Depends(get_engine),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    return engine.cancel_series_occurrence(series_id, occurrence.date, occurrence.time_slot)


@router.post("/{series_id}/truncate", response_model=DeleteResult)
def truncate_series(
    series_id: int,
    body: SeriesTruncate,
    engine: BookingEngine = Depends(get_engine),
    undo: UndoManager = Depends(get_undo),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    record = engine.truncate_series_from(series_id, body.from_date)
    return {"deleted": len(record.appointments), "undo_available": remember_deletion(undo, record)}


@router.delete("/{series_id}", response_model=DeleteResult)
def delete_series(
    series_id: int,
    engine: BookingEngine = Depends(get_engine),
    undo: UndoManager = Depends(get_undo),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    record = engine.delete_series(series_id)
    return {"deleted": len(record.appointments), "undo_available": remember_deletion(undo, record)}
