# barber_calendar/conflicts.py
"""
At most one confirmed occupant per (staff, date, slot), counting real rows
and due series occurrences that no exception row suppresses.

These checks run against current storage state right before a write. They
exist for fast rejection; the unique index in storage has the final word.
"""

import logging
from datetime import date
from typing import Dict, Optional

from .calendar_utils import iter_dates
from .core import SlotKey
from .errors import SlotConflict
from .occupancy import Occupant, RealAppointment, merge_occupants

logger = logging.getLogger(__name__)


def collect_occupants(
    store, barber_id: int, start: date, end: date, exclude_series_id: Optional[int] = None
) -> Dict[SlotKey, Occupant]:
    appointments = [a for a in store.get_appointments(start, end) if a.barber_id == barber_id]
    series_list = [s for s in store.list_series(barber_id) if s.id != exclude_series_id]
    return merge_occupants(appointments, series_list, iter_dates(start, end))


def occupant_at(
    store,
    key: SlotKey,
    exclude_appointment_id: Optional[int] = None,
    exclude_series_id: Optional[int] = None,
) -> Optional[Occupant]:
    occupant = collect_occupants(store, key.barber_id, key.date, key.date, exclude_series_id).get(key)
    if isinstance(occupant, RealAppointment) and occupant.appointment.id == exclude_appointment_id:
        return None
    return occupant


def ensure_slot_free(
    store,
    key: SlotKey,
    exclude_appointment_id: Optional[int] = None,
    exclude_series_id: Optional[int] = None,
) -> None:
    """Raise SlotConflict if ``key`` is taken by anything other than the excluded row/series."""
    occupant = occupant_at(store, key, exclude_appointment_id, exclude_series_id)
    if occupant is not None:
        logger.info(f"Slot {key} already taken (series={occupant.series_id})")
        raise SlotConflict(key)
