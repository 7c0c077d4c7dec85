# barber_calendar/occupancy.py

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, Set, Tuple, Union

from .core import SlotKey
from .recurrence import is_series_due


@dataclass(frozen=True)
class RealAppointment:
    appointment: object

    @property
    def key(self) -> SlotKey:
        a = self.appointment
        return SlotKey(a.barber_id, a.date, a.time_slot)

    @property
    def series_id(self):
        return self.appointment.series_id


@dataclass(frozen=True)
class VirtualSeriesOccurrence:
    series: object
    date: date

    @property
    def key(self) -> SlotKey:
        return SlotKey(self.series.barber_id, self.date, self.series.time_slot)

    @property
    def series_id(self):
        return self.series.id


Occupant = Union[RealAppointment, VirtualSeriesOccurrence]


def suppressed_occurrences(appointments: Iterable) -> Set[Tuple[int, date]]:
    """
    (series_id, date) pairs whose virtual occurrence is superseded.

    Any row carrying the series id on that date counts: a confirmed row is the
    materialized occurrence, a cancelled row is an exception.
    """
    return {(a.series_id, a.date) for a in appointments if a.series_id is not None}


def merge_occupants(appointments: Iterable, series_list: Iterable, dates: Iterable[date]) -> Dict[SlotKey, Occupant]:
    """Confirmed rows plus unsuppressed due occurrences; the real row wins a shared key."""
    appointments = list(appointments)
    occupants: Dict[SlotKey, Occupant] = {}

    for appt in appointments:
        if appt.status != "confirmed":
            continue
        occupant = RealAppointment(appt)
        occupants[occupant.key] = occupant

    suppressed = suppressed_occurrences(appointments)
    dates = list(dates)
    for series in series_list:
        for day in dates:
            if (series.id, day) in suppressed or not is_series_due(series, day):
                continue
            occupant = VirtualSeriesOccurrence(series, day)
            occupants.setdefault(occupant.key, occupant)

    return occupants


def occupied_labels(occupants: Dict[SlotKey, Occupant], barber_id: int, day: date) -> Set[str]:
    return {key.time_slot for key in occupants if key.barber_id == barber_id and key.date == day}
