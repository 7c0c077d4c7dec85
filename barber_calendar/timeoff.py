# barber_calendar/timeoff.py
"""
Time-off blocks: creation with merge, and freeing single slots of a
partial-day block.

A partial block covers the inclusive label range ``start_time..end_time``
on every date of ``start_date..end_date``.
"""

import logging
from datetime import date
from typing import Dict, List

from .calendar_utils import label_to_minutes, next_slot, normalize_label, prev_slot
from .config import SLOT_MINUTES
from .core import overlaps
from .errors import NotFound, ValidationError

logger = logging.getLogger(__name__)


def validate_time_off(fields: dict) -> dict:
    """Check and normalize time-off input; returns a cleaned copy."""
    fields = dict(fields)
    if fields["end_date"] < fields["start_date"]:
        raise ValidationError("end_date must not be before start_date")

    start_time, end_time = fields.get("start_time"), fields.get("end_time")
    if (start_time is None) != (end_time is None):
        raise ValidationError("start_time and end_time must be given together")
    if start_time is not None:
        try:
            fields["start_time"] = normalize_label(start_time)
            fields["end_time"] = normalize_label(end_time)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if fields["start_time"] > fields["end_time"]:
            raise ValidationError("start_time must not be after end_time")
    return fields


def _touches(block, start_time: str, end_time: str, bucket_minutes: int) -> bool:
    # inclusive label ranges; adjacent ranges (end + one bucket == start) count too
    a_start = label_to_minutes(block.start_time)
    a_end = label_to_minutes(block.end_time) + bucket_minutes
    b_start = label_to_minutes(start_time)
    b_end = label_to_minutes(end_time) + bucket_minutes
    return overlaps(a_start, a_end, b_start, b_end) or a_end == b_start or b_end == a_start


def create_time_off(store, fields: dict, bucket_minutes: int = SLOT_MINUTES):
    """
    Create a time-off block.

    A partial block that overlaps or touches existing partial blocks of the
    same staff and the same date range is merged into them instead of
    becoming another row.
    """
    fields = validate_time_off(fields)
    if fields.get("start_time") is None:
        return store.create_staff_time_off(fields)

    candidates = [
        b
        for b in store.list_time_off(fields["staff_id"])
        if not b.is_full_day
        and b.start_date == fields["start_date"]
        and b.end_date == fields["end_date"]
        and _touches(b, fields["start_time"], fields["end_time"], bucket_minutes)
    ]
    if not candidates:
        return store.create_staff_time_off(fields)

    keeper, rest = candidates[0], candidates[1:]
    start_time = min([fields["start_time"]] + [normalize_label(b.start_time) for b in candidates])
    end_time = max([fields["end_time"]] + [normalize_label(b.end_time) for b in candidates])
    for block in rest:
        store.delete_staff_time_off(block.id)

    logger.info(f"Merged time-off for staff {fields['staff_id']} into block {keeper.id}: {start_time}-{end_time}")
    return store.update_staff_time_off(keeper.id, start_time=start_time, end_time=end_time)


def _partial_block(store, time_off_id: int, label: str):
    block = store.get_time_off(time_off_id)
    if block is None:
        raise NotFound("Time-off", time_off_id)
    if block.is_full_day:
        raise ValidationError("Only partial-day blocks can be freed slot by slot")

    label = normalize_label(label)
    if not normalize_label(block.start_time) <= label <= normalize_label(block.end_time):
        raise ValidationError(f"{label} is not part of block {time_off_id}")
    return block, label


def update_time_off(store, time_off_id: int, changes: dict):
    """Change dates, times or reason of a block; clearing both times makes it a full-day block."""
    block = store.get_time_off(time_off_id)
    if block is None:
        raise NotFound("Time-off", time_off_id)

    fields = {
        "staff_id": block.staff_id,
        "start_date": block.start_date,
        "end_date": block.end_date,
        "start_time": block.start_time,
        "end_time": block.end_time,
        "reason": block.reason,
    }
    fields.update(changes)
    fields = validate_time_off(fields)
    del fields["staff_id"]
    return store.update_staff_time_off(block.id, **fields)


def delete_block(store, time_off_id: int) -> None:
    if not store.delete_staff_time_off(time_off_id):
        raise NotFound("Time-off", time_off_id)


def free_from_slot(store, time_off_id: int, label: str, bucket_minutes: int = SLOT_MINUTES):
    """Free ``label`` and everything after it. Returns the shrunk block, or None if it was removed."""
    block, label = _partial_block(store, time_off_id, label)
    start = normalize_label(block.start_time)

    previous = prev_slot(label, bucket_minutes)
    if label == start or previous is None or previous < start:
        store.delete_staff_time_off(block.id)
        return None
    return store.update_staff_time_off(block.id, end_time=previous)


def free_single_slot(store, time_off_id: int, label: str, bucket_minutes: int = SLOT_MINUTES) -> List:
    """
    Free exactly one slot of a block.

    Boundary slots move the boundary; a middle slot splits the block in two.
    Returns the blocks left over (zero, one or two).
    """
    block, label = _partial_block(store, time_off_id, label)
    start, end = normalize_label(block.start_time), normalize_label(block.end_time)

    if start == end:
        store.delete_staff_time_off(block.id)
        return []
    if label == start:
        return [store.update_staff_time_off(block.id, start_time=next_slot(label, bucket_minutes))]
    if label == end:
        return [store.update_staff_time_off(block.id, end_time=prev_slot(label, bucket_minutes))]

    # split
    tail = store.create_staff_time_off(
        {
            "staff_id": block.staff_id,
            "start_date": block.start_date,
            "end_date": block.end_date,
            "start_time": next_slot(label, bucket_minutes),
            "end_time": end,
            "reason": block.reason,
        }
    )
    head = store.update_staff_time_off(block.id, end_time=prev_slot(label, bucket_minutes))
    return [head, tail]


def used_vacation_days(blocks, year: int) -> Dict[int, int]:
    """Full-day absence days per staff member, clipped to ``year``."""
    year_start, year_end = date(year, 1, 1), date(year, 12, 31)
    used: Dict[int, int] = {}
    for block in blocks:
        if not block.is_full_day:
            continue
        start = max(block.start_date, year_start)
        end = min(block.end_date, year_end)
        days = (end - start).days + 1
        if days > 0:
            used[block.staff_id] = used.get(block.staff_id, 0) + days
    return used

