# barber_calendar/errors.py


class SchedulingError(Exception):
    """Base class for every failure the scheduling core reports."""


class SlotConflict(SchedulingError):
    """Target (staff, date, slot) already holds a confirmed occupant."""

    def __init__(self, key, message: str = "Slot already taken"):
        super().__init__(message)
        self.key = key


class ValidationError(SchedulingError):
    """Booking input rejected before any storage call."""


class CancellationWindowClosed(ValidationError):
    def __init__(self, hours: int):
        super().__init__(f"Appointments can only be cancelled up to {hours} hours in advance")
        self.hours = hours


class NotFound(SchedulingError):
    def __init__(self, kind: str, ident):
        super().__init__(f"{kind} {ident} not found")
        self.kind = kind
        self.ident = ident


class TransientIOError(SchedulingError):
    """Storage or network failure; worth retrying."""
