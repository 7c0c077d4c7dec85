# barber_calendar/schemas.py

from pydantic import BaseModel, Field
from enum import Enum
from datetime import datetime, date
from typing import Any, Dict, List, Optional


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserRole(str, Enum):
    admin = "admin"
    barber = "barber"


class AppointmentStatus(str, Enum):
    confirmed = "confirmed"
    cancelled = "cancelled"


class AppointmentSource(str, Enum):
    manual = "manual"
    online = "online"


class IntervalType(str, Enum):
    weekly = "weekly"
    biweekly = "biweekly"
    monthly = "monthly"
    custom = "custom"


class CancelledBy(str, Enum):
    customer = "customer"
    barber = "barber"


class UserPublic(BaseModel):
    id: int
    email: str
    role: UserRole
    staff_id: Optional[int] = None


class UserCreate(BaseModel):
    email: str
    password: str = Field(min_length=8, max_length=72)
    role: UserRole
    staff_id: Optional[int] = None


# --- staff ---

class StaffCreate(BaseModel):
    name: str
    free_day: Optional[int] = Field(default=None, ge=1, le=7)  # 1=Mon .. 7=Sun
    active: bool = True
    sort_order: int = 0
    image: Optional[str] = None


class StaffPublic(StaffCreate):
    id: int


class WorkingHoursUpdate(BaseModel):
    day_of_week: int = Field(ge=1, le=7)
    start_time: str
    end_time: str


class WorkingHoursPublic(WorkingHoursUpdate):
    id: int
    staff_id: int


class FreeDayExceptionCreate(BaseModel):
    date: date  # staff works on this date
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    replacement_date: Optional[date] = None  # and is off on this one instead


class FreeDayExceptionPublic(FreeDayExceptionCreate):
    id: int
    staff_id: int


# --- appointments ---

class AppointmentCreate(BaseModel):
    barber_id: int
    date: date
    time_slot: str
    service_id: Optional[int] = None
    customer_name: str
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    is_pause: bool = False


class OnlineBookingCreate(BaseModel):
    barber_id: int
    date: date
    time_slot: str
    service_id: Optional[int] = None
    customer_name: str
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    customer_id: Optional[int] = None
    create_account: bool = False


class CustomerCancel(BaseModel):
    customer_email: str


class AppointmentMove(BaseModel):
    barber_id: int
    date: date
    time_slot: str


class AppointmentPublic(BaseModel):
    id: int
    barber_id: int
    date: date
    time_slot: str
    service_id: Optional[int] = None
    customer_name: str
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    customer_id: Optional[int] = None
    status: AppointmentStatus
    source: AppointmentSource
    series_id: Optional[int] = None
    is_pause: bool
    cancelled_by: Optional[CancelledBy] = None
    cancelled_at: Optional[datetime] = None


class BulkDelete(BaseModel):
    ids: List[int]


class DeleteResult(BaseModel):
    deleted: int
    undo_available: bool


# --- series ---

class SeriesCreate(BaseModel):
    barber_id: int
    day_of_week: int = Field(ge=1, le=7)
    time_slot: str
    service_id: Optional[int] = None
    customer_name: str
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    start_date: date
    end_date: Optional[date] = None
    interval_type: IntervalType = IntervalType.weekly
    interval_weeks: Optional[int] = Field(default=None, ge=1)
    is_pause: bool = False


class SeriesPublic(BaseModel):
    id: int
    barber_id: int
    day_of_week: int
    time_slot: str
    service_id: Optional[int] = None
    customer_name: str
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    start_date: date
    end_date: Optional[date] = None
    interval_type: IntervalType
    interval_weeks: Optional[int] = None
    is_pause: bool
    last_generated_date: Optional[date] = None


class SeriesGeneration(BaseModel):
    created: int
    skipped: int
    created_dates: List[date]
    skipped_dates: List[date]
    exception_dates: List[date]


class SeriesCreateResult(BaseModel):
    series: SeriesPublic
    generation: SeriesGeneration


class SeriesRhythmUpdate(BaseModel):
    interval_type: IntervalType
    interval_weeks: Optional[int] = Field(default=None, ge=1)


class SeriesContactUpdate(BaseModel):
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None


class SeriesTruncate(BaseModel):
    from_date: date


class OccurrenceCancel(BaseModel):
    date: date
    time_slot: Optional[str] = None


# --- time off ---

class TimeOffCreate(BaseModel):
    staff_id: int
    start_date: date
    end_date: date
    start_time: Optional[str] = None  # both empty: full day
    end_time: Optional[str] = None
    reason: Optional[str] = None


class TimeOffPublic(TimeOffCreate):
    id: int


class TimeOffUpdate(BaseModel):
    # only the fields sent are changed; explicit nulls for both times mean full day
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    reason: Optional[str] = None


class SlotRef(BaseModel):
    time_slot: str


# --- shop calendar ---

class OpeningHoursUpdate(BaseModel):
    day_of_week: int = Field(ge=1, le=7)
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    is_closed: bool = False


class ClosedDateCreate(BaseModel):
    date: date
    reason: Optional[str] = None


class OpenSundayCreate(BaseModel):
    date: date
    open_time: str
    close_time: str


class OpenSundayPublic(OpenSundayCreate):
    id: int


class OpenSundayStaffCreate(BaseModel):
    staff_id: int
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class OpenHolidayCreate(BaseModel):
    date: date
    reason: Optional[str] = None


class SettingUpdate(BaseModel):
    value: Any


class Holiday(BaseModel):
    date: date
    name: str


# --- availability / undo ---

class AvailabilityResponse(BaseModel):
    staff_id: int
    date: date
    available_starts: List[str]


class WeekAvailabilityResponse(BaseModel):
    staff_id: int
    monday: date
    iso_week: int
    days: Dict[date, List[str]]


class UndoResponse(BaseModel):
    restored: int
    failed: int
    exceptions_removed: int
