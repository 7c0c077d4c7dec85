# barber_calendar/models.py

from typing import Optional, Any
from datetime import datetime, date as Date

from sqlalchemy import Index, UniqueConstraint, text
from sqlalchemy.types import JSON
from sqlmodel import SQLModel, Field, Column

# Weekdays are ISO numbers everywhere: 1=Mon .. 7=Sun.
# Time values are "HH:MM" labels.


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    role: str  # admin or barber
    staff_id: Optional[int] = Field(default=None, foreign_key="staffmember.id")


class StaffMember(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    free_day: Optional[int] = None  # weekday the staff is normally off
    active: bool = True
    sort_order: int = 0
    image: Optional[str] = None


class OpeningHours(SQLModel, table=True):
    day_of_week: int = Field(primary_key=True)
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    is_closed: bool = False


class StaffWorkingHours(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("staff_id", "day_of_week", name="uq_staff_weekday"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    staff_id: int = Field(foreign_key="staffmember.id", index=True)
    day_of_week: int
    start_time: str
    end_time: str


class FreeDayException(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    staff_id: int = Field(foreign_key="staffmember.id", index=True)
    date: Date = Field(index=True)  # granted availability
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    replacement_date: Optional[Date] = None  # compensated absence


class StaffTimeOff(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    staff_id: int = Field(foreign_key="staffmember.id", index=True)
    start_date: Date = Field(index=True)
    end_date: Date = Field(index=True)
    # both null: full day; both set: inclusive range of blocked slot labels
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    reason: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_full_day(self) -> bool:
        return self.start_time is None or self.end_time is None


class ClosedDate(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    date: Date = Field(index=True, unique=True)
    reason: Optional[str] = None


class OpenSunday(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    date: Date = Field(index=True, unique=True)
    open_time: str
    close_time: str


class OpenSundayStaff(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("open_sunday_id", "staff_id", name="uq_open_sunday_staff"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    open_sunday_id: int = Field(foreign_key="opensunday.id", index=True)
    staff_id: int = Field(foreign_key="staffmember.id")
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class OpenHoliday(SQLModel, table=True):
    # a public holiday on which the shop opens anyway
    id: Optional[int] = Field(default=None, primary_key=True)
    date: Date = Field(index=True, unique=True)
    reason: Optional[str] = None


class Setting(SQLModel, table=True):
    key: str = Field(primary_key=True)
    value: Any = Field(sa_column=Column(JSON))


class Series(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    barber_id: int = Field(foreign_key="staffmember.id", index=True)
    day_of_week: int
    time_slot: str
    service_id: Optional[int] = None
    customer_name: str
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    start_date: Date
    end_date: Optional[Date] = None  # null: open-ended
    interval_type: str = "weekly"  # weekly, biweekly, monthly or custom
    interval_weeks: Optional[int] = None  # only for custom
    is_pause: bool = False
    last_generated_date: Optional[Date] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Appointment(SQLModel, table=True):
    __table_args__ = (
        # at most one confirmed occupant per (staff, date, slot)
        Index(
            "uq_confirmed_slot",
            "barber_id",
            "date",
            "time_slot",
            unique=True,
            sqlite_where=text("status = 'confirmed'"),
            postgresql_where=text("status = 'confirmed'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    barber_id: int = Field(foreign_key="staffmember.id", index=True)
    date: Date = Field(index=True)
    time_slot: str
    service_id: Optional[int] = None
    customer_name: str
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    customer_id: Optional[int] = None
    status: str = "confirmed"  # confirmed or cancelled
    source: str = "manual"  # manual or online
    series_id: Optional[int] = Field(default=None, foreign_key="series.id", index=True)
    is_pause: bool = False
    cancelled_by: Optional[str] = None  # customer or barber
    cancelled_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
