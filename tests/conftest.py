"""
Shared fixtures: an in-memory database per test, a pinned clock and a timer
that only fires when the test says so.
"""

from datetime import datetime
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from barber_calendar.auth import create_access_token, hash_password
from barber_calendar.booking import BookingEngine
from barber_calendar.core import FixedClock
from barber_calendar.db import create_db_and_tables, get_session
from barber_calendar.main import app
from barber_calendar.models import User
from barber_calendar.realtime import ChangeFeed
from barber_calendar.storage import CalendarStore
from barber_calendar.undo import UndoRegistry

# Monday morning, before the shop opens
NOW = datetime(2024, 5, 27, 8, 0)


class ManualTimer:
    """Drop-in for threading.Timer; ``fire()`` runs the callback unless cancelled."""

    created = []

    def __init__(self, interval, function, args=()):
        self.interval = interval
        self.function = function
        self.args = args
        self.daemon = False
        self.started = False
        self.cancelled = False
        ManualTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function(*self.args)


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(db_engine):
    with Session(db_engine) as session:
        yield session


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def store(session, feed):
    return CalendarStore(session, feed)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def booking(store, clock):
    return BookingEngine(store, clock)


@pytest.fixture
def timers():
    ManualTimer.created = []
    return ManualTimer.created


@pytest.fixture
def shop(store):
    """Mon-Sat 09:00-18:00, Sundays closed; Max is off on Mondays, Tom has no free day."""
    for weekday in range(1, 7):
        store.set_opening_hours(weekday, "09:00", "18:00", False)
    store.set_opening_hours(7, None, None, True)
    max_ = store.create_staff(name="Max", free_day=1)
    tom = store.create_staff(name="Tom")
    return SimpleNamespace(max=max_, tom=tom)


def booking_fields(barber_id, day, time_slot, name="Anna", **extra):
    fields = {
        "barber_id": barber_id,
        "date": day,
        "time_slot": time_slot,
        "customer_name": name,
        "customer_email": f"{name.lower()}@example.com",
    }
    fields.update(extra)
    return fields


@pytest.fixture
def client(db_engine, clock, timers):
    def override_session():
        with Session(db_engine) as session:
            yield session

    saved = (app.state.clock, app.state.undo_registry)
    app.dependency_overrides[get_session] = override_session
    app.state.clock = clock
    app.state.undo_registry = UndoRegistry(5, timer_factory=ManualTimer)
    app.state.availability_cache.clear()

    # no context manager: the lifespan would create tables in the configured database
    yield TestClient(app)

    app.dependency_overrides.clear()
    app.state.clock, app.state.undo_registry = saved
    app.state.availability_cache.clear()


def _user(db_engine, email, role, staff_id=None):
    with Session(db_engine) as session:
        session.add(User(email=email, password_hash=hash_password("secret-pass"), role=role, staff_id=staff_id))
        session.commit()
    return {"Authorization": f"Bearer {create_access_token({'sub': email})}"}


@pytest.fixture
def admin_headers(db_engine):
    return _user(db_engine, "admin@shop.de", "admin")


@pytest.fixture
def barber_headers(db_engine):
    return _user(db_engine, "barber@shop.de", "barber")
