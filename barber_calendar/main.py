# barber_calendar/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlmodel import Session, select

from .auth import hash_password
from .config import ADMIN_EMAIL, ADMIN_PASSWORD, LOG_LEVEL, UNDO_WINDOW_SECONDS
from .core import SystemClock
from .db import create_db_and_tables, engine
from .errors import NotFound, SchedulingError, SlotConflict, TransientIOError, ValidationError
from .models import User
from .realtime import AvailabilityCache, change_feed
from .routers.appointments_routes import router as appointments_router
from .routers.auth_routes import router as auth_router
from .routers.calendar_routes import router as calendar_router
from .routers.series_routes import router as series_router
from .routers.staff_routes import router as staff_router
from .routers.timeoff_routes import router as timeoff_router
from .routers.undo_routes import router as undo_router
from .routers.users_routes import router as users_router
from .undo import UndoRegistry

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def seed_admin(session: Session) -> None:
    if not ADMIN_EMAIL or not ADMIN_PASSWORD:
        return
    email = ADMIN_EMAIL.strip().lower()
    if session.exec(select(User).where(User.email == email)).first() is not None:
        return
    session.add(User(email=email, password_hash=hash_password(ADMIN_PASSWORD), role="admin"))
    session.commit()
    logger.info(f"Created admin account {email}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    create_db_and_tables()
    with Session(engine) as session:
        seed_admin(session)
    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Barber Calendar API", version="1.0.0", lifespan=lifespan)

app.state.clock = SystemClock()
app.state.availability_cache = AvailabilityCache(change_feed)
app.state.undo_registry = UndoRegistry(UNDO_WINDOW_SECONDS)


def _error(status_code: int, exc: SchedulingError) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(SlotConflict)
async def slot_conflict_handler(request: Request, exc: SlotConflict):
    return _error(409, exc)


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError):
    return _error(422, exc)


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return _error(404, exc)


@app.exception_handler(TransientIOError)
async def transient_handler(request: Request, exc: TransientIOError):
    logger.warning(f"Storage unavailable for {request.url.path}: {exc}")
    return _error(503, exc)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    logger.error(f"Scheduling failure for {request.url.path}: {exc}")
    return _error(500, exc)


app.include_router(auth_router)
app.include_router(users_router)
app.include_router(staff_router)
app.include_router(appointments_router)
app.include_router(series_router)
app.include_router(timeoff_router)
app.include_router(calendar_router)
app.include_router(undo_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}
