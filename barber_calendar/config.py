# barber_calendar/config.py

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./barber.db")

# Security - no default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# First admin account, created on startup when no user with this email exists
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")

# Scheduling
SHOP_TIMEZONE = os.getenv("SHOP_TIMEZONE", "Europe/Berlin")
SLOT_MINUTES = int(os.getenv("SLOT_MINUTES", "30"))
GRID_OPEN_TIME = os.getenv("GRID_OPEN_TIME", "08:00")
GRID_CLOSE_TIME = os.getenv("GRID_CLOSE_TIME", "20:00")
# Saturday from this hour on, the default week shown is next week
WEEK_CUTOVER_HOUR = int(os.getenv("WEEK_CUTOVER_HOUR", "18"))
SERIES_HORIZON_WEEKS = int(os.getenv("SERIES_HORIZON_WEEKS", "52"))
UNDO_WINDOW_SECONDS = float(os.getenv("UNDO_WINDOW_SECONDS", "5"))

# Bounded retry for read-only loads
READ_RETRY_ATTEMPTS = int(os.getenv("READ_RETRY_ATTEMPTS", "3"))
READ_RETRY_DELAY_SECONDS = float(os.getenv("READ_RETRY_DELAY_SECONDS", "0.5"))

# Fallbacks for settings editable at runtime (Setting table)
DEFAULT_BUNDESLAND = os.getenv("DEFAULT_BUNDESLAND", "NW")
DEFAULT_BOOKING_ADVANCE_WEEKS = int(os.getenv("DEFAULT_BOOKING_ADVANCE_WEEKS", "4"))
DEFAULT_CANCELLATION_HOURS = int(os.getenv("DEFAULT_CANCELLATION_HOURS", "24"))

shop_settings = {
    "timezone": SHOP_TIMEZONE,
    "open_time": GRID_OPEN_TIME,
    "close_time": GRID_CLOSE_TIME,
    "slot_minutes": SLOT_MINUTES,
    "week_cutover_hour": WEEK_CUTOVER_HOUR,
    "series_horizon_weeks": SERIES_HORIZON_WEEKS,
    "undo_window_seconds": UNDO_WINDOW_SECONDS,
}
