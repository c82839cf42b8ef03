import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _float_or_none(value: Optional[str]) -> Optional[float]:
    """Parse an optional float setting; empty or negative disables it."""
    if value is None or value.strip() == "":
        return None
    parsed = float(value)
    return parsed if parsed >= 0 else None


DATABASE_PATH = os.getenv("TIMESHEET_DB_PATH", "timesheet.db")

# How far past today placeholder entries are pre-created for open-ended rules
RECURRING_HORIZON_DAYS = int(os.getenv("RECURRING_HORIZON_DAYS", "14"))

# Seconds after startup before the first generation run (unset = no startup run)
RECURRING_STARTUP_DELAY = _float_or_none(os.getenv("RECURRING_STARTUP_DELAY", "0.1"))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# User stamped on entries generated without a caller (startup run)
DEFAULT_USER_ID = os.getenv("DEFAULT_USER_ID", "")
