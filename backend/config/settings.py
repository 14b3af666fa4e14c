"""Runtime configuration for the HackDay service."""

import os
from pathlib import Path


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


DATA_DIR = Path(__file__).resolve().parents[1] / "data"

DB_PATH = Path(os.getenv("HACKDAY_DB_PATH", str(DATA_DIR / "hackday.db")))

# No backend configured: serve everything from the in-memory store
DEMO_MODE = _flag("HACKDAY_DEMO_MODE")

# Lets the X-HackDay-Role header override the acting user's role
DEV_MODE = _flag("HACKDAY_DEV_MODE")

EVENT_ID = os.getenv("HACKDAY_EVENT_ID", "hackday-2026")
EVENT_NAME = os.getenv("HACKDAY_EVENT_NAME", "HackDay 2026")
EVENT_START = os.getenv("HACKDAY_EVENT_START") or None
EVENT_END = os.getenv("HACKDAY_EVENT_END") or None

MAX_VOTES = int(os.getenv("HACKDAY_MAX_VOTES", "5"))
MAX_SKILLS = int(os.getenv("HACKDAY_MAX_SKILLS", "5"))
MAX_TEAM_SIZE = int(os.getenv("HACKDAY_MAX_TEAM_SIZE", "6"))
MIN_TEAM_SIZE = 2
INVITE_TTL_HOURS = int(os.getenv("HACKDAY_INVITE_TTL_HOURS", "72"))
MAX_MOTD_LENGTH = 500

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "HACKDAY_CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
    ).split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("HACKDAY_LOG_LEVEL", "INFO").upper()

OBSERVERS_TEAM_ID = "team-observers"
OBSERVERS_TEAM_NAME = "Observers"

# Reminder banner / notification window, in hours before the hack starts
REMINDER_WINDOW_HOURS = (24, 48)
