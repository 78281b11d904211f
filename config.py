import os
from contextvars import ContextVar
from datetime import date, datetime, timedelta, timezone
from typing import Optional

DB_PATH = os.environ.get("SYMPTALYZE_DB_PATH", "symptalyze.db")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
CSRF_COOKIE_NAME = "csrf_token"
TZ_OFFSET_COOKIE_NAME = "tz_offset"

# Keys of the flat local-storage table
USERS_KEY = "users"
CURRENT_USER_KEY = "currentUser"
NAVIGATION_SOURCE_KEY = "navigationSource"

MIN_SIGNUP_AGE = 18

_client_now: ContextVar[Optional[datetime]] = ContextVar("_client_now", default=None)

PUBLIC_PATHS = {"/", "/login", "/signup", "/logout", "/api/session"}


def _set_client_clock(tz_offset_cookie: str):
    """Set per-request client-local clock derived from JS timezone offset cookie."""
    offset = None
    try:
        offset = int((tz_offset_cookie or "").strip())
    except ValueError:
        offset = None
    if offset is not None and -840 <= offset <= 840:
        _client_now.set(datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(minutes=offset))
        return
    _client_now.set(datetime.now())


def _now_local() -> datetime:
    return _client_now.get() or datetime.now()


def _today_local() -> date:
    return _now_local().date()
