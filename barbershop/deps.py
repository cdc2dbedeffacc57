# barbershop/deps.py

from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import HTTPException

from .config import get_settings


def require_admin(user: dict):
    if not user["is_admin"]:
        raise HTTPException(status_code=403, detail="Forbidden")


def get_now() -> datetime:
    """Current wall-clock time in the shop's zone, naive (dependency; tests override it)."""
    tz = ZoneInfo(get_settings().TIMEZONE)
    return datetime.now(tz).replace(tzinfo=None)
