# clinic_booking/utils/timezone.py
from __future__ import annotations

from datetime import datetime, date, timezone
from zoneinfo import ZoneInfo

from clinic_booking.core.config import settings

LOCAL_TZ = ZoneInfo(settings.LOCAL_TZ)


def now_local() -> datetime:
    """
    Returns a *naive* datetime representing local clinic time.
    Slot dates/times are stored as naive wall-clock values, so every
    comparison against them goes through this.
    """
    return datetime.now(LOCAL_TZ).replace(tzinfo=None)


def today_local() -> date:
    return now_local().date()


def utcnow() -> datetime:
    # naive UTC, the form created_at/updated_at columns are stored in
    return datetime.now(timezone.utc).replace(tzinfo=None)
