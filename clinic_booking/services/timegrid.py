# clinic_booking/services/timegrid.py
"""
Clock-time and calendar helpers shared by the slot generator,
reconciliation and sweeper. Pure functions, no DB access.

Day-of-week numbering is 0=Sunday .. 6=Saturday throughout.
"""
from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta
from typing import Iterator, Tuple, Union

_HHMM = re.compile(r"^(\d{2}):(\d{2})$")

MINUTES_PER_DAY = 24 * 60


def parse_hhmm(value: str) -> time:
    m = _HHMM.match((value or "").strip())
    if not m:
        raise ValueError(f"Invalid time {value!r} (expected HH:MM)")
    hh, mm = int(m.group(1)), int(m.group(2))
    if hh > 23 or mm > 59:
        raise ValueError(f"Invalid time {value!r} (expected HH:MM)")
    return time(hh, mm)


def format_hhmm(t: time) -> str:
    return t.strftime("%H:%M")


def time_to_minutes(t: Union[time, str]) -> int:
    if isinstance(t, str):
        t = parse_hhmm(t)
    return t.hour * 60 + t.minute


def minutes_to_time(minutes: int) -> time:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"Minute offset out of range: {minutes}")
    return time(minutes // 60, minutes % 60)


def day_of_week(d: date) -> int:
    # date.weekday() is Monday=0
    return (d.weekday() + 1) % 7


def iter_dates(date_from: date, date_to: date) -> Iterator[date]:
    """Every calendar day in the closed range [date_from, date_to]."""
    cur = date_from
    step = timedelta(days=1)
    while cur <= date_to:
        yield cur
        cur += step


def slot_starts(start: time, end: time, duration_minutes: int) -> Iterator[time]:
    """Slot start times stepping by duration; a slot never runs past end."""
    if duration_minutes <= 0:
        raise ValueError("slot duration must be positive")
    t = time_to_minutes(start)
    end_m = time_to_minutes(end)
    while t + duration_minutes <= end_m:
        yield minutes_to_time(t)
        t += duration_minutes


def on_grid(t: time, start: time, end: time, duration_minutes: int) -> bool:
    """True when t is one of slot_starts(start, end, duration_minutes)."""
    offset = time_to_minutes(t) - time_to_minutes(start)
    return (offset >= 0 and offset % duration_minutes == 0
            and time_to_minutes(t) + duration_minutes <= time_to_minutes(end))


def split_now(now: datetime) -> Tuple[date, time]:
    return now.date(), now.time().replace(microsecond=0)


def is_future(d: date, t: time, now: datetime) -> bool:
    return datetime.combine(d, t) > now
