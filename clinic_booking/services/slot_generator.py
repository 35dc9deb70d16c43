# clinic_booking/services/slot_generator.py
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional, Set, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_booking.core.config import settings
from clinic_booking.models.slot import Slot, SlotStatus
from clinic_booking.services import timegrid
from clinic_booking.services.accounts import get_doctor
from clinic_booking.services.errors import ValidationFailed
from clinic_booking.services.schedule import RoomResolver
from clinic_booking.utils.timezone import now_local

logger = logging.getLogger(__name__)

SlotKey = Tuple[int, int, date, time]  # clinic, room, date, time


def resolve_range(
    date_from: Optional[date],
    date_to: Optional[date],
    today: date,
) -> Tuple[date, date]:
    """
    Defaults: today .. today + SLOT_GENERATION_DEFAULT_DAYS.
    A past start is clamped to today; an inverted range is rejected.
    """
    start = date_from or today
    end = date_to or (today +
                      timedelta(days=settings.SLOT_GENERATION_DEFAULT_DAYS))
    if start > end:
        raise ValidationFailed("Invalid fromDate/toDate range.")
    if start < today:
        start = today
    return start, end


def _existing_keys(db: Session, doctor_id: int, start: date,
                   end: date) -> Set[SlotKey]:
    rows = (db.query(Slot.clinic_id, Slot.room_id, Slot.date,
                     Slot.time).filter(
                         Slot.doctor_id == doctor_id,
                         Slot.date >= start,
                         Slot.date <= end,
                     ).all())
    return {(c, r, d, t) for (c, r, d, t) in rows}


def _insert_missing(db: Session, doctor, start: date, end: date) -> int:
    active = doctor.active_schedule
    if not active:
        return 0

    rooms = RoomResolver(db)
    existing = _existing_keys(db, doctor.id, start, end)
    created = 0

    for day in timegrid.iter_dates(start, end):
        dow = timegrid.day_of_week(day)
        for row in active:
            if row.day_of_week != dow:
                continue
            room_id = rooms.room_for(row)
            if room_id is None:
                logger.warning(
                    "Skipping schedule row %s for doctor %s: clinic %s has "
                    "no usable room", row.id, doctor.id, row.clinic_id)
                continue
            for t in timegrid.slot_starts(row.start_time, row.end_time,
                                          row.slot_duration_minutes):
                key = (row.clinic_id, room_id, day, t)
                if key in existing:
                    continue
                db.add(
                    Slot(
                        doctor_id=doctor.id,
                        clinic_id=row.clinic_id,
                        room_id=room_id,
                        date=day,
                        time=t,
                        status=SlotStatus.AVAILABLE,
                    ))
                existing.add(key)
                created += 1
    return created


def generate_slots(
    db: Session,
    doctor_id: int,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    now: Optional[datetime] = None,
) -> int:
    """
    Expand the doctor's active weekly rows into AVAILABLE slots over
    [date_from, date_to]. Idempotent: keys that already exist are skipped,
    so overlapping re-runs never duplicate. Returns the number created.
    """
    now = now or now_local()
    start, end = resolve_range(date_from, date_to, now.date())
    doctor = get_doctor(db, doctor_id)

    # a concurrent generator can insert the same keys between our read and
    # commit; the unique index rejects ours and one re-pass picks up the rest
    for attempt in (1, 2):
        try:
            created = _insert_missing(db, doctor, start, end)
            db.commit()
            break
        except IntegrityError:
            db.rollback()
            if attempt == 2:
                raise
            logger.info(
                "Slot generation for doctor %s raced another run; retrying",
                doctor_id)

    logger.info("Generated %d slots for doctor %s (%s..%s)", created,
                doctor_id, start, end)
    return created
