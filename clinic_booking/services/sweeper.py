# clinic_booking/services/sweeper.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from clinic_booking.models.appointment import (
    Appointment,
    AppointmentStatus,
    LIVE_STATUSES,
)
from clinic_booking.models.slot import Slot, SlotStatus
from clinic_booking.services import timegrid
from clinic_booking.utils.timezone import now_local, utcnow

logger = logging.getLogger(__name__)


def sweep_expired(db: Session, now: Optional[datetime] = None) -> int:
    """
    BOOKED slots whose start is strictly in the past -> their BOOKED/CONFIRMED
    appointments become COMPLETED. Slot status is left alone. Idempotent.
    """
    now = now or now_local()
    today, now_t = timegrid.split_now(now)

    expired_slot_ids = select(Slot.id).where(
        Slot.status == SlotStatus.BOOKED,
        or_(Slot.date < today, and_(Slot.date == today, Slot.time < now_t)),
    )

    try:
        updated = (db.query(Appointment).filter(
            Appointment.slot_id.in_(expired_slot_ids),
            Appointment.status.in_(LIVE_STATUSES),
        ).update(
            {
                Appointment.status: AppointmentStatus.COMPLETED,
                Appointment.live_slot_id: None,
            },
            synchronize_session=False,
        ))
        db.commit()
    except Exception:
        db.rollback()
        raise

    if updated:
        logger.info("Sweeper completed %d past-due appointment(s)", updated)
    return updated


def release_orphaned_slots(db: Session, grace_minutes: int = 10) -> int:
    """
    Revert BOOKED slots that no appointment references at all back to
    AVAILABLE: the leftovers of a claim whose appointment never got written.
    Slots still referenced (even by a cancelled appointment) are untouched,
    and so are slots claimed within the last `grace_minutes`, which may
    belong to a booking that has not committed yet.
    """
    referenced = select(Appointment.slot_id).where(
        Appointment.slot_id.is_not(None))
    cutoff = utcnow() - timedelta(minutes=grace_minutes)
    try:
        released = (db.query(Slot).filter(
            Slot.status == SlotStatus.BOOKED,
            Slot.id.not_in(referenced),
            Slot.updated_at < cutoff,
        ).update({Slot.status: SlotStatus.AVAILABLE},
                 synchronize_session=False))
        db.commit()
    except Exception:
        db.rollback()
        raise

    if released:
        logger.warning("Released %d orphaned BOOKED slot(s)", released)
    return released
