# clinic_booking/services/reconciliation.py
"""
Schedule reconciliation: after a doctor replaces their weekly template,
walk the doctor's future bookings and free slots and drop whatever no
longer falls inside an active row.

Best effort. Each pass commits on its own; a failing pass is rolled back,
logged and counted, and never reaches the schedule-update caller.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, joinedload

from clinic_booking.models.account import ScheduleRow
from clinic_booking.models.appointment import (
    Appointment,
    AppointmentStatus,
    LIVE_STATUSES,
)
from clinic_booking.models.notification import NotificationType, RecipientType
from clinic_booking.models.slot import Slot, SlotStatus
from clinic_booking.services import timegrid
from clinic_booking.services.notifications import notify
from clinic_booking.services.schedule import RoomResolver, row_matches
from clinic_booking.utils.timezone import now_local

logger = logging.getLogger(__name__)

NOTE_CANCELLED_BY_SYSTEM = "[Cancelled by system: doctor schedule changed]"


@dataclass
class ReconcileReport:
    cancelled_appointments: List[int] = field(default_factory=list)
    deleted_slots: int = 0
    errors: int = 0

    def as_dict(self) -> dict:
        return {
            "cancelled_appointments": len(self.cancelled_appointments),
            "deleted_slots": self.deleted_slots,
            "errors": self.errors,
        }


class _Matcher:
    def __init__(self, db: Session, rows: Sequence[ScheduleRow]):
        resolver = RoomResolver(db)
        self.rows: List[Tuple[ScheduleRow, Optional[int]]] = [
            (r, resolver.room_for(r)) for r in rows if r.is_active
        ]

    def covers(self, slot: Slot) -> bool:
        return any(
            row_matches(r,
                        room_id,
                        clinic_id=slot.clinic_id,
                        room_id=slot.room_id,
                        on=slot.date,
                        at=slot.time) for r, room_id in self.rows)


def _future_filter(now: datetime):
    today, now_t = timegrid.split_now(now)
    return or_(Slot.date > today, and_(Slot.date == today, Slot.time > now_t))


def _cancel_orphaned_appointments(db: Session, doctor_id: int,
                                  matcher: _Matcher,
                                  now: datetime) -> List[int]:
    rows = (db.query(Appointment).join(
        Slot, Appointment.slot_id == Slot.id).options(
            joinedload(Appointment.slot)).filter(
                Appointment.doctor_id == doctor_id,
                Appointment.status.in_(LIVE_STATUSES),
                _future_filter(now),
            ).all())

    cancelled: List[Tuple[int, int]] = []
    for ap in rows:
        if matcher.covers(ap.slot):
            continue
        ap.status = AppointmentStatus.CANCELLED
        ap.live_slot_id = None
        ap.append_note(NOTE_CANCELLED_BY_SYSTEM)
        # slot intentionally stays BOOKED here; see DESIGN.md (open question)
        cancelled.append((ap.id, ap.patient_id))
    db.commit()

    for appointment_id, patient_id in cancelled:
        notify(
            db,
            user_id=patient_id,
            user_type=RecipientType.PATIENT,
            type=NotificationType.AUTO_CANCEL,
            message=(f"Appointment #{appointment_id} was cancelled because "
                     "the doctor's schedule changed. Please book a new time."),
            appointment_id=appointment_id,
        )
    return [appointment_id for appointment_id, _ in cancelled]


def _delete_orphaned_slots(db: Session, doctor_id: int, matcher: _Matcher,
                           now: datetime) -> int:
    slots = (db.query(Slot).filter(
        Slot.doctor_id == doctor_id,
        Slot.status == SlotStatus.AVAILABLE,
        _future_filter(now),
    ).all())

    stale = [s.id for s in slots if not matcher.covers(s)]
    if stale:
        # status re-checked in the DELETE so a slot claimed meanwhile survives
        deleted = (db.query(Slot).filter(
            Slot.id.in_(stale),
            Slot.status == SlotStatus.AVAILABLE,
        ).delete(synchronize_session=False))
    else:
        deleted = 0
    db.commit()
    return deleted


def reconcile_schedule(db: Session,
                       doctor_id: int,
                       now: Optional[datetime] = None) -> ReconcileReport:
    now = now or now_local()
    report = ReconcileReport()

    try:
        rows = (db.query(ScheduleRow).filter(
            ScheduleRow.doctor_id == doctor_id,
            ScheduleRow.is_active.is_(True),
        ).all())
        matcher = _Matcher(db, rows)
    except Exception:
        db.rollback()
        logger.exception("Reconciliation for doctor %s could not load rows",
                         doctor_id)
        report.errors += 1
        return report

    try:
        report.cancelled_appointments = _cancel_orphaned_appointments(
            db, doctor_id, matcher, now)
    except Exception:
        db.rollback()
        logger.exception(
            "Reconciliation for doctor %s failed while cancelling "
            "appointments", doctor_id)
        report.errors += 1

    try:
        report.deleted_slots = _delete_orphaned_slots(db, doctor_id, matcher,
                                                      now)
    except Exception:
        db.rollback()
        logger.exception(
            "Reconciliation for doctor %s failed while deleting slots",
            doctor_id)
        report.errors += 1

    logger.info(
        "Reconciled doctor %s: %d appointment(s) cancelled, %d slot(s) "
        "deleted, %d error(s)", doctor_id, len(report.cancelled_appointments),
        report.deleted_slots, report.errors)
    return report
