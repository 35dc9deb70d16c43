# clinic_booking/services/booking.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from clinic_booking.models.appointment import (
    Appointment,
    AppointmentStatus,
    PaymentMethod,
    LIVE_STATUSES,
    TERMINAL_STATUSES,
)
from clinic_booking.models.clinic import Clinic, Room
from clinic_booking.models.notification import NotificationType, RecipientType
from clinic_booking.models.slot import SlotStatus
from clinic_booking.services import timegrid
from clinic_booking.services.accounts import (
    Account,
    DoctorAccount,
    PatientAccount,
    consultation_fee,
    get_doctor,
    require_doctor,
    require_patient,
)
from clinic_booking.services.errors import (
    BookingError,
    NotFound,
    NotPermitted,
    SlotUnavailable,
    ValidationFailed,
)
from clinic_booking.services.notifications import notify
from clinic_booking.services.payments import (
    payment_snapshot,
    record_payment_mirror,
    refund_payments_for,
)
from clinic_booking.services.slots import claim_slot, get_slot, release_slot
from clinic_booking.utils.timezone import now_local

logger = logging.getLogger(__name__)

NOTE_CANCELLED_BY_PATIENT = "[Cancelled by patient]"
NOTE_CANCELLED_BY_DOCTOR = "[Cancelled by doctor]"


def parse_payment_method(value: Union[str, PaymentMethod, None]) -> PaymentMethod:
    if isinstance(value, PaymentMethod):
        return value
    try:
        return PaymentMethod((value or "").strip().upper())
    except ValueError:
        raise ValidationFailed("Invalid payment method (CASH or CARD)")


def get_appointment(db: Session, appointment_id: int) -> Appointment:
    ap = db.get(Appointment, appointment_id)
    if not ap:
        raise NotFound("Appointment not found")
    return ap


# ------------------- BOOK -------------------
def book(
    db: Session,
    account: Account,
    *,
    doctor_id: Optional[int],
    clinic_id: Optional[int],
    room_id: Optional[int],
    slot_id: Optional[int],
    method: Union[str, PaymentMethod, None],
    now: Optional[datetime] = None,
) -> Appointment:
    """
    Claim the slot and create the appointment + payment mirror in one
    transaction. The patient is always the authenticated account, never a
    client-supplied id.
    """
    patient = require_patient(account, "Only patients can book appointments")
    if not (doctor_id and clinic_id and room_id and slot_id):
        raise ValidationFailed("Missing required fields")
    pay_method = parse_payment_method(method)
    now = now or now_local()

    room = db.get(Room, room_id)
    if not room:
        raise NotFound("Room not found")
    if room.under_maintenance:
        raise ValidationFailed("Room is under maintenance")
    doctor = get_doctor(db, doctor_id)
    if not db.get(Clinic, clinic_id):
        raise NotFound("Clinic not found")

    slot = get_slot(db, slot_id)
    if (slot.doctor_id, slot.clinic_id, slot.room_id) != (doctor_id,
                                                          clinic_id, room_id):
        raise ValidationFailed(
            "Slot does not belong to the requested doctor, clinic and room")
    if not timegrid.is_future(slot.date, slot.time, now):
        raise ValidationFailed("Cannot book a past slot")

    claimed = False
    try:
        if not claim_slot(db, slot_id):
            raise SlotUnavailable()
        claimed = True

        fee = consultation_fee(doctor)
        ap = Appointment(
            patient_id=patient.id,
            doctor_id=doctor_id,
            clinic_id=clinic_id,
            room_id=room_id,
            slot_id=slot_id,
            live_slot_id=slot_id,
            status=AppointmentStatus.BOOKED,
            **payment_snapshot(fee, pay_method, now),
        )
        db.add(ap)
        db.flush()
        record_payment_mirror(db, ap)
        db.commit()
    except BookingError:
        db.rollback()
        raise
    except IntegrityError:
        # claim went through but another live appointment already points
        # at this slot; the rollback reverts the claim
        db.rollback()
        logger.error(
            "Slot %s claimed but a live appointment already references it",
            slot_id)
        raise SlotUnavailable()
    except Exception:
        db.rollback()
        if claimed:
            logger.exception(
                "Booking failed after claiming slot %s for patient %s; "
                "claim rolled back", slot_id, patient.id)
        raise

    db.refresh(ap)
    logger.info("Appointment %s booked: patient=%s slot=%s", ap.id,
                patient.id, slot_id)
    return ap


# ------------------- CANCEL -------------------
def cancel(
    db: Session,
    appointment_id: int,
    account: Account,
    now: Optional[datetime] = None,
) -> Appointment:
    ap = get_appointment(db, appointment_id)

    if isinstance(account, PatientAccount):
        if ap.patient_id != account.id:
            raise NotPermitted("You can only cancel your own appointments")
        note = NOTE_CANCELLED_BY_PATIENT
        counterpart = (RecipientType.DOCTOR, ap.doctor_id)
    elif isinstance(account, DoctorAccount):
        if ap.doctor_id != account.id:
            raise NotPermitted("You can only cancel your own appointments")
        note = NOTE_CANCELLED_BY_DOCTOR
        counterpart = (RecipientType.PATIENT, ap.patient_id)
    else:
        raise NotPermitted("Not permitted")

    if ap.status not in LIVE_STATUSES:
        raise ValidationFailed(
            "Only booked or confirmed appointments can be cancelled.")

    now = now or now_local()
    slot = ap.slot
    if isinstance(account, PatientAccount):
        if slot is None or not timegrid.is_future(slot.date, slot.time, now):
            raise ValidationFailed(
                "You can only cancel future appointments.")

    try:
        ap.status = AppointmentStatus.CANCELLED
        ap.live_slot_id = None
        ap.append_note(note)
        if slot is not None:
            release_slot(db, slot)
        refunded = refund_payments_for(db, ap.id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Appointment %s cancelled (%s), %d payment(s) refunded",
                ap.id, account.role, refunded)
    notify(
        db,
        user_id=counterpart[1],
        user_type=counterpart[0],
        type=NotificationType.APPOINTMENT_CANCELLED,
        message=f"Appointment #{ap.id} was cancelled by the {account.role.lower()}.",
        appointment_id=ap.id,
    )
    return ap


# ------------------- RESCHEDULE -------------------
def reschedule(
    db: Session,
    appointment_id: int,
    new_slot_id: Optional[int],
    account: Account,
    now: Optional[datetime] = None,
) -> dict:
    patient = require_patient(account,
                              "Only patients can reschedule appointments")
    if not new_slot_id:
        raise ValidationFailed("New slot ID is required")

    ap = get_appointment(db, appointment_id)
    if ap.patient_id != patient.id:
        raise NotPermitted("You can only reschedule your own appointments")
    if ap.status in TERMINAL_STATUSES:
        raise ValidationFailed(
            "Cannot reschedule a cancelled or completed appointment")

    old_slot = ap.slot
    if old_slot is None:
        raise ValidationFailed("Appointment has no associated slot")

    now = now or now_local()
    today = now.date()
    if old_slot.date == today:
        raise ValidationFailed(
            "Cannot reschedule appointments scheduled for today")

    new_slot = get_slot(db, new_slot_id, msg="New slot not found")
    if new_slot.status != SlotStatus.AVAILABLE:
        raise ValidationFailed("Selected slot is not available")
    if new_slot.doctor_id != ap.doctor_id:
        raise ValidationFailed("New slot must be with the same doctor")
    if new_slot.date == today:
        raise ValidationFailed("Cannot reschedule to a slot for today")
    if new_slot.date < today:
        raise ValidationFailed("Cannot reschedule to a past slot")

    try:
        if not claim_slot(db, new_slot.id):
            raise SlotUnavailable("Selected slot was just taken")
        release_slot(db, old_slot)
        ap.slot = new_slot
        ap.live_slot_id = new_slot.id
        ap.room_id = new_slot.room_id
        ap.clinic_id = new_slot.clinic_id
        db.commit()
    except BookingError:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        logger.exception("Reschedule of appointment %s to slot %s failed",
                         appointment_id, new_slot_id)
        raise

    logger.info("Appointment %s moved from slot %s to slot %s", ap.id,
                old_slot.id, new_slot.id)
    notify(
        db,
        user_id=ap.doctor_id,
        user_type=RecipientType.DOCTOR,
        type=NotificationType.APPOINTMENT_RESCHEDULED,
        message=(f"Appointment #{ap.id} moved to {new_slot.date.isoformat()} "
                 f"{timegrid.format_hhmm(new_slot.time)}."),
        appointment_id=ap.id,
    )
    return {
        "id": ap.id,
        "new_date": new_slot.date.isoformat(),
        "new_time": timegrid.format_hhmm(new_slot.time),
    }


# ------------------- COMPLETE -------------------
def complete(db: Session, appointment_id: int,
             account: Account) -> Appointment:
    doctor = require_doctor(account, "Only doctors can complete appointments")
    ap = get_appointment(db, appointment_id)
    if ap.doctor_id != doctor.id:
        raise NotPermitted("You can only complete your own appointments")
    if ap.status not in LIVE_STATUSES:
        raise ValidationFailed(
            f"Cannot complete an appointment with status: {ap.status.value}")

    ap.status = AppointmentStatus.COMPLETED
    ap.live_slot_id = None
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    return ap


# ------------------- LISTING -------------------
def list_appointments(db: Session, account: Account) -> List[Appointment]:
    q = db.query(Appointment).options(
        joinedload(Appointment.slot),
        joinedload(Appointment.doctor),
        joinedload(Appointment.patient),
        joinedload(Appointment.clinic),
        joinedload(Appointment.room),
    )
    if isinstance(account, PatientAccount):
        q = q.filter(Appointment.patient_id == account.id)
    else:
        q = q.filter(Appointment.doctor_id == account.id)
    return q.order_by(Appointment.created_at.desc(),
                      Appointment.id.desc()).all()
