from datetime import datetime, timedelta

import pytest

from clinic_booking.models import (
    Appointment,
    AppointmentStatus,
    Notification,
    NotificationType,
    Payment,
    PaymentStatus,
    RecipientType,
    Slot,
    SlotStatus,
)
from clinic_booking.services import booking
from clinic_booking.services.errors import NotFound, NotPermitted, ValidationFailed

from conftest import MONDAY, NEXT_MONDAY, NOW, monday_slots, schedule_row, slot_at

TUESDAY = MONDAY + timedelta(days=1)


def _book(db, account, slot, now=NOW):
    return booking.book(
        db,
        account,
        doctor_id=slot.doctor_id,
        clinic_id=slot.clinic_id,
        room_id=slot.room_id,
        slot_id=slot.id,
        method="CASH",
        now=now,
    )


def _confirm(db, ap):
    ap.status = AppointmentStatus.CONFIRMED
    db.commit()
    return ap


def _notes_for(db, recipient_type, user_id):
    return (db.query(Notification).filter(
        Notification.user_type == recipient_type,
        Notification.user_id == user_id,
    ).all())


# ------------------- cancel -------------------
def test_patient_cancel_frees_slot_and_refunds(db, world):
    slot = slot_at(monday_slots(db, world), MONDAY, 9)
    ap = _book(db, world.patient_acc, slot)

    booking.cancel(db, ap.id, world.patient_acc, now=NOW)

    db.expire_all()
    ap = db.get(Appointment, ap.id)
    assert ap.status == AppointmentStatus.CANCELLED
    assert ap.notes == "[Cancelled by patient]"
    assert ap.live_slot_id is None
    # embedded snapshot is the booking-time record
    assert ap.payment_status == PaymentStatus.PAID
    assert db.get(Slot, slot.id).status == SlotStatus.AVAILABLE
    assert db.query(Payment).filter(Payment.appointment_id == ap.id).one().status == PaymentStatus.REFUNDED

    sent = _notes_for(db, RecipientType.DOCTOR, world.doctor.id)
    assert [n.type for n in sent] == [NotificationType.APPOINTMENT_CANCELLED]
    assert sent[0].appointment_id == ap.id


def test_doctor_may_cancel_a_past_appointment(db, world):
    slot = slot_at(monday_slots(db, world), MONDAY, 9)
    ap = _book(db, world.patient_acc, slot)

    booking.cancel(db, ap.id, world.doctor_acc, now=datetime(2030, 1, 8, 8, 0))

    db.expire_all()
    assert db.get(Appointment, ap.id).notes == "[Cancelled by doctor]"
    assert len(_notes_for(db, RecipientType.PATIENT, world.patient.id)) == 1


def test_patient_cannot_cancel_a_past_appointment(db, world):
    slot = slot_at(monday_slots(db, world), MONDAY, 9)
    ap = _book(db, world.patient_acc, slot)

    with pytest.raises(ValidationFailed, match="future"):
        booking.cancel(db, ap.id, world.patient_acc, now=datetime(2030, 1, 7, 9, 0))


def test_cancel_checks_ownership_and_state(db, world):
    slot = slot_at(monday_slots(db, world), MONDAY, 9)
    ap = _book(db, world.patient_acc, slot)

    with pytest.raises(NotPermitted):
        booking.cancel(db, ap.id, world.other_patient_acc, now=NOW)
    with pytest.raises(NotPermitted):
        booking.cancel(db, ap.id, world.other_doctor_acc, now=NOW)
    with pytest.raises(NotFound):
        booking.cancel(db, 9999, world.patient_acc, now=NOW)

    booking.cancel(db, ap.id, world.patient_acc, now=NOW)
    with pytest.raises(ValidationFailed):
        booking.cancel(db, ap.id, world.patient_acc, now=NOW)
    # the rejected repeat leaves the released slot bookable
    db.expire_all()
    assert db.get(Slot, slot.id).status == SlotStatus.AVAILABLE


# ------------------- reschedule -------------------
def test_reschedule_moves_the_booking(db, world):
    slots = monday_slots(db, world, date_to=NEXT_MONDAY)
    old, new = slot_at(slots, MONDAY, 9), slot_at(slots, NEXT_MONDAY, 10)
    ap = _book(db, world.patient_acc, old)

    out = booking.reschedule(db, ap.id, new.id, world.patient_acc, now=NOW)

    assert out == {"id": ap.id, "new_date": "2030-01-14", "new_time": "10:00"}
    db.expire_all()
    ap = db.get(Appointment, ap.id)
    assert (ap.slot_id, ap.live_slot_id) == (new.id, new.id)
    assert ap.status == AppointmentStatus.BOOKED
    assert db.get(Slot, old.id).status == SlotStatus.AVAILABLE
    assert db.get(Slot, new.id).status == SlotStatus.BOOKED
    # no fee change
    assert db.query(Payment).count() == 1

    sent = _notes_for(db, RecipientType.DOCTOR, world.doctor.id)
    assert [n.type for n in sent] == [NotificationType.APPOINTMENT_RESCHEDULED]


def test_reschedule_permissions(db, world):
    slots = monday_slots(db, world, date_to=NEXT_MONDAY)
    ap = _book(db, world.patient_acc, slot_at(slots, MONDAY, 9))
    target = slot_at(slots, NEXT_MONDAY, 9).id

    with pytest.raises(NotPermitted):
        booking.reschedule(db, ap.id, target, world.doctor_acc, now=NOW)
    with pytest.raises(NotPermitted):
        booking.reschedule(db, ap.id, target, world.other_patient_acc, now=NOW)
    with pytest.raises(ValidationFailed):
        booking.reschedule(db, ap.id, None, world.patient_acc, now=NOW)
    with pytest.raises(NotFound, match="Appointment"):
        booking.reschedule(db, 9999, target, world.patient_acc, now=NOW)
    with pytest.raises(NotFound, match="New slot not found"):
        booking.reschedule(db, ap.id, 9999, world.patient_acc, now=NOW)


def test_reschedule_target_rules(db, world):
    slots = monday_slots(db, world, date_to=NEXT_MONDAY)
    ap = _book(db, world.patient_acc, slot_at(slots, MONDAY, 9))
    taken = slot_at(slots, NEXT_MONDAY, 9)
    _book(db, world.other_patient_acc, taken)
    foreign = monday_slots(db, world, doctor=world.other_doctor)[0]

    with pytest.raises(ValidationFailed, match="not available"):
        booking.reschedule(db, ap.id, taken.id, world.patient_acc, now=NOW)
    with pytest.raises(ValidationFailed, match="same doctor"):
        booking.reschedule(db, ap.id, foreign.id, world.patient_acc, now=NOW)


def test_reschedule_rejects_today_on_either_side(db, world):
    rows = [schedule_row(world), schedule_row(world, day_of_week=2)]
    slots = monday_slots(db, world, date_to=TUESDAY, rows=rows)
    on_monday = _book(db, world.patient_acc, slot_at(slots, MONDAY, 9))
    on_tuesday = _book(db, world.other_patient_acc, slot_at(slots, TUESDAY, 9))
    monday_morning = datetime(2030, 1, 7, 7, 0)

    with pytest.raises(ValidationFailed, match="scheduled for today"):
        booking.reschedule(db, on_monday.id, slot_at(slots, TUESDAY, 10).id,
                           world.patient_acc, now=monday_morning)
    with pytest.raises(ValidationFailed, match="slot for today"):
        booking.reschedule(db, on_tuesday.id, slot_at(slots, MONDAY, 10).id,
                           world.other_patient_acc, now=monday_morning)


def test_reschedule_to_past_slot(db, world):
    slots = monday_slots(db, world, date_to=NEXT_MONDAY)
    ap = _book(db, world.patient_acc, slot_at(slots, NEXT_MONDAY, 9))

    with pytest.raises(ValidationFailed, match="past"):
        booking.reschedule(db, ap.id, slot_at(slots, MONDAY, 10).id,
                           world.patient_acc, now=datetime(2030, 1, 8, 8, 0))


def test_cannot_reschedule_terminal_appointment(db, world):
    slots = monday_slots(db, world, date_to=NEXT_MONDAY)
    ap = _book(db, world.patient_acc, slot_at(slots, MONDAY, 9))
    booking.cancel(db, ap.id, world.patient_acc, now=NOW)

    with pytest.raises(ValidationFailed, match="cancelled or completed"):
        booking.reschedule(db, ap.id, slot_at(slots, NEXT_MONDAY, 9).id,
                           world.patient_acc, now=NOW)


# ------------------- complete -------------------
def test_doctor_completes_own_appointment(db, world):
    slot = slot_at(monday_slots(db, world), MONDAY, 9)
    ap = _book(db, world.patient_acc, slot)

    booking.complete(db, ap.id, world.doctor_acc)

    db.expire_all()
    ap = db.get(Appointment, ap.id)
    assert ap.status == AppointmentStatus.COMPLETED
    assert ap.live_slot_id is None
    assert db.get(Slot, slot.id).status == SlotStatus.BOOKED

    with pytest.raises(ValidationFailed, match="COMPLETED"):
        booking.complete(db, ap.id, world.doctor_acc)


def test_complete_permissions(db, world):
    slot = slot_at(monday_slots(db, world), MONDAY, 9)
    ap = _book(db, world.patient_acc, slot)

    with pytest.raises(NotPermitted):
        booking.complete(db, ap.id, world.patient_acc)
    with pytest.raises(NotPermitted):
        booking.complete(db, ap.id, world.other_doctor_acc)
    with pytest.raises(NotFound):
        booking.complete(db, 9999, world.doctor_acc)


# ------------------- confirmed -------------------
def test_confirmed_appointment_can_be_cancelled(db, world):
    slot = slot_at(monday_slots(db, world), MONDAY, 9)
    ap = _confirm(db, _book(db, world.patient_acc, slot))

    booking.cancel(db, ap.id, world.patient_acc, now=NOW)

    db.expire_all()
    assert db.get(Appointment, ap.id).status == AppointmentStatus.CANCELLED
    assert db.get(Slot, slot.id).status == SlotStatus.AVAILABLE


def test_confirmed_appointment_can_be_rescheduled(db, world):
    slots = monday_slots(db, world, date_to=NEXT_MONDAY)
    old, new = slot_at(slots, MONDAY, 9), slot_at(slots, NEXT_MONDAY, 10)
    ap = _confirm(db, _book(db, world.patient_acc, old))

    booking.reschedule(db, ap.id, new.id, world.patient_acc, now=NOW)

    db.expire_all()
    ap = db.get(Appointment, ap.id)
    assert (ap.slot_id, ap.live_slot_id) == (new.id, new.id)
    assert ap.status == AppointmentStatus.CONFIRMED
    assert db.get(Slot, old.id).status == SlotStatus.AVAILABLE
    assert db.get(Slot, new.id).status == SlotStatus.BOOKED


def test_confirmed_appointment_can_be_completed(db, world):
    slot = slot_at(monday_slots(db, world), MONDAY, 9)
    ap = _confirm(db, _book(db, world.patient_acc, slot))

    booking.complete(db, ap.id, world.doctor_acc)

    db.expire_all()
    ap = db.get(Appointment, ap.id)
    assert ap.status == AppointmentStatus.COMPLETED
    assert ap.live_slot_id is None
