from datetime import datetime, timedelta

from clinic_booking.models import Appointment, AppointmentStatus, Slot, SlotStatus
from clinic_booking.services import booking
from clinic_booking.services.sweeper import release_orphaned_slots, sweep_expired
from clinic_booking.utils.timezone import utcnow

from conftest import MONDAY, NOW, monday_slots, slot_at


def _book(db, account, slot):
    return booking.book(
        db,
        account,
        doctor_id=slot.doctor_id,
        clinic_id=slot.clinic_id,
        room_id=slot.room_id,
        slot_id=slot.id,
        method="CASH",
        now=NOW,
    )


def _status(db, appointment_id):
    db.expire_all()
    return db.get(Appointment, appointment_id).status


def test_sweeper_completes_only_past_due_bookings(db, world):
    slots = monday_slots(db, world)
    early = _book(db, world.patient_acc, slot_at(slots, MONDAY, 9))
    late = _book(db, world.other_patient_acc, slot_at(slots, MONDAY, 10))

    assert sweep_expired(db, now=datetime(2030, 1, 7, 9, 30)) == 1
    assert _status(db, early.id) == AppointmentStatus.COMPLETED
    assert _status(db, late.id) == AppointmentStatus.BOOKED
    assert db.get(Appointment, early.id).live_slot_id is None
    # slot keeps its BOOKED status
    assert db.get(Slot, slot_at(slots, MONDAY, 9).id).status == SlotStatus.BOOKED

    # idempotent
    assert sweep_expired(db, now=datetime(2030, 1, 7, 9, 30)) == 0


def test_slot_starting_right_now_is_not_expired(db, world):
    slots = monday_slots(db, world)
    ap = _book(db, world.patient_acc, slot_at(slots, MONDAY, 10))

    assert sweep_expired(db, now=datetime(2030, 1, 7, 10, 0)) == 0
    assert sweep_expired(db, now=datetime(2030, 1, 7, 10, 0, 1)) == 1
    assert _status(db, ap.id) == AppointmentStatus.COMPLETED


def test_earlier_days_are_swept_regardless_of_time(db, world):
    slots = monday_slots(db, world)
    ap = _book(db, world.patient_acc, slot_at(slots, MONDAY, 10))

    assert sweep_expired(db, now=datetime(2030, 1, 8, 0, 5)) == 1
    assert _status(db, ap.id) == AppointmentStatus.COMPLETED


def test_cancelled_bookings_are_not_swept(db, world):
    slots = monday_slots(db, world)
    ap = _book(db, world.patient_acc, slot_at(slots, MONDAY, 9))
    booking.cancel(db, ap.id, world.patient_acc, now=NOW)

    assert sweep_expired(db, now=datetime(2030, 1, 9, 0, 0)) == 0
    assert _status(db, ap.id) == AppointmentStatus.CANCELLED


def test_release_orphaned_slots(db, world):
    slots = monday_slots(db, world)
    held = slot_at(slots, MONDAY, 9)
    _book(db, world.patient_acc, held)

    stale = Slot(doctor_id=world.doctor.id, clinic_id=world.clinic.id, room_id=world.other_room.id,
                 date=MONDAY, time=held.time, status=SlotStatus.BOOKED,
                 updated_at=utcnow() - timedelta(hours=1))
    fresh = Slot(doctor_id=world.doctor.id, clinic_id=world.clinic.id, room_id=world.other_room.id,
                 date=MONDAY, time=slot_at(slots, MONDAY, 10).time, status=SlotStatus.BOOKED)
    db.add_all([stale, fresh])
    db.commit()

    assert release_orphaned_slots(db, grace_minutes=10) == 1

    db.expire_all()
    assert db.get(Slot, stale.id).status == SlotStatus.AVAILABLE
    assert db.get(Slot, fresh.id).status == SlotStatus.BOOKED
    assert db.get(Slot, held.id).status == SlotStatus.BOOKED


def test_confirmed_bookings_are_swept_like_booked_ones(db, world):
    slots = monday_slots(db, world)
    ap = _book(db, world.patient_acc, slot_at(slots, MONDAY, 9))
    ap.status = AppointmentStatus.CONFIRMED
    db.commit()

    assert sweep_expired(db, now=datetime(2030, 1, 7, 9, 30)) == 1
    assert _status(db, ap.id) == AppointmentStatus.COMPLETED
    assert db.get(Appointment, ap.id).live_slot_id is None
