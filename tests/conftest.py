from datetime import date, datetime, time
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from clinic_booking.db.session import Database
from clinic_booking.models import (
    Clinic,
    Doctor,
    Patient,
    Room,
    RoomStatus,
    Slot,
)
from clinic_booking.services.accounts import (
    ROLE_DOCTOR,
    ROLE_PATIENT,
    DoctorAccount,
    PatientAccount,
)
from clinic_booking.services.schedule import update_schedule
from clinic_booking.services.slot_generator import generate_slots
from clinic_booking.utils.jwt import create_access_token

# Sunday morning; the following day is a Monday (day_of_week == 1)
NOW = datetime(2030, 1, 6, 8, 0)
MONDAY = date(2030, 1, 7)
NEXT_MONDAY = date(2030, 1, 14)


@pytest.fixture
def database(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'clinic.db'}").open()
    database.create_all()
    yield database
    database.close()


@pytest.fixture
def db(database):
    s = database.session()
    yield s
    s.close()


@pytest.fixture
def world(db):
    clinic = Clinic(name="Nile Clinic", street="12 Corniche", city="Cairo", governorate="Cairo")
    db.add(clinic)
    db.flush()
    # lower id than room 101 so the fallback has to skip it
    maint_room = Room(clinic_id=clinic.id, room_number="100", status=RoomStatus.MAINTENANCE)
    db.add(maint_room)
    db.flush()
    room = Room(clinic_id=clinic.id, room_number="101")
    other_room = Room(clinic_id=clinic.id, room_number="102")
    db.add_all([room, other_room])

    doctor = Doctor(full_name="Dr. Amal Fathy", email="amal@example.com", consultation_fee=300)
    other_doctor = Doctor(full_name="Dr. Karim Said", email="karim@example.com", consultation_fee=450)
    patient = Patient(full_name="Mona Adel", email="mona@example.com")
    other_patient = Patient(full_name="Omar Nabil", email="omar@example.com")
    db.add_all([doctor, other_doctor, patient, other_patient])
    db.commit()

    return SimpleNamespace(
        clinic=clinic,
        room=room,
        other_room=other_room,
        maint_room=maint_room,
        doctor=doctor,
        other_doctor=other_doctor,
        patient=patient,
        other_patient=other_patient,
        doctor_acc=DoctorAccount(doctor.id),
        other_doctor_acc=DoctorAccount(other_doctor.id),
        patient_acc=PatientAccount(patient.id),
        other_patient_acc=PatientAccount(other_patient.id),
    )


def schedule_row(world, **kw) -> dict:
    row = {
        "day_of_week": 1,
        "clinic_id": world.clinic.id,
        "room_id": world.room.id,
        "start_time": "09:00",
        "end_time": "11:00",
        "slot_duration_minutes": 60,
        "is_active": True,
    }
    row.update(kw)
    return row


def monday_slots(db, world, date_to=MONDAY, doctor=None, rows=None):
    """Give the doctor the Monday 09:00-11:00 template and materialise it."""
    doctor = doctor or world.doctor
    update_schedule(db, doctor.id, rows or [schedule_row(world)], now=NOW)
    generate_slots(db, doctor.id, MONDAY, date_to, now=NOW)
    return (db.query(Slot).filter(Slot.doctor_id == doctor.id)
            .order_by(Slot.date, Slot.time).all())


def slot_at(slots, on: date, hh: int):
    return next(s for s in slots if s.date == on and s.time == time(hh, 0))


def bearer(account) -> dict:
    role = ROLE_PATIENT if isinstance(account, PatientAccount) else ROLE_DOCTOR
    return {"Authorization": f"Bearer {create_access_token(account.id, role)}"}


@pytest.fixture
def client(database):
    from clinic_booking.main import create_app

    with TestClient(create_app(database)) as c:
        yield c
