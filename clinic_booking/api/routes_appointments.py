# FILE: clinic_booking/api/routes_appointments.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clinic_booking.api.deps import current_account, get_db
from clinic_booking.schemas.appointment import (
    AppointmentOut,
    BookIn,
    RescheduleIn,
    RescheduleOut,
)
from clinic_booking.services import booking
from clinic_booking.services.accounts import (
    Account,
    require_doctor,
    require_patient,
)
from clinic_booking.services.sweeper import sweep_expired
from clinic_booking.utils.resp import ok

router = APIRouter(prefix="/appointments", tags=["appointments"])


def _out(ap) -> dict:
    return AppointmentOut.model_validate(ap).model_dump()


@router.post("/book")
def book_appointment(
        payload: BookIn,
        db: Session = Depends(get_db),
        account: Account = Depends(current_account),
):
    ap = booking.book(
        db,
        account,
        doctor_id=payload.doctor_id,
        clinic_id=payload.clinic_id,
        room_id=payload.room_id,
        slot_id=payload.slot_id,
        method=payload.payment_method,
    )
    return ok(_out(ap), status_code=201)


@router.get("/patient")
def patient_appointments(
        db: Session = Depends(get_db),
        account: Account = Depends(current_account),
):
    require_patient(account, "Only patients can view patient appointments")
    return ok([_out(ap) for ap in booking.list_appointments(db, account)])


@router.get("/doctor")
def doctor_appointments(
        db: Session = Depends(get_db),
        account: Account = Depends(current_account),
):
    require_doctor(account, "Only doctors can view doctor appointments")
    return ok([_out(ap) for ap in booking.list_appointments(db, account)])


@router.post("/update-status")
def update_status(
        db: Session = Depends(get_db),
        account: Account = Depends(current_account),
):
    return ok({"updated_count": sweep_expired(db)})


@router.post("/{appointment_id}/cancel")
def cancel_appointment(
        appointment_id: int,
        db: Session = Depends(get_db),
        account: Account = Depends(current_account),
):
    return ok(_out(booking.cancel(db, appointment_id, account)))


@router.patch("/{appointment_id}/reschedule")
def reschedule_appointment(
        appointment_id: int,
        payload: RescheduleIn,
        db: Session = Depends(get_db),
        account: Account = Depends(current_account),
):
    moved = booking.reschedule(db, appointment_id, payload.new_slot_id,
                               account)
    return ok(RescheduleOut(**moved).model_dump())


@router.post("/{appointment_id}/complete")
def complete_appointment(
        appointment_id: int,
        db: Session = Depends(get_db),
        account: Account = Depends(current_account),
):
    return ok(_out(booking.complete(db, appointment_id, account)))
