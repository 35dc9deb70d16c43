# FILE: clinic_booking/api/routes_schedules.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from clinic_booking.api.deps import current_account, get_db
from clinic_booking.schemas.schedule import (
    ClinicOut,
    GenerateSlotsIn,
    RoomOut,
    ScheduleRowOut,
    ScheduleUpdateIn,
)
from clinic_booking.services.accounts import Account, require_doctor
from clinic_booking.services.schedule import get_schedule, update_schedule
from clinic_booking.services.slot_generator import generate_slots
from clinic_booking.utils.resp import ok

router = APIRouter(prefix="/doctors", tags=["schedules"])


def _rows_out(rows) -> list:
    return [ScheduleRowOut.model_validate(r).model_dump() for r in rows]


@router.get("/schedule")
def read_schedule(
        db: Session = Depends(get_db),
        account: Account = Depends(current_account),
):
    doctor = require_doctor(account, "Only doctors can view their schedule")
    sch = get_schedule(db, doctor.id)
    return ok({
        "doctor_id": doctor.id,
        "schedule_rows": _rows_out(sch["schedule_rows"]),
        "clinics": [ClinicOut.model_validate(c).model_dump() for c in sch["clinics"]],
        "rooms": [RoomOut.model_validate(r).model_dump() for r in sch["rooms"]],
    })


@router.put("/schedule")
def put_schedule(
        payload: ScheduleUpdateIn,
        db: Session = Depends(get_db),
        account: Account = Depends(current_account),
):
    doctor = require_doctor(account, "Only doctors can update their schedule")
    rows, report = update_schedule(
        db, doctor.id, [r.model_dump() for r in payload.schedule_rows])
    return ok({"schedule_rows": _rows_out(rows)},
              meta={"reconciliation": report.as_dict()})


@router.post("/slots/generate")
def generate(
        payload: Optional[GenerateSlotsIn] = Body(None),
        db: Session = Depends(get_db),
        account: Account = Depends(current_account),
):
    doctor = require_doctor(account, "Only doctors can generate slots")
    payload = payload or GenerateSlotsIn()
    created = generate_slots(db, doctor.id, payload.from_date, payload.to_date)
    return ok({"created_count": created}, status_code=201)
