# FILE: clinic_booking/api/routes_slots.py
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clinic_booking.api.deps import current_account, get_db
from clinic_booking.schemas.schedule import SlotOut
from clinic_booking.services.accounts import Account
from clinic_booking.services.slots import list_available_slots
from clinic_booking.utils.resp import ok
from clinic_booking.utils.timezone import today_local

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/available")
def available_slots(
        doctor_id: int = Query(...),
        clinic_id: Optional[int] = Query(None),
        on: Optional[date] = Query(None, alias="date"),
        from_date: Optional[date] = Query(None),
        to_date: Optional[date] = Query(None),
        db: Session = Depends(get_db),
        account: Account = Depends(current_account),
):
    rows = list_available_slots(
        db,
        doctor_id,
        clinic_id=clinic_id,
        on=on,
        date_from=from_date,
        date_to=to_date,
        today=today_local(),
    )
    return ok([SlotOut.model_validate(s).model_dump() for s in rows],
              meta={"count": len(rows)})
