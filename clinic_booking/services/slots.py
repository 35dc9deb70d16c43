# clinic_booking/services/slots.py
from __future__ import annotations

from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from clinic_booking.models.slot import Slot, SlotStatus
from clinic_booking.services.errors import NotFound, ValidationFailed


def get_slot(db: Session, slot_id: int, *, msg: str = "Slot not found") -> Slot:
    slot = db.get(Slot, slot_id)
    if not slot:
        raise NotFound(msg)
    return slot


def claim_slot(db: Session, slot_id: int) -> bool:
    """
    Compare-and-swap AVAILABLE -> BOOKED in one conditional UPDATE.

    This is the only thing standing between two patients and the same
    slot: whichever statement the store applies first wins, the other
    matches zero rows. Runs inside the caller's transaction.
    """
    n = (db.query(Slot).filter(
        Slot.id == slot_id,
        Slot.status == SlotStatus.AVAILABLE,
    ).update({Slot.status: SlotStatus.BOOKED}, synchronize_session=False))
    if n == 1:
        # keep any already-loaded instance in step with the row
        slot = db.identity_map.get(db.identity_key(Slot, slot_id))
        if slot is not None:
            db.expire(slot, ["status"])
    return n == 1


def release_slot(db: Session, slot: Slot) -> None:
    slot.status = SlotStatus.AVAILABLE


def list_available_slots(
    db: Session,
    doctor_id: int,
    *,
    clinic_id: Optional[int] = None,
    on: Optional[date] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    today: date,
) -> List[Slot]:
    q = (db.query(Slot).options(
        joinedload(Slot.clinic),
        joinedload(Slot.room),
    ).filter(
        Slot.doctor_id == doctor_id,
        Slot.status == SlotStatus.AVAILABLE,
    ))
    if clinic_id:
        q = q.filter(Slot.clinic_id == clinic_id)

    if on:
        q = q.filter(Slot.date == on)
    elif date_from and date_to:
        if date_from > date_to:
            raise ValidationFailed("Invalid fromDate/toDate range.")
        q = q.filter(Slot.date >= date_from, Slot.date <= date_to)
    else:
        # doctor-only: every slot from today on
        q = q.filter(Slot.date >= today)

    return q.order_by(Slot.date.asc(), Slot.time.asc(), Slot.id.asc()).all()
