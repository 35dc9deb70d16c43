# clinic_booking/schemas/appointment.py
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from clinic_booking.models.appointment import (
    AppointmentStatus,
    PaymentMethod,
    PaymentStatus,
)


class BookIn(BaseModel):
    # patient comes from the bearer token, never from the body
    doctor_id: Optional[int] = None
    clinic_id: Optional[int] = None
    room_id: Optional[int] = None
    slot_id: Optional[int] = None
    payment_method: Optional[str] = Field("CASH", description="CASH | CARD")


class RescheduleIn(BaseModel):
    new_slot_id: Optional[int] = None


class PaymentSnapshotOut(BaseModel):
    amount: Decimal
    method: PaymentMethod
    transaction_id: str
    status: PaymentStatus
    timestamp: datetime


class AppointmentOut(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    clinic_id: int
    room_id: int
    slot_id: Optional[int] = None
    status: AppointmentStatus
    notes: Optional[str] = None
    payment: PaymentSnapshotOut

    slot_date: Optional[date] = None
    slot_time: Optional[time] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("slot_time")
    def _hhmm(self, t: Optional[time]) -> Optional[str]:
        return t.strftime("%H:%M") if t else None


class RescheduleOut(BaseModel):
    id: int
    new_date: str
    new_time: str
