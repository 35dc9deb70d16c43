# clinic_booking/schemas/schedule.py
from datetime import date, time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from clinic_booking.models.clinic import RoomStatus
from clinic_booking.models.slot import SlotStatus


# ---------- Schedule rows ----------
class ScheduleRowIn(BaseModel):
    day_of_week: int = Field(..., description="0=Sun .. 6=Sat")
    clinic_id: int
    room_id: Optional[int] = None
    start_time: str = Field(..., description="HH:MM (24h)")
    end_time: str = Field(..., description="HH:MM (24h)")
    slot_duration_minutes: int
    is_active: bool = True


class ScheduleUpdateIn(BaseModel):
    schedule_rows: List[ScheduleRowIn] = Field(default_factory=list)


class ScheduleRowOut(BaseModel):
    id: int
    day_of_week: int
    clinic_id: int
    room_id: Optional[int] = None
    start_time: time
    end_time: time
    slot_duration_minutes: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("start_time", "end_time")
    def _hhmm(self, t: time) -> str:
        return t.strftime("%H:%M")


class ClinicOut(BaseModel):
    id: int
    name: str
    city: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class RoomOut(BaseModel):
    id: int
    clinic_id: int
    room_number: str
    status: RoomStatus

    model_config = ConfigDict(from_attributes=True)


# ---------- Slots ----------
class GenerateSlotsIn(BaseModel):
    from_date: Optional[date] = None
    to_date: Optional[date] = None


class SlotOut(BaseModel):
    id: int
    doctor_id: int
    clinic_id: int
    room_id: int
    date: date
    time: time
    status: SlotStatus

    clinic_name: Optional[str] = None
    room_number: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("time")
    def _hhmm(self, t: time) -> str:
        return t.strftime("%H:%M")
