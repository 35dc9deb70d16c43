# clinic_booking/models/slot.py
from __future__ import annotations

import enum

from sqlalchemy import (
    Column,
    Integer,
    Date,
    Time,
    DateTime,
    ForeignKey,
    Enum,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from clinic_booking.db.base import Base, MYSQL_ARGS
from clinic_booking.utils.timezone import utcnow


class SlotStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"


class Slot(Base):
    __tablename__ = "slots"
    __table_args__ = (
        # no duplicate time slots for same doctor/clinic/room
        UniqueConstraint(
            "doctor_id",
            "clinic_id",
            "room_id",
            "date",
            "time",
            name="uq_slot_doctor_clinic_room_date_time",
        ),
        Index("ix_slots_doctor_date_status", "doctor_id", "date", "status"),
        Index("ix_slots_status_date", "status", "date"),
        MYSQL_ARGS,
    )

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)
    status = Column(Enum(SlotStatus, name="slot_status"),
                    nullable=False,
                    default=SlotStatus.AVAILABLE)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime,
                        default=utcnow,
                        onupdate=utcnow)

    doctor = relationship("Doctor", foreign_keys=[doctor_id])
    clinic = relationship("Clinic", foreign_keys=[clinic_id])
    room = relationship("Room", foreign_keys=[room_id])

    @property
    def clinic_name(self):
        return self.clinic.name if self.clinic else None

    @property
    def room_number(self):
        return self.room.room_number if self.room else None
