# clinic_booking/models/clinic.py
from __future__ import annotations

import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    ForeignKey,
    Enum,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from clinic_booking.db.base import Base, MYSQL_ARGS
from clinic_booking.utils.timezone import utcnow


class RoomStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    MAINTENANCE = "MAINTENANCE"


class Clinic(Base):
    __tablename__ = "clinics"
    __table_args__ = MYSQL_ARGS

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(160), nullable=False)
    street = Column(String(200), nullable=False, default="")
    city = Column(String(120), nullable=False, default="")
    governorate = Column(String(120), nullable=False, default="")
    phone = Column(String(40), nullable=False, default="")
    operating_hours = Column(String(120), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    rooms = relationship("Room",
                         back_populates="clinic",
                         order_by="Room.id")


class Room(Base):
    __tablename__ = "rooms"
    __table_args__ = (
        # room numbers are unique inside a clinic
        UniqueConstraint("clinic_id",
                         "room_number",
                         name="uq_rooms_clinic_number"),
        Index("ix_rooms_status", "status"),
        MYSQL_ARGS,
    )

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer,
                       ForeignKey("clinics.id"),
                       nullable=False,
                       index=True)
    room_number = Column(String(40), nullable=False)
    status = Column(Enum(RoomStatus, name="room_status"),
                    nullable=False,
                    default=RoomStatus.AVAILABLE)

    clinic = relationship("Clinic", back_populates="rooms")

    @property
    def under_maintenance(self) -> bool:
        return self.status == RoomStatus.MAINTENANCE
