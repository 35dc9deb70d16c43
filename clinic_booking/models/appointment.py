# clinic_booking/models/appointment.py
from __future__ import annotations

import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Numeric,
    Enum,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from clinic_booking.db.base import Base, MYSQL_ARGS
from clinic_booking.utils.timezone import utcnow


class AppointmentStatus(str, enum.Enum):
    BOOKED = "BOOKED"
    # reserved for a confirmation workflow; behaves like BOOKED everywhere
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"


class PaymentStatus(str, enum.Enum):
    PAID = "PAID"
    REFUNDED = "REFUNDED"
    FAILED = "FAILED"


LIVE_STATUSES = (AppointmentStatus.BOOKED, AppointmentStatus.CONFIRMED)
TERMINAL_STATUSES = (AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED)


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        # live_slot_id mirrors slot_id while BOOKED/CONFIRMED and is NULL
        # afterwards; NULLs don't collide, so one live appointment per slot
        UniqueConstraint("live_slot_id", name="uq_appointments_live_slot"),
        Index("ix_appointments_patient_status", "patient_id", "status"),
        Index("ix_appointments_doctor_status", "doctor_id", "status"),
        MYSQL_ARGS,
    )

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer,
                        ForeignKey("patients.id"),
                        nullable=False,
                        index=True)
    doctor_id = Column(Integer,
                       ForeignKey("doctors.id"),
                       nullable=False,
                       index=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    # history survives reconciliation deleting a released slot
    slot_id = Column(Integer,
                     ForeignKey("slots.id", ondelete="SET NULL"),
                     nullable=True,
                     index=True)
    live_slot_id = Column(Integer, ForeignKey("slots.id"), nullable=True)

    status = Column(Enum(AppointmentStatus, name="appointment_status"),
                    nullable=False,
                    default=AppointmentStatus.BOOKED)
    notes = Column(Text, nullable=True)

    # payment snapshot captured at booking time
    payment_amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(Enum(PaymentMethod, name="payment_method"),
                            nullable=False)
    payment_transaction_id = Column(String(40), nullable=False)
    payment_status = Column(Enum(PaymentStatus, name="payment_status"),
                            nullable=False)
    payment_timestamp = Column(DateTime, nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime,
                        default=utcnow,
                        onupdate=utcnow)

    patient = relationship("Patient", foreign_keys=[patient_id])
    doctor = relationship("Doctor", foreign_keys=[doctor_id])
    clinic = relationship("Clinic", foreign_keys=[clinic_id])
    room = relationship("Room", foreign_keys=[room_id])
    slot = relationship("Slot", foreign_keys=[slot_id])

    @property
    def slot_date(self):
        return self.slot.date if self.slot else None

    @property
    def slot_time(self):
        return self.slot.time if self.slot else None

    @property
    def payment(self) -> dict:
        return {
            "amount": self.payment_amount,
            "method": self.payment_method,
            "transaction_id": self.payment_transaction_id,
            "status": self.payment_status,
            "timestamp": self.payment_timestamp,
        }

    def append_note(self, note: str) -> None:
        self.notes = f"{self.notes} {note}" if self.notes else note
