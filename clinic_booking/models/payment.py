# clinic_booking/models/payment.py
from __future__ import annotations

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    ForeignKey,
    Numeric,
    Enum,
    Index,
)
from sqlalchemy.orm import relationship

from clinic_booking.db.base import Base, MYSQL_ARGS
from clinic_booking.models.appointment import PaymentMethod, PaymentStatus


class Payment(Base):
    """
    Payment-store mirror of the snapshot embedded in an appointment.
    Written as a side effect of booking; refunded on cancellation.
    """
    __tablename__ = "payments"
    __table_args__ = (
        Index("ix_payments_timestamp", "timestamp"),
        Index("ix_payments_doctor_ts", "doctor_id", "timestamp"),
        Index("ix_payments_patient_ts", "patient_id", "timestamp"),
        MYSQL_ARGS,
    )

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer,
                            ForeignKey("appointments.id"),
                            nullable=False,
                            index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    method = Column(Enum(PaymentMethod, name="payment_method"),
                    nullable=False)
    transaction_id = Column(String(40), nullable=False)
    status = Column(Enum(PaymentStatus, name="payment_status"),
                    nullable=False)
    timestamp = Column(DateTime, nullable=False)

    appointment = relationship("Appointment", foreign_keys=[appointment_id])
