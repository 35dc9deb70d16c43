# clinic_booking/models/account.py
from __future__ import annotations

from sqlalchemy import (
    Column,
    Integer,
    String,
    Time,
    DateTime,
    Boolean,
    ForeignKey,
    Numeric,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from clinic_booking.db.base import Base, MYSQL_ARGS
from clinic_booking.utils.timezone import utcnow

DEFAULT_CONSULTATION_FEE = 300


class Patient(Base):
    __tablename__ = "patients"
    __table_args__ = MYSQL_ARGS

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(160), nullable=False)
    email = Column(String(191), unique=True, nullable=False)
    phone = Column(String(40), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)


class Doctor(Base):
    """
    Doctor account. The booking core only reads/writes `schedule_rows`
    and `consultation_fee`; credentials live with the account service.
    """
    __tablename__ = "doctors"
    __table_args__ = MYSQL_ARGS

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(160), nullable=False)
    email = Column(String(191), unique=True, nullable=False)
    phone = Column(String(40), nullable=True)
    consultation_fee = Column(Numeric(10, 2),
                              nullable=True,
                              default=DEFAULT_CONSULTATION_FEE)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)

    schedule_rows = relationship(
        "ScheduleRow",
        back_populates="doctor",
        cascade="all, delete-orphan",
        order_by="ScheduleRow.id",
    )

    @property
    def active_schedule(self):
        return [r for r in self.schedule_rows if r.is_active]


class ScheduleRow(Base):
    """
    One recurring weekly availability rule.
    day_of_week: 0=Sun .. 6=Sat. Replaced wholesale on every schedule update.
    """
    __tablename__ = "doctor_schedule_rows"
    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6",
                        name="ck_sched_row_dow"),
        CheckConstraint("end_time > start_time", name="ck_sched_row_time"),
        CheckConstraint("slot_duration_minutes > 0",
                        name="ck_sched_row_duration"),
        Index("ix_sched_row_doctor_dow", "doctor_id", "day_of_week"),
        MYSQL_ARGS,
    )

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer,
                       ForeignKey("doctors.id"),
                       nullable=False,
                       index=True)
    day_of_week = Column(Integer, nullable=False)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    slot_duration_minutes = Column(Integer, nullable=False, default=30)
    is_active = Column(Boolean, nullable=False, default=True)

    doctor = relationship("Doctor", back_populates="schedule_rows")
    clinic = relationship("Clinic", foreign_keys=[clinic_id])
    room = relationship("Room", foreign_keys=[room_id])
