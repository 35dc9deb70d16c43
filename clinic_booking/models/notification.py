# clinic_booking/models/notification.py
from __future__ import annotations

import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    Enum,
    Index,
)

from clinic_booking.db.base import Base, MYSQL_ARGS
from clinic_booking.utils.timezone import utcnow


class RecipientType(str, enum.Enum):
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"


class NotificationType(str, enum.Enum):
    AUTO_CANCEL = "AUTO_CANCEL"
    APPOINTMENT_CANCELLED = "APPOINTMENT_CANCELLED"
    APPOINTMENT_RESCHEDULED = "APPOINTMENT_RESCHEDULED"


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_read", "user_type", "user_id",
              "is_read"),
        MYSQL_ARGS,
    )

    id = Column(Integer, primary_key=True, index=True)
    # polymorphic owner: patients.id or doctors.id depending on user_type
    user_id = Column(Integer, nullable=False)
    user_type = Column(Enum(RecipientType, name="notification_user_type"),
                       nullable=False)
    type = Column(Enum(NotificationType, name="notification_type"),
                  nullable=False)
    message = Column(String(500), nullable=False)
    appointment_id = Column(Integer,
                            ForeignKey("appointments.id"),
                            nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)
