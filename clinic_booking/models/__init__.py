# clinic_booking/models/__init__.py
from .clinic import Clinic, Room, RoomStatus
from .account import Patient, Doctor, ScheduleRow
from .slot import Slot, SlotStatus
from .appointment import (
    Appointment,
    AppointmentStatus,
    PaymentMethod,
    PaymentStatus,
)
from .payment import Payment
from .notification import Notification, NotificationType, RecipientType

__all__ = [
    "Clinic",
    "Room",
    "RoomStatus",
    "Patient",
    "Doctor",
    "ScheduleRow",
    "Slot",
    "SlotStatus",
    "Appointment",
    "AppointmentStatus",
    "PaymentMethod",
    "PaymentStatus",
    "Payment",
    "Notification",
    "NotificationType",
    "RecipientType",
]
