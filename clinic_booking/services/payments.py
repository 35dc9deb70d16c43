# clinic_booking/services/payments.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from clinic_booking.models.appointment import (
    Appointment,
    PaymentMethod,
    PaymentStatus,
)
from clinic_booking.models.payment import Payment


def new_transaction_id() -> str:
    return f"TXN-{uuid.uuid4().hex[:12].upper()}"


def payment_snapshot(amount: Decimal,
                     method: PaymentMethod,
                     now: datetime,
                     transaction_id: Optional[str] = None) -> dict:
    return {
        "payment_amount": amount,
        "payment_method": method,
        "payment_transaction_id": transaction_id or new_transaction_id(),
        "payment_status": PaymentStatus.PAID,
        "payment_timestamp": now,
    }


def record_payment_mirror(db: Session, ap: Appointment) -> Payment:
    """
    Mirror the appointment's embedded payment into the payment store.
    Added to the caller's unit of work; the caller commits.
    """
    row = Payment(
        appointment_id=ap.id,
        patient_id=ap.patient_id,
        doctor_id=ap.doctor_id,
        amount=ap.payment_amount,
        method=ap.payment_method,
        transaction_id=ap.payment_transaction_id,
        status=ap.payment_status,
        timestamp=ap.payment_timestamp,
    )
    db.add(row)
    return row


def refund_payments_for(db: Session, appointment_id: int) -> int:
    return (db.query(Payment).filter(
        Payment.appointment_id == appointment_id,
        Payment.status == PaymentStatus.PAID,
    ).update({Payment.status: PaymentStatus.REFUNDED},
             synchronize_session=False))
