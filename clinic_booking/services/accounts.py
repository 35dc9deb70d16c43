# clinic_booking/services/accounts.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Union

from sqlalchemy.orm import Session

from clinic_booking.models.account import Doctor, Patient
from clinic_booking.services.errors import NotFound, NotPermitted, ValidationFailed

ROLE_PATIENT = "PATIENT"
ROLE_DOCTOR = "DOCTOR"


@dataclass(frozen=True)
class PatientAccount:
    id: int
    role = ROLE_PATIENT


@dataclass(frozen=True)
class DoctorAccount:
    id: int
    role = ROLE_DOCTOR


Account = Union[PatientAccount, DoctorAccount]


def account_for_role(role: str, account_id: int) -> Account:
    r = (role or "").strip().upper()
    if r == ROLE_PATIENT:
        return PatientAccount(account_id)
    if r == ROLE_DOCTOR:
        return DoctorAccount(account_id)
    raise ValueError(f"Unknown account role: {role!r}")


def load_account(db: Session, account: Account) -> Union[Patient, Doctor]:
    """Resolve the variant to its active record in the Account Store."""
    model = Patient if isinstance(account, PatientAccount) else Doctor
    row = db.get(model, account.id)
    if not row:
        raise NotFound(f"{model.__name__} not found")
    if not row.is_active:
        raise NotPermitted(f"{model.__name__} inactive")
    return row


def require_patient(account: Account, msg: str) -> PatientAccount:
    if not isinstance(account, PatientAccount):
        raise NotPermitted(msg)
    return account


def require_doctor(account: Account, msg: str) -> DoctorAccount:
    if not isinstance(account, DoctorAccount):
        raise NotPermitted(msg)
    return account


def get_doctor(db: Session, doctor_id: int) -> Doctor:
    doctor = db.get(Doctor, doctor_id)
    if not doctor:
        raise NotFound("Doctor not found")
    return doctor


def consultation_fee(doctor: Doctor) -> Decimal:
    fee = doctor.consultation_fee
    if fee is None or Decimal(str(fee)) <= 0:
        raise ValidationFailed("Doctor has no consultation fee configured")
    return Decimal(str(fee))
