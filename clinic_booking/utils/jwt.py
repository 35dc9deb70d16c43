# clinic_booking/utils/jwt.py
from datetime import timedelta
from typing import Optional

from jose import jwt

from clinic_booking.core.config import settings
from clinic_booking.utils.timezone import utcnow


def create_access_token(
    account_id: int,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Issue a bearer token in the shape `current_account` verifies.
    The auth service owns login; this is what it (and the tests) sign with.
    """
    now = utcnow()
    delta = expires_delta or timedelta(
        minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": str(account_id),
        "role": role,
        "iat": now,
        "exp": now + delta,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def decode_access_token(raw_token: str) -> dict:
    return jwt.decode(raw_token,
                      settings.JWT_SECRET,
                      algorithms=[settings.JWT_ALG])
