# clinic_booking/api/deps.py
from __future__ import annotations

from typing import Generator, Optional

from fastapi import Depends, Header, HTTPException, Request
from jose import JWTError
from sqlalchemy.orm import Session

from clinic_booking.services.accounts import (
    Account,
    account_for_role,
    load_account,
)
from clinic_booking.services.errors import NotFound
from clinic_booking.utils.jwt import decode_access_token


# =========================================================
# DB (per request)
# =========================================================
def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()


# =========================================================
# AUTH
# =========================================================
def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def _decode_token(raw_token: str) -> dict:
    try:
        return decode_access_token(raw_token)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")


def current_account(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Account:
    raw = _extract_bearer(authorization)
    if not raw:
        raise HTTPException(status_code=401, detail="Missing token")

    payload = _decode_token(raw)
    try:
        account = account_for_role(payload.get("role"), int(payload.get("sub")))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token payload")

    # unknown account -> 401; inactive (NotPermitted) stays 403
    try:
        load_account(db, account)
    except NotFound as e:
        raise HTTPException(status_code=401, detail=e.msg)
    return account
