# clinic_booking/services/notifications.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from clinic_booking.models.notification import (
    Notification,
    NotificationType,
    RecipientType,
)

logger = logging.getLogger(__name__)


def notify(
    db: Session,
    *,
    user_id: int,
    user_type: RecipientType,
    type: NotificationType,
    message: str,
    appointment_id: Optional[int] = None,
) -> bool:
    """
    Fire-and-forget delivery on its own short session.

    Call only after the booking transaction has committed: a failed
    notification is logged and dropped, never rolled into the caller.
    """
    try:
        with Session(bind=db.get_bind()) as s:
            s.add(
                Notification(
                    user_id=user_id,
                    user_type=user_type,
                    type=type,
                    message=message[:500],
                    appointment_id=appointment_id,
                ))
            s.commit()
        return True
    except Exception:
        logger.exception("Notification failed (user=%s/%s, type=%s)",
                         user_type.value, user_id, type.value)
        return False
