# clinic_booking/services/errors.py
from __future__ import annotations


class BookingError(RuntimeError):
    """Base for every client-facing failure raised by the booking core."""

    status_code = 400
    code = "booking_error"

    def __init__(self, msg: str):
        super().__init__(msg)
        self.msg = msg


class ValidationFailed(BookingError):
    status_code = 400
    code = "validation"


class NotPermitted(BookingError):
    status_code = 403
    code = "forbidden"


class NotFound(BookingError):
    status_code = 404
    code = "not_found"


class SlotUnavailable(BookingError):
    # lost the claim race; client should refresh the slot list and retry
    status_code = 409
    code = "slot_unavailable"

    def __init__(self, msg: str = "Slot is no longer available"):
        super().__init__(msg)
