# clinic_booking/db/base.py
from sqlalchemy.orm import DeclarativeBase


MYSQL_ARGS = {
    "mysql_engine": "InnoDB",
    "mysql_charset": "utf8mb4",
    "mysql_collate": "utf8mb4_unicode_ci",
}


class Base(DeclarativeBase):
    """All booking tables (accounts, clinics, slots, appointments, ...) inherit from this."""
    pass


# Import all models so metadata is complete for create_all()
from clinic_booking.models import (  # noqa: F401,E402
    clinic,
    account,
    slot,
    appointment,
    payment,
    notification,
)
