# clinic_booking/api/router.py
from fastapi import APIRouter
from clinic_booking.api import (
    routes_schedules,
    routes_slots,
    routes_appointments,
)

api_router = APIRouter()

api_router.include_router(routes_schedules.router)
api_router.include_router(routes_slots.router)
api_router.include_router(routes_appointments.router)
