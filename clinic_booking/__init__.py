"""Appointment slot lifecycle and booking-conflict resolution engine."""

__version__ = "0.1.0"
