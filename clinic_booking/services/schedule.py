# clinic_booking/services/schedule.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from sqlalchemy.orm import Session

from clinic_booking.models.account import Doctor, ScheduleRow
from clinic_booking.models.clinic import Clinic, Room, RoomStatus
from clinic_booking.services import timegrid
from clinic_booking.services.accounts import get_doctor
from clinic_booking.services.errors import ValidationFailed

logger = logging.getLogger(__name__)


@dataclass
class ScheduleRowSpec:
    """Validated, store-ready form of one incoming schedule row."""
    day_of_week: int
    clinic_id: int
    room_id: Optional[int]
    start_time: time
    end_time: time
    slot_duration_minutes: int
    is_active: bool = True


# ---------------- room resolution ----------------
def fallback_room_id(db: Session, clinic_id: int) -> Optional[int]:
    """First room of the clinic that is not under maintenance."""
    row = (db.query(Room.id).filter(
        Room.clinic_id == clinic_id,
        Room.status != RoomStatus.MAINTENANCE,
    ).order_by(Room.id.asc()).first())
    return row[0] if row else None


class RoomResolver:
    """Caches clinic fallback rooms for one pass over a schedule."""

    def __init__(self, db: Session):
        self.db = db
        self._fallback: Dict[int, Optional[int]] = {}

    def room_for(self, row: Union[ScheduleRow, ScheduleRowSpec]) -> Optional[int]:
        if row.room_id:
            return row.room_id
        if row.clinic_id not in self._fallback:
            self._fallback[row.clinic_id] = fallback_room_id(
                self.db, row.clinic_id)
        return self._fallback[row.clinic_id]


def row_matches(
    row: ScheduleRow,
    resolved_room_id: Optional[int],
    *,
    clinic_id: int,
    room_id: int,
    on: date,
    at: time,
) -> bool:
    return (row.is_active
            and row.day_of_week == timegrid.day_of_week(on)
            and row.clinic_id == clinic_id
            and resolved_room_id == room_id
            and timegrid.on_grid(at, row.start_time, row.end_time,
                                 row.slot_duration_minutes))


# ---------------- validation ----------------
def _overlaps(a: ScheduleRowSpec, b: ScheduleRowSpec) -> bool:
    return a.start_time < b.end_time and b.start_time < a.end_time


def validate_schedule_rows(db: Session,
                           rows: Sequence[dict]) -> List[ScheduleRowSpec]:
    """
    Raw dict rows (HH:MM strings) -> ScheduleRowSpec list.
    Raises ValidationFailed on the first bad row; nothing is persisted.
    """
    specs: List[ScheduleRowSpec] = []
    clinics: Dict[int, bool] = {}

    for idx, raw in enumerate(rows):
        where = f"Invalid schedule row #{idx + 1}"
        try:
            dow = int(raw.get("day_of_week"))
            clinic_id = int(raw.get("clinic_id"))
            room_id = raw.get("room_id")
            room_id = int(room_id) if room_id not in (None, "") else None
            duration = int(raw.get("slot_duration_minutes"))
        except (TypeError, ValueError):
            raise ValidationFailed(f"{where}: missing or non-numeric field")

        if not 0 <= dow <= 6:
            raise ValidationFailed(f"{where}: day_of_week must be 0..6")

        try:
            start = timegrid.parse_hhmm(raw.get("start_time"))
            end = timegrid.parse_hhmm(raw.get("end_time"))
        except (TypeError, ValueError):
            raise ValidationFailed(f"{where}: times must be HH:MM")

        if start >= end:
            raise ValidationFailed(
                f"{where}: start_time must be before end_time")
        if duration <= 0:
            raise ValidationFailed(
                f"{where}: slot_duration_minutes must be positive")
        window = timegrid.time_to_minutes(end) - timegrid.time_to_minutes(
            start)
        if duration > window:
            raise ValidationFailed(
                f"{where}: slot_duration_minutes exceeds the time window")

        if clinic_id not in clinics:
            clinics[clinic_id] = db.get(Clinic, clinic_id) is not None
        if not clinics[clinic_id]:
            raise ValidationFailed(f"{where}: clinic not found")
        if room_id is not None:
            room = db.get(Room, room_id)
            if not room or room.clinic_id != clinic_id:
                raise ValidationFailed(
                    f"{where}: room does not belong to the clinic")

        specs.append(
            ScheduleRowSpec(
                day_of_week=dow,
                clinic_id=clinic_id,
                room_id=room_id,
                start_time=start,
                end_time=end,
                slot_duration_minutes=duration,
                is_active=bool(raw.get("is_active", True)),
            ))

    # no overlap inside one (day, clinic, room) group; a roomless row is
    # grouped under the room the generator will fall back to
    rooms = RoomResolver(db)
    groups: Dict[Tuple[int, int, Optional[int]], List[ScheduleRowSpec]] = {}
    for s in specs:
        key = (s.day_of_week, s.clinic_id, rooms.room_for(s))
        groups.setdefault(key, []).append(s)
    for (dow, clinic_id, room_id), group in groups.items():
        group.sort(key=lambda s: s.start_time)
        for prev, cur in zip(group, group[1:]):
            if _overlaps(prev, cur):
                raise ValidationFailed(
                    "Overlapping schedule rows for day "
                    f"{dow} at {timegrid.format_hhmm(cur.start_time)}")
    return specs


# ---------------- store ----------------
def get_schedule(db: Session, doctor_id: int) -> dict:
    doctor = get_doctor(db, doctor_id)
    clinics = db.query(Clinic).order_by(Clinic.name.asc()).all()
    rooms = db.query(Room).order_by(Room.clinic_id.asc(),
                                    Room.room_number.asc()).all()
    return {
        "doctor": doctor,
        "schedule_rows": list(doctor.schedule_rows),
        "clinics": clinics,
        "rooms": rooms,
    }


def replace_schedule(db: Session, doctor: Doctor,
                     specs: Iterable[ScheduleRowSpec]) -> List[ScheduleRow]:
    # wholesale: the doctor's rows are never partially patched
    doctor.schedule_rows.clear()
    db.flush()
    for s in specs:
        doctor.schedule_rows.append(
            ScheduleRow(
                day_of_week=s.day_of_week,
                clinic_id=s.clinic_id,
                room_id=s.room_id,
                start_time=s.start_time,
                end_time=s.end_time,
                slot_duration_minutes=s.slot_duration_minutes,
                is_active=s.is_active,
            ))
    db.flush()
    return list(doctor.schedule_rows)


def update_schedule(db: Session,
                    doctor_id: int,
                    rows: Sequence[dict],
                    now: Optional[datetime] = None):
    """
    Validate + persist the doctor's new weekly template, then reconcile
    future slots/appointments against it.

    Returns (rows, ReconcileReport). Reconciliation is best-effort: its
    failures are logged inside the report and never undo the update.
    """
    from clinic_booking.services.reconciliation import reconcile_schedule

    doctor = get_doctor(db, doctor_id)
    specs = validate_schedule_rows(db, rows)

    try:
        saved = replace_schedule(db, doctor, specs)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Schedule updated for doctor %s (%d rows, %d active)",
                doctor.id, len(saved), sum(1 for r in saved if r.is_active))

    report = reconcile_schedule(db, doctor.id, now=now)
    db.refresh(doctor)
    return list(doctor.schedule_rows), report
