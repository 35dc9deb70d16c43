# FILE: clinic_booking/scripts/maintenance.py
"""
Cron entrypoint for the periodic jobs:

    clinic-booking-maintenance --sweep --release-orphans

With no job flag the status sweep runs on its own.
"""
from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from clinic_booking.core.config import settings
from clinic_booking.db.session import Database
from clinic_booking.services.sweeper import release_orphaned_slots, sweep_expired

logger = logging.getLogger(__name__)


def run(
    database: Database,
    *,
    sweep: bool = True,
    release_orphans: bool = False,
    grace_minutes: int = 10,
    create_tables: bool = False,
) -> dict:
    out = {}
    if create_tables:
        database.create_all()
        out["tables_created"] = True

    db = database.session()
    try:
        if sweep:
            out["updated_count"] = sweep_expired(db)
        if release_orphans:
            out["released_count"] = release_orphaned_slots(
                db, grace_minutes=grace_minutes)
    finally:
        db.close()
    return out


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="clinic-booking-maintenance")
    ap.add_argument("--db-uri", default=None, help="Store URI (defaults to settings)")
    ap.add_argument("--sweep", action="store_true", help="Complete appointments whose slot time has passed")
    ap.add_argument("--release-orphans", action="store_true", help="Free BOOKED slots no appointment references")
    ap.add_argument("--grace-minutes", type=int, default=10, help="Leave slots claimed more recently than this alone")
    ap.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    args = ap.parse_args(argv)

    logging.basicConfig(level=settings.LOG_LEVEL,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    sweep = bool(args.sweep) or not args.release_orphans
    database = Database(args.db_uri or settings.SQLALCHEMY_DATABASE_URI).open()
    try:
        out = run(
            database,
            sweep=sweep,
            release_orphans=bool(args.release_orphans),
            grace_minutes=int(args.grace_minutes),
            create_tables=bool(args.create_tables),
        )
    except Exception:
        logger.exception("Maintenance run failed")
        return 1
    finally:
        database.close()

    print("Maintenance done:", out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
