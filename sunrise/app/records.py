"""Storage of per-day sun time records."""

import datetime
from typing import Any

import sqlalchemy
import sqlalchemy.orm
from sqlmodel import Session, col, select

from . import database
from .models import Location, SunriseSunsetRecord

RECENT_LOCATIONS_LIMIT = 20


def find_existing(
    session: Session,
    location: Location,
    start_date: datetime.date,
    end_date: datetime.date,
) -> list[SunriseSunsetRecord]:
    """Return stored records for the location within the inclusive range, by date."""
    statement = (
        select(SunriseSunsetRecord)
        .where(SunriseSunsetRecord.location_id == location.id)
        .where(col(SunriseSunsetRecord.date) >= start_date)
        .where(col(SunriseSunsetRecord.date) <= end_date)
        .options(sqlalchemy.orm.selectinload(SunriseSunsetRecord.location))  # type: ignore[arg-type]
        .order_by(col(SunriseSunsetRecord.date))
    )
    return list(session.exec(statement).all())


def get_record(
    session: Session, location: Location, day: datetime.date
) -> SunriseSunsetRecord | None:
    """Return the stored record for one location and date, or None."""
    return session.exec(
        select(SunriseSunsetRecord)
        .where(SunriseSunsetRecord.location_id == location.id)
        .where(SunriseSunsetRecord.date == day)
    ).first()


def create_if_absent(
    session: Session,
    location: Location,
    day: datetime.date,
    fields: dict[str, Any],
) -> SunriseSunsetRecord:
    """Store a record for (location, day) unless one already exists.

    The first write wins: when a record is already stored it is returned
    unchanged and nothing is written.
    """
    values = {
        **fields,
        'location_id': location.id,
        'date': day,
        'created_at': datetime.datetime.now(datetime.UTC),
    }
    database.insert_if_absent(
        session,
        SunriseSunsetRecord,
        values,
        conflict_columns=['location_id', 'date'],
    )
    record = get_record(session, location, day)
    assert record is not None
    return record


def recent_location_names(
    session: Session, limit: int = RECENT_LOCATIONS_LIMIT
) -> list[str]:
    """Display names of locations with stored records, most recently used first."""
    last_used = sqlalchemy.func.max(SunriseSunsetRecord.created_at).label('last_used')
    statement = (
        select(Location.display_name, last_used)
        .join(SunriseSunsetRecord, SunriseSunsetRecord.location_id == Location.id)  # type: ignore[arg-type]
        .group_by(Location.id, Location.display_name)  # type: ignore[arg-type]
        .order_by(last_used.desc())
        .limit(limit)
    )
    return [name for name, _ in session.exec(statement).all()]
