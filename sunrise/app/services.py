"""Fetch sun times for a place and date range, filling storage gaps from upstream."""

import datetime
import logging
import re

from sqlmodel import Session

import common.settings

from . import gaps, locations, records
from .errors import ApiError, DateRangeError, InvalidLocationError
from .geocoding import Geocoder, GeocodingError, LocationNotFoundError
from .models import Location, SunriseSunsetRecord
from .provider import SunriseSunsetClient, UpstreamError

logger = logging.getLogger(__name__)

EARLIEST_DATE = datetime.date(1900, 1, 1)

_ISO_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def parse_iso_date(text: str) -> datetime.date:
    """Parse a strict YYYY-MM-DD date.

    Raises:
        ValueError: Any other form, including ISO basic and week dates.
    """
    if not _ISO_DATE_RE.match(text):
        raise ValueError(f'Not a YYYY-MM-DD date: {text!r}')
    return datetime.date.fromisoformat(text)


def parse_date(value: str | datetime.date | None, label: str) -> datetime.date:
    """Parse a YYYY-MM-DD string (or pass through a date) for validation."""
    if isinstance(value, datetime.date):
        return value
    if value is None or not str(value).strip():
        raise DateRangeError(f'{label} cannot be blank')
    try:
        return parse_iso_date(str(value).strip())
    except ValueError:
        raise DateRangeError(f'{label} must be in YYYY-MM-DD format') from None


def one_year_after(day: datetime.date) -> datetime.date:
    """The same calendar day a year later, Feb 29 falling back to Feb 28."""
    try:
        return day.replace(year=day.year + 1)
    except ValueError:
        return day.replace(year=day.year + 1, day=28)


def validate_request(
    location_name: str | None,
    start_date: str | datetime.date | None,
    end_date: str | datetime.date | None,
    today: datetime.date | None = None,
) -> tuple[str, datetime.date, datetime.date]:
    """Check the request without any I/O.

    Returns:
        The trimmed location name and the parsed start and end dates.

    Raises:
        InvalidLocationError: The location is blank.
        DateRangeError: A date is blank or malformed, the range is inverted
            or longer than MAX_DATE_RANGE_DAYS, or it starts before 1900 or
            more than a year from today.
    """
    location = str(location_name or '').strip()
    if not location:
        raise InvalidLocationError('Location cannot be blank')

    start = parse_date(start_date, 'Start date')
    end = parse_date(end_date, 'End date')

    if start > end:
        raise DateRangeError('Start date must be before or equal to end date')

    requested = gaps.day_count(start, end)
    max_days = common.settings.MAX_DATE_RANGE_DAYS
    if requested > max_days:
        raise DateRangeError(
            f'Date range cannot exceed {max_days} days (requested: {requested})'
        )

    if start < EARLIEST_DATE:
        raise DateRangeError('Cannot fetch data for dates before 1900')

    today = today or datetime.date.today()
    if start > one_year_after(today):
        raise DateRangeError('Cannot fetch data for dates more than 1 year in the future')

    return location, start, end


class SunriseSunsetService:
    """Coordinates validation, location lookup, gap filling and storage."""

    def __init__(
        self,
        session: Session,
        geocoder: Geocoder,
        client: SunriseSunsetClient,
    ) -> None:
        self.session = session
        self.geocoder = geocoder
        self.client = client

    def fetch_data(
        self,
        location_name: str | None,
        start_date: str | datetime.date | None,
        end_date: str | datetime.date | None,
    ) -> list[SunriseSunsetRecord]:
        """Return one record per available day in the range, sorted by date.

        Only the dates missing from storage are requested upstream, one
        provider call per contiguous gap.

        Raises:
            InvalidLocationError: Blank location, or the geocoder found nothing.
            DateRangeError: The dates failed validation.
            ApiError: Geocoding failed, or the only missing range could not
                be fetched.
        """
        name, start, end = validate_request(location_name, start_date, end_date)
        location = self._resolve(name)
        return self._fetch_date_range(location, start, end)

    def _resolve(self, location_name: str) -> Location:
        try:
            return locations.resolve_location(
                self.session, location_name, self.geocoder
            )
        except LocationNotFoundError as e:
            raise InvalidLocationError(str(e)) from e
        except GeocodingError as e:
            raise ApiError(f'Geocoding failed: {e}') from e

    def _fetch_date_range(
        self, location: Location, start: datetime.date, end: datetime.date
    ) -> list[SunriseSunsetRecord]:
        existing = records.find_existing(self.session, location, start, end)
        total_days = gaps.day_count(start, end)
        if len(existing) == total_days:
            logger.info(
                'All data found in cache for %s (%d days)',
                location.display_name,
                total_days,
            )
            return sorted(existing, key=lambda record: record.date)

        missing = gaps.missing_ranges(start, end, {record.date for record in existing})
        logger.info(
            'Fetching %d missing dates in %d ranges from API for %s',
            sum(r.days for r in missing),
            len(missing),
            location.display_name,
        )

        for date_range in missing:
            try:
                days = self.client.fetch(
                    location.latitude,
                    location.longitude,
                    date_range.start,
                    date_range.end,
                )
            except UpstreamError as e:
                if len(missing) == 1:
                    raise ApiError(str(e)) from e
                logger.warning(
                    'Skipping %s to %s for %s: %s',
                    date_range.start,
                    date_range.end,
                    location.display_name,
                    e,
                )
                continue

            for day in days:
                records.create_if_absent(
                    self.session, location, day.date, day.record_fields()
                )

        return sorted(
            records.find_existing(self.session, location, start, end),
            key=lambda record: record.date,
        )
