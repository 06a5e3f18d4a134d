"""Client for the sunrisesunset.io astronomical data API.

The provider answers a single-day request with one ``results`` object and a
multi-day request with an array of per-day objects. Both shapes are
classified once into :class:`SingleDay` or :class:`MultiDay` and expanded
into :class:`DayResult` rows keyed by calendar date.
"""

import datetime
import json
import logging
import re
from typing import Any

import httpx
import pydantic

import common.settings

from .gaps import ONE_DAY

logger = logging.getLogger(__name__)

GOLDEN_HOUR_BEFORE_SUNSET = datetime.timedelta(hours=1)

_TWELVE_HOUR_RE = re.compile(r'^\d{1,2}:\d{2}:\d{2}\s?(AM|PM)$', re.IGNORECASE)
_TWENTY_FOUR_HOUR_RE = re.compile(r'^\d{1,2}:\d{2}:\d{2}$')
_ISO_DATETIME_RE = re.compile(r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}')


class UpstreamError(Exception):
    """The provider could not be reached or answered with a failure status."""


class DayResult(pydantic.BaseModel):
    """Normalized sun times for one date, ready to be stored."""

    date: datetime.date
    sunrise: datetime.time | None = None
    sunset: datetime.time | None = None
    solar_noon: datetime.time | None = None
    golden_hour: datetime.time | None = None
    day_length_seconds: int | None = None
    timezone: str | None = None
    utc_offset: int | None = None
    raw: dict[str, Any] = pydantic.Field(default_factory=dict)

    def record_fields(self) -> dict[str, Any]:
        """Column values for a stored record, excluding the date key."""
        fields = self.model_dump(exclude={'date', 'raw'})
        fields['raw_api_data'] = json.dumps({'daily_result': self.raw})
        return fields


class SingleDay(pydantic.BaseModel):
    """Provider answered with one result object."""

    result: dict[str, Any]


class MultiDay(pydantic.BaseModel):
    """Provider answered with one entry per requested day, in date order.

    Entries are kept as received so a malformed element still occupies its
    day slot.
    """

    results: list[Any]


ProviderPayload = SingleDay | MultiDay


def classify_results(results: object) -> ProviderPayload | None:
    """Resolve the polymorphic ``results`` field into a tagged variant."""
    if isinstance(results, list):
        return MultiDay(results=results)
    if isinstance(results, dict):
        return SingleDay(result=results)
    return None


def expand_payload(
    payload: ProviderPayload, start_date: datetime.date
) -> list[tuple[datetime.date, dict[str, Any]]]:
    """Pair each per-day object with its date, element i being start_date + i."""
    if isinstance(payload, SingleDay):
        return [(start_date, payload.result)]
    expanded: list[tuple[datetime.date, dict[str, Any]]] = []
    for index, daily in enumerate(payload.results):
        day = start_date + index * ONE_DAY
        if not isinstance(daily, dict):
            logger.warning('Skipping malformed result for %s: %r', day, daily)
            continue
        expanded.append((day, daily))
    return expanded


def parse_time(value: object) -> datetime.time | None:
    """Parse a provider time string into a time of day.

    Accepts 12-hour clock times ('5:30:12 AM'), 24-hour clock times
    ('17:45:00') and ISO 8601 date-times ('2024-08-01T05:30:00+00:00').
    Blank input gives None; unparseable input is logged and gives None.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None

    try:
        if _TWELVE_HOUR_RE.match(text):
            compact = re.sub(r'\s+', '', text).upper()
            return datetime.datetime.strptime(compact, '%I:%M:%S%p').time()
        if _TWENTY_FOUR_HOUR_RE.match(text):
            return datetime.datetime.strptime(text, '%H:%M:%S').time()
        if _ISO_DATETIME_RE.match(text):
            parsed = datetime.datetime.fromisoformat(text.replace('Z', '+00:00'))
            return parsed.time()
    except ValueError as e:
        logger.warning("Failed to parse time '%s': %s", text, e)
        return None

    logger.warning("Failed to parse time '%s': unrecognized format", text)
    return None


def parse_duration(value: object) -> int | None:
    """Convert an 'HH:MM:SS' day length into total seconds.

    Returns None for blank input, a wrong number of segments, non-numeric
    segments, or a total outside a single day.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None

    parts = text.split(':')
    if len(parts) != 3:
        return None
    try:
        hours, minutes, seconds = (int(part) for part in parts)
    except ValueError:
        return None

    total = hours * 3600 + minutes * 60 + seconds
    if not 0 <= total <= 86400:
        logger.warning("Day length '%s' is outside a single day", text)
        return None
    return total


def golden_hour_before(sunset: datetime.time | None) -> datetime.time | None:
    """The golden hour instant, one hour before sunset."""
    if sunset is None:
        return None
    anchor = datetime.datetime.combine(datetime.date(2000, 1, 2), sunset)
    return (anchor - GOLDEN_HOUR_BEFORE_SUNSET).time()


def _parse_utc_offset(value: object) -> int | None:
    if value is None or value == '':
        return None
    try:
        return int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric utc_offset '%s'", value)
        return None


def parse_day(day: datetime.date, daily: dict[str, Any]) -> DayResult:
    """Normalize one per-day provider object into a DayResult."""
    sunset = parse_time(daily.get('sunset'))
    golden_hour = parse_time(daily.get('golden_hour')) or golden_hour_before(sunset)
    timezone = daily.get('timezone')
    return DayResult(
        date=day,
        sunrise=parse_time(daily.get('sunrise')),
        sunset=sunset,
        solar_noon=parse_time(daily.get('solar_noon')),
        golden_hour=golden_hour,
        day_length_seconds=parse_duration(daily.get('day_length')),
        timezone=str(timezone) if timezone else None,
        utc_offset=_parse_utc_offset(daily.get('utc_offset')),
        raw=daily,
    )


class SunriseSunsetClient:
    """Fetches sun times for a coordinate over a contiguous date range."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.base_url = (base_url or common.settings.SUNRISE_SUNSET_API_URL).rstrip('/')
        self.timeout = timeout if timeout is not None else common.settings.API_TIMEOUT
        self._http_client = http_client

    def _request_params(
        self,
        latitude: float,
        longitude: float,
        start_date: datetime.date,
        end_date: datetime.date,
    ) -> dict[str, str]:
        params = {'lat': str(latitude), 'lng': str(longitude)}
        if start_date == end_date:
            params['date'] = start_date.isoformat()
        else:
            params['date_start'] = start_date.isoformat()
            params['date_end'] = end_date.isoformat()
        return params

    def _get(self, params: dict[str, str]) -> httpx.Response:
        url = f'{self.base_url}/json'
        if self._http_client is not None:
            return self._http_client.get(url, params=params, timeout=self.timeout)
        with httpx.Client() as client:
            return client.get(url, params=params, timeout=self.timeout)

    def fetch(
        self,
        latitude: float,
        longitude: float,
        start_date: datetime.date,
        end_date: datetime.date,
    ) -> list[DayResult]:
        """Fetch and normalize sun times for every day in the range.

        Args:
            latitude: Location latitude in degrees.
            longitude: Location longitude in degrees.
            start_date: First date of the range.
            end_date: Last date of the range (inclusive).

        Returns:
            Per-day results in ascending date order. Days the provider
            reports an application-level error for are omitted.

        Raises:
            UpstreamError: On network failure, timeout, a non-success HTTP
                status, or a body that is not JSON.
        """
        params = self._request_params(latitude, longitude, start_date, end_date)
        try:
            response = self._get(params)
        except httpx.HTTPError as e:
            logger.error('Sunrise-sunset API request failed: %s', e)
            raise UpstreamError(f'Sunrise-sunset API request failed: {e}') from e

        if not response.is_success:
            raise UpstreamError(f'API returned status {response.status_code}')

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError('API returned a malformed response body') from e

        if not isinstance(data, dict):
            raise UpstreamError('API returned a malformed response body')

        status = data.get('status')
        if status != 'OK':
            self._log_status(status, latitude, longitude, start_date, end_date)
            return []

        payload = classify_results(data.get('results'))
        if payload is None:
            logger.error(
                'Unexpected API response format: %s',
                type(data.get('results')).__name__,
            )
            return []

        days: list[DayResult] = []
        for day, daily in expand_payload(payload, start_date):
            if day > end_date:
                logger.warning('Ignoring result for %s past requested range', day)
                break
            day_status = daily.get('status', 'OK')
            if day_status != 'OK':
                self._log_status(day_status, latitude, longitude, day, day)
                continue
            days.append(parse_day(day, daily))
        return days

    def _log_status(
        self,
        status: object,
        latitude: float,
        longitude: float,
        start_date: datetime.date,
        end_date: datetime.date,
    ) -> None:
        where = f'({latitude}, {longitude})'
        if status == 'INVALID_REQUEST':
            logger.warning(
                'Invalid request for %s from %s to %s', where, start_date, end_date
            )
        elif status == 'INVALID_DATE':
            logger.warning(
                'Invalid date range %s to %s for %s', start_date, end_date, where
            )
        else:
            logger.error(
                'Provider error %s for %s from %s to %s',
                status,
                where,
                start_date,
                end_date,
            )
