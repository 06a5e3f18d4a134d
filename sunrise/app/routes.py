"""JSON API for sunrise/sunset lookups and recently searched locations."""

import datetime
import functools
import logging
import threading

import cachetools
import fastapi
import fastapi.responses
import sqlalchemy.exc
from sqlmodel import Session

import common.settings

from . import database, ratelimit, records
from .geocoding import Geocoder
from .models import SunriseSunsetRecord
from .provider import SunriseSunsetClient
from .services import SunriseSunsetService, parse_iso_date

logger = logging.getLogger(__name__)

router = fastapi.APIRouter(prefix='/api/v1')

REQUIRED_PARAMS = ('location', 'start_date', 'end_date')
TIME_FORMAT = '%H:%M:%S'

locations_cache = cachetools.TTLCache(
    maxsize=8, ttl=common.settings.LOCATIONS_CACHE_EXPIRES_IN
)
_locations_cache_lock = threading.Lock()


def utcnow() -> datetime.datetime:
    """Current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.UTC)


def as_utc(value: datetime.datetime) -> datetime.datetime:
    """Attach UTC to naive timestamps read back from SQLite."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.UTC)
    return value


def error_response(
    error: str, message: str, status_code: int
) -> fastapi.responses.JSONResponse:
    """The error body shared by every API failure."""
    return fastapi.responses.JSONResponse(
        status_code=status_code,
        content={
            'status': 'error',
            'error': error,
            'message': message,
            'timestamp': utcnow().isoformat(),
        },
    )


@functools.cache
def get_geocoder() -> Geocoder:
    """Process-wide geocoder so its result cache is shared across requests."""
    return Geocoder()


def get_client() -> SunriseSunsetClient:
    """Provider client configured from settings."""
    return SunriseSunsetClient()


def get_service(
    session: Session = fastapi.Depends(database.get_session),
    geocoder: Geocoder = fastapi.Depends(get_geocoder),
    client: SunriseSunsetClient = fastapi.Depends(get_client),
) -> SunriseSunsetService:
    return SunriseSunsetService(session, geocoder, client)


def _format_time(value: datetime.time | None) -> str | None:
    return value.strftime(TIME_FORMAT) if value is not None else None


def render_record(record: SunriseSunsetRecord) -> dict[str, object]:
    """Serialize a stored record for the API, leaving out the raw payload."""
    location = record.location
    return {
        'id': record.id,
        'location': location.display_name,
        'latitude': location.latitude,
        'longitude': location.longitude,
        'date': record.date.isoformat(),
        'sunrise': _format_time(record.sunrise),
        'sunset': _format_time(record.sunset),
        'solar_noon': _format_time(record.solar_noon),
        'day_length_seconds': record.day_length_seconds,
        'day_length_formatted': record.day_length_formatted,
        'golden_hour': _format_time(record.golden_hour),
        'timezone': record.timezone,
        'utc_offset': record.utc_offset,
        'polar_day': record.polar_day,
        'polar_night': record.polar_night,
        'created_at': as_utc(record.created_at).isoformat(),
    }


def count_cached(
    data: list[SunriseSunsetRecord], now: datetime.datetime | None = None
) -> int:
    """Number of records stored before this request rather than fetched by it."""
    cutoff = (now or utcnow()) - datetime.timedelta(
        seconds=common.settings.CACHED_RECORD_AGE_SECONDS
    )
    return sum(1 for record in data if as_utc(record.created_at) < cutoff)


def _log_request(request: fastapi.Request) -> None:
    logger.info(
        '%s %s - Params: %s',
        request.method,
        request.url.path,
        dict(request.query_params),
    )


@router.get('/sunrise_sunset')
@ratelimit.api_limit
def sunrise_sunset(
    request: fastapi.Request,
    location: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    service: SunriseSunsetService = fastapi.Depends(get_service),
) -> fastapi.responses.Response:
    """Sun times for every day in the range, fetching only missing days upstream."""
    _log_request(request)
    params = {'location': location, 'start_date': start_date, 'end_date': end_date}
    missing = [name for name in REQUIRED_PARAMS if not (params[name] or '').strip()]
    if missing:
        return error_response(
            'missing_parameters',
            f'Missing required parameters: {", ".join(missing)}',
            400,
        )

    try:
        parse_iso_date(str(start_date).strip())
        parse_iso_date(str(end_date).strip())
    except ValueError:
        return error_response(
            'invalid_date_format', 'Dates must be in YYYY-MM-DD format', 400
        )

    data = service.fetch_data(location, start_date, end_date)
    return fastapi.responses.JSONResponse(
        {
            'status': 'success',
            'data': [render_record(record) for record in data],
            'meta': {
                'location': location,
                'start_date': start_date,
                'end_date': end_date,
                'total_days': len(data),
                'cached_records': count_cached(data),
                'generated_at': utcnow().isoformat(),
            },
        }
    )


def _cache_key() -> str:
    return f'recent_locations:{datetime.date.today().isoformat()}'


def _query_recent_locations(session: Session) -> list[str] | None:
    try:
        return records.recent_location_names(session)
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.error('Database error in locations: %s', e, exc_info=True)
        return None


def recent_locations(session: Session) -> list[str]:
    """Recently searched display names, cached for the configured TTL.

    Cache failures fall through to the database. Database failures yield an
    empty list, which is not cached.
    """
    key = _cache_key()
    try:
        with _locations_cache_lock:
            cached = locations_cache.get(key)
    except Exception as e:
        logger.warning('Cache error, falling back to database: %s', e)
        return _query_recent_locations(session) or []
    if cached is not None:
        return cached

    names = _query_recent_locations(session)
    if names is None:
        return []
    try:
        with _locations_cache_lock:
            locations_cache[key] = names
    except Exception as e:
        logger.warning('Failed to cache recent locations: %s', e)
    return names


@router.get('/sunrise_sunset/locations')
@ratelimit.api_limit
def locations(
    request: fastapi.Request,
    session: Session = fastapi.Depends(database.get_session),
) -> dict[str, object]:
    """Display names of the most recently searched locations."""
    _log_request(request)
    names = recent_locations(session)
    return {
        'status': 'success',
        'locations': names,
        'total_count': len(names),
        'cached_at': utcnow().isoformat(),
        'cache_expires_in': common.settings.LOCATIONS_CACHE_EXPIRES_IN,
    }
