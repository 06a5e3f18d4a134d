"""Forward geocoding of free-text place names via Nominatim."""

import logging
import threading

import cachetools
import pydantic
from geopy import exc as geopy_exc  # pyright: ignore[reportMissingTypeStubs]
from geopy import geocoders  # pyright: ignore[reportMissingTypeStubs]

import common.settings

logger = logging.getLogger(__name__)

CACHE_MAXSIZE = 2048


class GeocodingError(Exception):
    """The geocoder could not be reached, timed out, or failed."""


class LocationNotFoundError(Exception):
    """The geocoder returned no match for the search text."""


class GeocodeResult(pydantic.BaseModel):
    """A single geocoder match."""

    latitude: float
    longitude: float
    name: str
    country: str | None = None
    region: str | None = None


def _result_from_raw(
    raw: dict[str, object], latitude: float, longitude: float
) -> GeocodeResult:
    address: dict[str, str] = raw.get('address', {})  # type: ignore[assignment]
    display_name = str(raw.get('display_name') or '')
    name = (
        raw.get('name')
        or address.get('city')
        or address.get('town')
        or address.get('village')
        or address.get('county')
        or display_name.split(',')[0].strip()
    )
    return GeocodeResult(
        latitude=latitude,
        longitude=longitude,
        name=str(name),
        country=address.get('country'),
        region=address.get('state'),
    )


class Geocoder:
    """Geocodes place names, caching answers for GEOCODING_CACHE_EXPIRES_IN seconds.

    Cache failures fail open: the lookup falls through to a live call.
    """

    def __init__(
        self,
        geolocator: geocoders.Nominatim | None = None,
        ttl: int | None = None,
        timeout: float | None = None,
    ) -> None:
        self.geolocator = geolocator or geocoders.Nominatim(
            user_agent=common.settings.GEOCODER_USER_AGENT
        )
        self.timeout = (
            timeout if timeout is not None else common.settings.GEOCODING_TIMEOUT
        )
        self.cache: cachetools.TTLCache[str, GeocodeResult] = cachetools.TTLCache(
            maxsize=CACHE_MAXSIZE,
            ttl=ttl if ttl is not None else common.settings.GEOCODING_CACHE_EXPIRES_IN,
        )
        self._lock = threading.Lock()

    @staticmethod
    def cache_key(text: str) -> str:
        return f'geocoding:{text.strip().casefold()}'

    def _cache_get(self, key: str) -> GeocodeResult | None:
        try:
            with self._lock:
                return self.cache.get(key)
        except Exception as e:
            logger.warning('Geocoding cache read failed, calling live: %s', e)
            return None

    def _cache_set(self, key: str, result: GeocodeResult) -> None:
        try:
            with self._lock:
                self.cache[key] = result
        except Exception as e:
            logger.warning('Geocoding cache write failed: %s', e)

    def geocode(self, text: str) -> GeocodeResult:
        """Resolve text to coordinates and place details.

        Raises:
            LocationNotFoundError: The geocoder found no match.
            GeocodingError: The geocoder call errored or timed out.
        """
        key = self.cache_key(text)
        cached = self._cache_get(key)
        if cached is not None:
            return cached

        result = self._fetch(text)
        self._cache_set(key, result)
        return result

    def _fetch(self, text: str) -> GeocodeResult:
        try:
            location = self.geolocator.geocode(  # type: ignore[union-attr]
                text,
                exactly_one=True,
                addressdetails=True,
                language='en',
                timeout=self.timeout,
            )
        except geopy_exc.GeopyError as e:
            logger.error('Geocoding service error: %s', e)
            raise GeocodingError(f'Failed to geocode location: {e}') from e

        if not location:
            raise LocationNotFoundError(f"Location '{text}' not found")

        raw: dict[str, object] = location.raw  # type: ignore[union-attr]
        return _result_from_raw(
            raw,
            float(location.latitude),  # type: ignore[union-attr]
            float(location.longitude),  # type: ignore[union-attr]
        )
