"""Resolve free-text search terms to stored locations, geocoding only when new."""

import datetime
import logging

from sqlmodel import Session, select

from . import database
from .geocoding import GeocodeResult, Geocoder
from .models import Location

logger = logging.getLogger(__name__)


def normalize_search_term(term: str) -> str:
    """Trim and case-fold a search term into its lookup key."""
    return str(term).strip().casefold()


def build_display_name(result: GeocodeResult) -> str:
    """Join the non-empty name, region and country with ', '."""
    parts = [result.name, result.region, result.country]
    return ', '.join(part for part in parts if part)


def get_by_search_name(session: Session, search_name: str) -> Location | None:
    """Return the location stored under a normalized search key, or None."""
    return session.exec(
        select(Location).where(Location.search_name == search_name)
    ).first()


def get_by_coordinates(
    session: Session, latitude: float, longitude: float
) -> Location | None:
    """Return the location at exactly these coordinates, or None."""
    return session.exec(
        select(Location)
        .where(Location.latitude == latitude)
        .where(Location.longitude == longitude)
    ).first()


def resolve_location(session: Session, search_term: str, geocoder: Geocoder) -> Location:
    """Map a search term to a Location, creating it on first sight.

    A known search key is answered from storage without a network call.
    Otherwise the geocoder is called once; a location already stored at
    the returned coordinates is reused, else a new one is created.

    Raises:
        LocationNotFoundError: The geocoder found no match.
        GeocodingError: The geocoder call failed.
    """
    search_name = normalize_search_term(search_term)
    existing = get_by_search_name(session, search_name)
    if existing is not None:
        return existing

    result = geocoder.geocode(search_term)

    at_coordinates = get_by_coordinates(session, result.latitude, result.longitude)
    if at_coordinates is not None:
        logger.info(
            "Reusing location '%s' for search term '%s'",
            at_coordinates.display_name,
            search_name,
        )
        return at_coordinates

    created = database.insert_if_absent(
        session,
        Location,
        {
            'search_name': search_name,
            'name': result.name,
            'display_name': build_display_name(result),
            'country': result.country,
            'region': result.region,
            'latitude': result.latitude,
            'longitude': result.longitude,
            'raw_geocoding_data': result.model_dump_json(),
            'created_at': datetime.datetime.now(datetime.UTC),
        },
    )
    if created:
        logger.info("Created location '%s'", build_display_name(result))

    location = get_by_search_name(session, search_name) or get_by_coordinates(
        session, result.latitude, result.longitude
    )
    assert location is not None
    return location
