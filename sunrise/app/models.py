"""Database models for geocoded locations and their daily sun times."""

import datetime

import sqlalchemy
import sqlmodel

# Absolute latitude beyond which the sun may stay up or down all day.
POLAR_LATITUDE = 66.5

SECONDS_PER_DAY = 86400

# Fixed calendar months, not solstice-relative.
NORTHERN_SUMMER_MONTHS = frozenset({5, 6, 7, 8})
NORTHERN_WINTER_MONTHS = frozenset({11, 12, 1, 2})


def is_polar_latitude(latitude: float) -> bool:
    """True if the latitude lies inside the Arctic or Antarctic circle."""
    return abs(latitude) >= POLAR_LATITUDE


def is_polar_summer(latitude: float, day: datetime.date) -> bool:
    """True if the day falls in the hemisphere's midnight-sun months."""
    if not is_polar_latitude(latitude):
        return False
    if latitude > 0:
        return day.month in NORTHERN_SUMMER_MONTHS
    return day.month in NORTHERN_WINTER_MONTHS


def is_polar_winter(latitude: float, day: datetime.date) -> bool:
    """True if the day falls in the hemisphere's polar-night months."""
    if not is_polar_latitude(latitude):
        return False
    if latitude > 0:
        return day.month in NORTHERN_WINTER_MONTHS
    return day.month in NORTHERN_SUMMER_MONTHS


def format_day_length(seconds: int | None) -> str | None:
    """Render a day length in seconds as e.g. '14h 15m'."""
    if seconds is None:
        return None
    return f'{seconds // 3600}h {(seconds % 3600) // 60}m'


class Location(sqlmodel.SQLModel, table=True):
    """A geocoded place, identified by its normalized search term."""

    __tablename__ = 'locations'  # type: ignore[misc]
    __table_args__ = (
        sqlalchemy.UniqueConstraint(
            'latitude', 'longitude', name='uq_locations_coordinates'
        ),
    )

    id: int | None = sqlmodel.Field(default=None, primary_key=True)
    search_name: str = sqlmodel.Field(max_length=200, unique=True, index=True)
    name: str = sqlmodel.Field(max_length=200, index=True)
    display_name: str = sqlmodel.Field(max_length=500)
    country: str | None = sqlmodel.Field(default=None, max_length=200)
    region: str | None = sqlmodel.Field(default=None, max_length=200)
    latitude: float = sqlmodel.Field(ge=-90, le=90)
    longitude: float = sqlmodel.Field(ge=-180, le=180)
    raw_geocoding_data: str | None = sqlmodel.Field(default=None)
    created_at: datetime.datetime = sqlmodel.Field(
        default_factory=lambda: datetime.datetime.now(datetime.UTC)
    )

    records: list['SunriseSunsetRecord'] = sqlmodel.Relationship(
        back_populates='location',
        sa_relationship_kwargs={'cascade': 'all, delete-orphan'},
    )

    @property
    def polar_region(self) -> bool:
        """True if this location can experience polar day or night."""
        return is_polar_latitude(self.latitude)


class SunriseSunsetRecord(sqlmodel.SQLModel, table=True):
    """Sun times for one location on one calendar date."""

    __tablename__ = 'sunrise_sunset_data'  # type: ignore[misc]
    __table_args__ = (
        sqlalchemy.UniqueConstraint(
            'location_id', 'date', name='uq_sunrise_sunset_location_date'
        ),
        sqlalchemy.CheckConstraint(
            'day_length_seconds IS NULL OR '
            f'(day_length_seconds >= 0 AND day_length_seconds <= {SECONDS_PER_DAY})',
            name='ck_sunrise_sunset_day_length',
        ),
    )

    id: int | None = sqlmodel.Field(default=None, primary_key=True)
    location_id: int = sqlmodel.Field(
        foreign_key='locations.id', ondelete='CASCADE', index=True
    )
    date: datetime.date = sqlmodel.Field(index=True)
    sunrise: datetime.time | None = None
    sunset: datetime.time | None = None
    solar_noon: datetime.time | None = None
    golden_hour: datetime.time | None = None
    day_length_seconds: int | None = None
    timezone: str | None = sqlmodel.Field(default=None, max_length=100)
    utc_offset: int | None = None
    raw_api_data: str | None = sqlmodel.Field(default=None)
    created_at: datetime.datetime = sqlmodel.Field(
        default_factory=lambda: datetime.datetime.now(datetime.UTC)
    )

    location: Location = sqlmodel.Relationship(back_populates='records')

    @property
    def day_length_formatted(self) -> str | None:
        """Day length rendered as hours and minutes."""
        return format_day_length(self.day_length_seconds)

    def _sun_never_crosses_horizon(self) -> bool:
        return (
            self.sunrise is None
            and self.sunset is None
            and self.day_length_seconds is not None
        )

    @property
    def polar_day(self) -> bool:
        """True if the data looks like midnight sun during polar summer."""
        if not self._sun_never_crosses_horizon():
            return False
        assert self.day_length_seconds is not None
        return self.day_length_seconds >= SECONDS_PER_DAY and is_polar_summer(
            self.location.latitude, self.date
        )

    @property
    def polar_night(self) -> bool:
        """True if the data looks like polar night during polar winter."""
        if not self._sun_never_crosses_horizon():
            return False
        assert self.day_length_seconds is not None
        return self.day_length_seconds <= 0 and is_polar_winter(
            self.location.latitude, self.date
        )
