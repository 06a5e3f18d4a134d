"""User-facing error types raised by the sunrise/sunset service."""


class SunriseSunsetError(Exception):
    """Base class for errors that map to a distinct API error code."""

    error_code: str = 'internal_error'
    status_code: int = 500


class InvalidLocationError(SunriseSunsetError):
    """The location was blank or the geocoder found no match."""

    error_code = 'invalid_location'
    status_code = 422


class DateRangeError(SunriseSunsetError):
    """The requested dates failed validation."""

    error_code = 'invalid_date_range'
    status_code = 422


class ApiError(SunriseSunsetError):
    """An upstream geocoder or provider call failed; retry later."""

    error_code = 'api_error'
    status_code = 503
