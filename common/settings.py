"""Shared application settings read from environment variables."""

import os
import pathlib

DATA_DIR: str = os.environ.get('DATA_DIR', '/data')
DATABASE_URL: str = os.environ.get(
    'DATABASE_URL', f'sqlite:///{pathlib.Path(DATA_DIR) / "sunrise_sunset.db"}'
)

APP_VERSION: str = os.environ.get('APP_VERSION', '1.0.0')

# Upstream providers
SUNRISE_SUNSET_API_URL: str = os.environ.get(
    'SUNRISE_SUNSET_API_URL', 'https://api.sunrisesunset.io'
)
API_TIMEOUT: float = float(os.environ.get('API_TIMEOUT', '15'))
GEOCODING_TIMEOUT: float = float(os.environ.get('GEOCODING_TIMEOUT', '10'))
GEOCODER_USER_AGENT: str = os.environ.get(
    'GEOCODER_USER_AGENT', 'SunriseSunsetApp/1.0'
)
GEOCODING_CACHE_EXPIRES_IN: int = int(
    os.environ.get('GEOCODING_CACHE_EXPIRES_IN', '604800')
)

# Request limits
MAX_DATE_RANGE_DAYS: int = int(os.environ.get('MAX_DATE_RANGE_DAYS', '365'))
RATE_LIMIT_REQUESTS_PER_HOUR: int = int(
    os.environ.get('RATE_LIMIT_REQUESTS_PER_HOUR', '100')
)

# Response caching
LOCATIONS_CACHE_EXPIRES_IN: int = int(
    os.environ.get('LOCATIONS_CACHE_EXPIRES_IN', '3600')
)
CACHED_RECORD_AGE_SECONDS: int = int(os.environ.get('CACHED_RECORD_AGE_SECONDS', '60'))

CORS_ORIGINS: list[str] = [
    origin.strip()
    for origin in os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:5173,http://127.0.0.1:5173,'
        'http://localhost:3001,http://127.0.0.1:3001,'
        'http://localhost:3000,http://127.0.0.1:3000',
    ).split(',')
    if origin.strip()
]

LOG_FORMAT: str = os.environ.get('LOG_FORMAT', 'text')
LOG_LEVEL: str = os.environ.get('LOG_LEVEL', 'INFO')
