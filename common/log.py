"""Shared logging utilities for FastAPI applications."""

import datetime
import json
import logging

import common.settings

SERVICE_NAME = 'sunrise-sunset-api'


class HealthCheckFilter(logging.Filter):
    """Filter out health check requests from uvicorn access logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Return False to suppress health check log entries."""
        return '/health' not in record.getMessage()


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON line for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        """Serialize the record with timestamp, level, message and service."""
        payload: dict[str, object] = {
            'timestamp': datetime.datetime.fromtimestamp(
                record.created, datetime.UTC
            ).isoformat(),
            'level': record.levelname,
            'message': record.getMessage(),
            'service': SERVICE_NAME,
            'logger': record.name,
        }
        if record.exc_info:
            payload['exception'] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging() -> None:
    """Configure application logging.

    Suppresses health check entries in the uvicorn access log, applies
    LOG_LEVEL to the root logger and switches to JSON lines when
    LOG_FORMAT is 'json'.
    """
    logging.getLogger('uvicorn.access').addFilter(HealthCheckFilter())

    root = logging.getLogger()
    root.setLevel(common.settings.LOG_LEVEL.upper())
    if not root.handlers:
        root.addHandler(logging.StreamHandler())
    if common.settings.LOG_FORMAT == 'json':
        for handler in root.handlers:
            handler.setFormatter(JsonFormatter())
