"""Per-client request throttling for the /api endpoints."""

import datetime
import logging

import fastapi
import fastapi.responses
import slowapi
import slowapi.errors

import common.settings

logger = logging.getLogger(__name__)


def real_ip(request: fastapi.Request) -> str:
    """Client IP, preferring the first X-Forwarded-For hop over the socket peer."""
    forwarded = request.headers.get('x-forwarded-for')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.client.host if request.client else 'unknown'


def api_rate_limit() -> str:
    return f'{common.settings.RATE_LIMIT_REQUESTS_PER_HOUR}/hour'


limiter = slowapi.Limiter(key_func=real_ip)

# One budget per client shared by every endpoint under /api.
api_limit = limiter.shared_limit(api_rate_limit, scope='api')


def rate_limit_exceeded(
    request: fastapi.Request, exc: Exception
) -> fastapi.responses.JSONResponse:
    """Render a throttled request as a 429 error body."""
    logger.warning('Rate limit exceeded for %s on %s', real_ip(request), request.url.path)
    return fastapi.responses.JSONResponse(
        status_code=429,
        content={
            'status': 'error',
            'error': 'rate_limited',
            'message': 'Rate limit exceeded',
            'timestamp': datetime.datetime.now(datetime.UTC).isoformat(),
        },
    )


def install(app: fastapi.FastAPI) -> None:
    """Attach the limiter and its 429 handler to an app."""
    app.state.limiter = limiter
    app.add_exception_handler(slowapi.errors.RateLimitExceeded, rate_limit_exceeded)
