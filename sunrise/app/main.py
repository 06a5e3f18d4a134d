"""Sunrise/sunset JSON API service."""

import contextlib
import logging
from collections.abc import AsyncGenerator

import fastapi
import fastapi.responses
import uvicorn

import common.app
import common.health

from . import database, ratelimit, routes
from .errors import SunriseSunsetError

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: fastapi.FastAPI) -> AsyncGenerator[None, None]:
    """Initialize database on startup."""
    database.create_db_and_tables()
    yield


app = common.app.create_app('Sunrise Sunset API', lifespan=lifespan)

ratelimit.install(app)

app.include_router(common.health.make_health_router(database.get_session))
app.include_router(routes.router)


@app.exception_handler(SunriseSunsetError)
async def handle_service_error(
    request: fastapi.Request, exc: SunriseSunsetError
) -> fastapi.responses.JSONResponse:
    """Render a typed service error with its own code and status."""
    logger.info('%s %s failed: %s', request.method, request.url.path, exc)
    return routes.error_response(exc.error_code, str(exc), exc.status_code)


@app.exception_handler(Exception)
async def handle_unexpected_error(
    request: fastapi.Request, exc: Exception
) -> fastapi.responses.JSONResponse:
    logger.error('Internal server error: %s', exc, exc_info=exc)
    return routes.error_response('internal_error', 'An unexpected error occurred', 500)


@app.get('/', response_class=fastapi.responses.PlainTextResponse)
async def index() -> str:
    """Readiness line for load balancers and humans."""
    return 'Sunrise Sunset API - Ready'


if __name__ == '__main__':
    uvicorn.run(app, host='0.0.0.0', port=8000)
