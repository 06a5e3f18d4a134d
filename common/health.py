"""Shared health check router for FastAPI applications."""

import collections.abc
import datetime
import logging

import fastapi
import sqlalchemy
import sqlalchemy.exc
import sqlmodel

import common.settings

logger = logging.getLogger(__name__)


def check_database(session: sqlmodel.Session) -> dict[str, str]:
    """Run a trivial query and report whether storage is reachable."""
    try:
        session.exec(sqlalchemy.text('SELECT 1'))  # type: ignore[call-overload]
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.warning('Health check database query failed: %s', e)
        return {'status': 'error', 'message': str(e)}
    return {'status': 'connected'}


def make_health_router(
    get_session: collections.abc.Callable[
        [], collections.abc.Generator[sqlmodel.Session, None, None]
    ],
) -> fastapi.APIRouter:
    """Build a router exposing /health backed by the given session dependency."""
    router = fastapi.APIRouter()

    @router.api_route('/health', methods=['GET', 'HEAD'])
    def health(
        session: sqlmodel.Session = fastapi.Depends(get_session),
    ) -> dict[str, object]:
        """Health check endpoint reporting storage connectivity."""
        return {
            'status': 'healthy',
            'version': common.settings.APP_VERSION,
            'timestamp': datetime.datetime.now(datetime.UTC).isoformat(),
            'database_status': check_database(session),
        }

    return router
