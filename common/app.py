"""Core FastAPI application utilities shared across all services."""

from typing import Any

import fastapi
import fastapi.middleware.cors

import common.log
import common.settings


def create_app(title: str, **kwargs: Any) -> fastapi.FastAPI:
    """Create a FastAPI app with logging and CORS configured.

    Additional keyword arguments are forwarded to FastAPI.__init__ (e.g. lifespan).
    """
    app = fastapi.FastAPI(title=title, version=common.settings.APP_VERSION, **kwargs)
    common.log.configure_logging()
    app.add_middleware(
        fastapi.middleware.cors.CORSMiddleware,
        allow_origins=common.settings.CORS_ORIGINS,
        allow_methods=['GET', 'HEAD', 'OPTIONS'],
        allow_headers=['*'],
    )
    return app
