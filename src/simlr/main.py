"""Simlr API - FastAPI application entry point.

``create_app()`` builds a fresh application; the module-level ``app`` is what
uvicorn serves. Tests call ``create_app(settings)`` with their own settings.
"""

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from simlr.api import api_router, register_exception_handlers
from simlr.config import Settings, get_settings
from simlr.infrastructure.lifecycle import lifespan
from simlr.infrastructure.observability import RequestLoggingMiddleware

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Simlr",
        description="Album ratings, similarity recommendations and discussions",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()


def run() -> None:
    """Console entry point: serve ``simlr.main:app`` with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "simlr.main:app",
        host="0.0.0.0",  # nosec B104 - container entry point
        port=8000,
        log_level=settings.log_level.lower(),
    )
