"""Health check endpoint for Docker/Kubernetes probes."""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthStatus(BaseModel):
    """Overall health status response."""

    status: str = Field(description="healthy or unhealthy")
    database: str = Field(description="ok or unavailable")


@router.get("", response_model=HealthStatus)
async def health_check(request: Request) -> JSONResponse:
    """Returns 200 when the database answers a trivial query, 503 otherwise."""
    db = getattr(request.app.state, "db", None)
    database_ok = False
    if db is not None:
        try:
            database_ok = await db.ping()
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Health check: database unavailable: %s", e)

    body = HealthStatus(
        status="healthy" if database_ok else "unhealthy",
        database="ok" if database_ok else "unavailable",
    )
    code = status.HTTP_200_OK if database_ok else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=body.model_dump(), status_code=code)
