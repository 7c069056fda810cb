"""Exception → HTTP response mapping.

Every error body has the same shape: ``{"detail": "<human readable message>"}``.
Domain exceptions are looked up by class (Starlette walks the MRO, so
``AlbumIdentifierNotRecognized`` is answered by the ``EntityNotFoundException``
entry).
"""

import logging
from collections.abc import Sequence
from typing import Any, NamedTuple

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from simlr.domain.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BusinessRuleViolation,
    ConfigurationError,
    DomainException,
    DuplicateEntityException,
    EntityNotFoundException,
    ExternalServiceError,
    ValidationException,
)

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


class ErrorMapping(NamedTuple):
    status_code: int
    log_level: int
    # False: the client gets INTERNAL_ERROR_MESSAGE, the log keeps the real one
    expose_message: bool = True


DOMAIN_ERRORS: dict[type[DomainException], ErrorMapping] = {
    ValidationException: ErrorMapping(status.HTTP_400_BAD_REQUEST, logging.WARNING),
    BusinessRuleViolation: ErrorMapping(status.HTTP_400_BAD_REQUEST, logging.WARNING),
    AuthenticationError: ErrorMapping(status.HTTP_401_UNAUTHORIZED, logging.INFO),
    AuthorizationError: ErrorMapping(status.HTTP_403_FORBIDDEN, logging.WARNING),
    EntityNotFoundException: ErrorMapping(status.HTTP_404_NOT_FOUND, logging.INFO),
    DuplicateEntityException: ErrorMapping(status.HTTP_409_CONFLICT, logging.WARNING),
    # Upstream failures name the provider; clients show that to the user
    ExternalServiceError: ErrorMapping(status.HTTP_500_INTERNAL_SERVER_ERROR, logging.ERROR),
    ConfigurationError: ErrorMapping(
        status.HTTP_500_INTERNAL_SERVER_ERROR, logging.ERROR, expose_message=False
    ),
}


def _format_validation_errors(errors: Sequence[Any]) -> str:
    """One "field: problem" line per pydantic error, joined with "; ".

    The raw error dicts are never echoed; their "input" may hold undecodable
    request bytes.
    """
    parts = []
    for error in errors:
        loc = [str(p) for p in error.get("loc", ()) if p not in ("body", "query", "path")]
        msg = error.get("msg", "Invalid value")
        parts.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid request"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": message})


def _mapping_for(exc: DomainException) -> ErrorMapping:
    for cls in type(exc).__mro__:
        mapping = DOMAIN_ERRORS.get(cls)
        if mapping is not None:
            return mapping
    return ErrorMapping(status.HTTP_500_INTERNAL_SERVER_ERROR, logging.ERROR, False)


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    mapping = _mapping_for(exc)
    logger.log(
        mapping.log_level,
        "%s at %s %s: %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc.message,
        extra={"path": request.url.path, "status_code": mapping.status_code},
    )
    message = exc.message if mapping.expose_message else INTERNAL_ERROR_MESSAGE
    return _error(mapping.status_code, message)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed JSON and schema violations → 400."""
    message = _format_validation_errors(exc.errors())
    logger.warning("Invalid request at %s: %s", request.url.path, message)
    return _error(status.HTTP_400_BAD_REQUEST, message)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Unknown routes, wrong methods and explicit HTTPExceptions keep their status."""
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(level, "HTTP %d at %s: %s", exc.status_code, request.url.path, exc.detail)
    return _error(exc.status_code, str(exc.detail))


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # The session scope has already rolled the transaction back
    logger.error("Database error at %s: %s", request.url.path, str(exc)[:500])
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception at %s", request.url.path)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)


# Hey future me - register during app construction, before the first request.
# 5xx answers never carry internals except ExternalServiceError's provider message.
def register_exception_handlers(app: FastAPI) -> None:
    for exc_class in DOMAIN_ERRORS:
        app.add_exception_handler(exc_class, domain_exception_handler)
    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
