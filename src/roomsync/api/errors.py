"""Mapping from domain errors to HTTP responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from roomsync.domain.errors import (
    Conflict,
    DomainError,
    InternalError,
    NotFound,
    Unauthorized,
    ValidationError,
    VersionConflict,
)
from roomsync.observability.logging import get_logger
from roomsync.observability.redaction import safe_log_context

logger = get_logger(__name__)

# Checked in order; subclasses of Conflict fall through to 409.
STATUS_BY_ERROR: tuple[tuple[type[DomainError], int], ...] = (
    (ValidationError, 400),
    (Unauthorized, 403),
    (NotFound, 404),
    (Conflict, 409),
    (VersionConflict, 409),
    (InternalError, 500),
)


def status_for(exc: DomainError) -> int:
    for error_cls, status in STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            return status
    return 500


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status = status_for(exc)
    log = logger.error if status >= 500 else logger.info
    log(
        "request failed with domain error",
        extra={
            "extra_fields": safe_log_context(
                path=request.url.path, status=status, code=exc.code,
            )
        },
    )
    if status >= 500:
        # Never leak internals
        return JSONResponse(status_code=status, content={"detail": "internal_error"})
    return JSONResponse(status_code=status, content={"detail": exc.code, "message": str(exc)})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
