"""
Domain exceptions and global exception handlers.

Policy rejections at scan time (invalid / inactive / duplicate) are normal
return values, not exceptions. Only configuration mistakes, roster conflicts
and infrastructure failures are raised.

The handlers prevent stack-trace and store-error leakage to clients.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class HeadcountError(Exception):
    """Base class for all domain errors."""


class ConfigurationError(HeadcountError):
    """Missing or weak code secret, unknown time zone. Fatal at startup."""


class ConflictError(HeadcountError):
    """A uniqueness rule was violated (code collision, duplicate employee)."""


class EmployeeNotFoundError(HeadcountError):
    """A roster operation referenced an employee that does not exist."""


class TransientError(HeadcountError):
    """The backing store is unavailable; the caller may retry."""


# ── Handlers ────────────────────────────────────────────────────────
async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
        headers=getattr(exc, "headers", None),
    )


async def _conflict_handler(_request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "success": False},
    )


async def _not_found_handler(_request: Request, exc: EmployeeNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"detail": str(exc), "success": False},
    )


async def _transient_handler(_request: Request, exc: TransientError) -> JSONResponse:
    logger.warning("Transient storage failure: %s", exc)
    return JSONResponse(
        status_code=503,
        content={
            "detail": "Storage temporarily unavailable, please try again",
            "success": False,
            "retryable": True,
        },
        headers={"Retry-After": "1"},
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": "Database constraint violation", "success": False},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal database error", "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ConflictError, _conflict_handler)  # type: ignore[arg-type]
    app.add_exception_handler(EmployeeNotFoundError, _not_found_handler)  # type: ignore[arg-type]
    app.add_exception_handler(TransientError, _transient_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
