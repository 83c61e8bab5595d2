"""
Global exception handlers — every error leaves as ``{"detail", "success": false}``.

Punch refusals (409 wrong state, 403 outside every site, 503 empty site
registry) are raised as ``HTTPException`` by the endpoints; this module
only shapes them, plus the failures nobody raises on purpose.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


def _error(status_code: int, detail: object, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "success": False},
        headers=headers,
    )


async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.detail)
    return _error(exc.status_code, exc.detail, getattr(exc, "headers", None))


async def _validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(422, jsonable_encoder(exc.errors()))


async def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("Rate limit hit on %s from %s", request.url.path, request.client)
    return _error(429, f"Rate limit exceeded: {exc.detail}")


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    # Unique email / QR code / card number, one schedule per weekday,
    # one cached total per user-day.
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return _error(409, "Conflicts with an existing record")


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return _error(500, "Internal database error")


async def _unhandled_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return _error(500, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_exception_handler)
