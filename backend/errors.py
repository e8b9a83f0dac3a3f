"""
Error types and their HTTP rendering.

Every error leaving the API has the shape {"error": "...", "code": "..."}.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """A persistence operation failed. Nothing was committed."""


class DuplicateKeyError(StorageError):
    """An insert hit a unique constraint."""


class AppError(Exception):
    """Base for errors that map directly to an HTTP response."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "bad_request"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidCodeError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "invalid_code"


class DeviceCodeConflictError(AppError):
    """The code exists but can no longer be approved."""

    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class AlreadyApprovedError(DeviceCodeConflictError):
    code = "already_approved"


class CodeExpiredError(DeviceCodeConflictError):
    code = "expired"


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request."
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part != "body"]
    field = loc[-1] if loc else "body"
    # Blank strings count as missing
    blank = first.get("type") == "string_too_short" and (first.get("ctx") or {}).get("min_length") == 1
    if first.get("type") == "missing" or blank:
        return f"{field} is required"
    return f"{field}: {first.get('msg', 'invalid value')}"


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code},
    )


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": _validation_message(exc)},
    )


async def _storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.exception("Unhandled storage error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Storage unavailable. Please try again."},
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install the JSON error handlers on an application."""
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StorageError, _storage_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
