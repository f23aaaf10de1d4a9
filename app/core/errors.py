"""Service exceptions and the JSON failure envelope.

Every failure leaves the API as::

    {"success": false, "message": "...", "errorCode": "...", "fieldErrors": {...}}

``fieldErrors`` is only present for validation failures and maps the
camelCase field name to its first error message.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for errors that map onto an HTTP failure response."""

    status_code = 500
    error_code = "SERVER_ERROR"

    def __init__(self, message: str, *, field_errors: dict[str, str] | None = None):
        self.message = message
        self.field_errors = field_errors
        super().__init__(message)


class RequestValidationFailed(ServiceError):
    """Payload passed schema validation but violates a business rule."""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class AuthenticationError(ServiceError):
    status_code = 401
    error_code = "UNAUTHORIZED"


class NotFoundError(ServiceError):
    status_code = 404
    error_code = "NOT_FOUND"


class ConflictError(ServiceError):
    status_code = 409
    error_code = "CONFLICT"


class PayloadTooLargeError(ServiceError):
    status_code = 413
    error_code = "PAYLOAD_TOO_LARGE"


class ServiceUnavailableError(ServiceError):
    status_code = 503
    error_code = "SERVICE_UNAVAILABLE"


def failure_body(
    message: str,
    error_code: str,
    field_errors: dict[str, str] | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message, "errorCode": error_code}
    if field_errors:
        body["fieldErrors"] = field_errors
    return body


def field_errors_from_validation(exc: RequestValidationError) -> dict[str, str]:
    """Collapse pydantic error locations into ``{field: message}``."""
    errors: dict[str, str] = {}
    for err in exc.errors():
        loc = [part for part in err.get("loc", ()) if isinstance(part, str) and part != "body"]
        field = ".".join(loc) or "__root__"
        errors.setdefault(field, err.get("msg", "Invalid value"))
    return errors


async def _service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.error_code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=failure_body(exc.message, exc.error_code, exc.field_errors),
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    field_errors = field_errors_from_validation(exc)
    logger.info("%s %s invalid payload: %s", request.method, request.url.path, field_errors)
    return JSONResponse(
        status_code=400,
        content=failure_body("Invalid request data", "VALIDATION_ERROR", field_errors),
    )


async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=failure_body(str(exc.detail), f"HTTP_{exc.status_code}"),
        headers=getattr(exc, "headers", None),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, _service_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(HTTPException, _http_exception_handler)


__all__ = [
    "AuthenticationError",
    "ConflictError",
    "NotFoundError",
    "PayloadTooLargeError",
    "RequestValidationFailed",
    "ServiceError",
    "ServiceUnavailableError",
    "failure_body",
    "field_errors_from_validation",
    "install_error_handlers",
]
