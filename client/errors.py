"""Client-side error taxonomy.

Every failure the pipeline surfaces is a ClientError subclass carrying a
user-facing message. ValidationError stays next to the form; the rest are
reported through ``ClientContext.notify``.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx
from pydantic.alias_generators import to_snake


class ClientError(Exception):
    user_message = "Something went wrong. Please try again."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        field_errors: Optional[dict[str, str]] = None,
    ):
        self.message = message or self.user_message
        self.status_code = status_code
        self.error_code = error_code
        self.field_errors = field_errors or {}
        super().__init__(self.message)


class ValidationError(ClientError):
    user_message = "Please correct the highlighted fields."


class AuthError(ClientError):
    user_message = "Your session may have expired. Please try logging in again."


class NetworkError(ClientError):
    user_message = "Please check your internet connection and try again."


class ServerError(ClientError):
    user_message = "Our servers are experiencing issues. Please try again later."


class NotFound(ClientError):
    user_message = "The requested item could not be found."


class Conflict(ClientError):
    user_message = "This change conflicts with existing data."


class Timeout(ClientError):
    user_message = "The operation timed out. Please try again."


def _field_errors(raw: Any) -> dict[str, str]:
    if not isinstance(raw, dict):
        return {}
    return {to_snake(str(k)): str(v) for k, v in raw.items()}


def classify_response(response: httpx.Response) -> Optional[ClientError]:
    """Map a non-2xx response onto the taxonomy; None for success."""
    status = response.status_code
    if status < 400:
        return None

    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("message") or body.get("error") or body.get("detail")
    if not isinstance(message, str):
        message = None
    kwargs = {
        "status_code": status,
        "error_code": body.get("errorCode"),
        "field_errors": _field_errors(body.get("fieldErrors")),
    }

    if status in (401, 403):
        return AuthError(message or AuthError.user_message, **kwargs)
    if status == 404:
        return NotFound(message or NotFound.user_message, **kwargs)
    if status == 409:
        return Conflict(message or Conflict.user_message, **kwargs)
    if status in (408, 504):
        return Timeout(message or Timeout.user_message, **kwargs)
    if status >= 500:
        return ServerError(message or ServerError.user_message, **kwargs)
    if kwargs["field_errors"] or status in (400, 413, 422):
        return ValidationError(message or ValidationError.user_message, **kwargs)
    return ClientError(message or f"Request failed with status {status}", **kwargs)


def classify_exception(exc: BaseException) -> ClientError:
    """Map transport-level exceptions onto the taxonomy."""
    if isinstance(exc, ClientError):
        return exc
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        return Timeout("Request timed out")
    if isinstance(exc, httpx.TransportError):
        return NetworkError(f"Network error: {type(exc).__name__}")
    return ClientError(str(exc) or type(exc).__name__)


def from_validation(exc: Any) -> ValidationError:
    """Turn a local pydantic ValidationError into the form-level ValidationError."""
    field_errors: dict[str, str] = {}
    for err in exc.errors():
        name = ".".join(to_snake(str(p)) for p in err.get("loc", ())) or "form"
        field_errors.setdefault(name, err.get("msg", "Invalid value"))
    return ValidationError(field_errors=field_errors)


__all__ = [
    "AuthError",
    "ClientError",
    "Conflict",
    "NetworkError",
    "NotFound",
    "ServerError",
    "Timeout",
    "ValidationError",
    "classify_exception",
    "classify_response",
    "from_validation",
]
