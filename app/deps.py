"""Shared dependencies for FastAPI routes and workers."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from fastapi import Header

from app.core.config import settings
from app.core.errors import AuthenticationError

if TYPE_CHECKING:
    from app.storage.minio_impl import MinioStorage

_storage: "MinioStorage | None" = None


def get_storage() -> "MinioStorage":
    """Get or lazily initialize the storage singleton.

    Lazy initialization avoids failures at import time when MinIO is unavailable.
    """
    global _storage
    if _storage is None:
        from app.storage.factory import build_storage

        _storage = build_storage()
    return _storage


@dataclass(frozen=True)
class RequestContext:
    """Caller identity for a request: tenant scope plus acting user."""

    tenant_id: str
    user_id: Optional[str] = None


def get_request_context(
    authorization: Optional[str] = Header(default=None),
    x_tenant_id: Optional[str] = Header(default=None),
    x_user_id: Optional[str] = Header(default=None),
) -> RequestContext:
    """Resolve the caller from headers.

    When ``API_TOKEN`` is configured every request must carry it as a bearer
    credential. Tenant falls back to ``DEFAULT_TENANT_ID``.
    """
    if settings.API_TOKEN:
        scheme, _, token = (authorization or "").partition(" ")
        if scheme.lower() != "bearer" or not secrets.compare_digest(token, settings.API_TOKEN):
            raise AuthenticationError("Authentication required")
    return RequestContext(
        tenant_id=x_tenant_id or settings.DEFAULT_TENANT_ID,
        user_id=x_user_id,
    )


__all__ = ["RequestContext", "get_request_context", "get_storage"]
