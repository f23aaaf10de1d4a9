"""Document storage interface and error type."""

from __future__ import annotations

import re
from typing import Mapping, Protocol, runtime_checkable


class StorageError(Exception):
    """Wraps underlying storage exceptions with operation context."""

    def __init__(self, op: str, bucket: str | None, key: str | None, message: str):
        self.op = op
        self.bucket = bucket
        self.key = key
        self.message = message
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"{self.op} failed for {self.bucket or '<unknown>'}/{self.key or '<unknown>'}: {self.message}"


@runtime_checkable
class DocumentStore(Protocol):
    """What routes and activities need from object storage."""

    def put_bytes(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
        metadata: Mapping[str, str] | None = None,
    ) -> str:
        ...

    def get_bytes(self, bucket: str, key: str) -> tuple[bytes, Mapping[str, str]]:
        ...

    def remove(self, bucket: str, key: str) -> None:
        ...

    def ensure_bucket(self, name: str) -> None:
        ...

    def bucket_exists(self, name: str) -> bool:
        ...


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def document_key(tenant_id: str, document_id: str, filename: str) -> str:
    """Object key for an uploaded document: ``<tenant>/<document>/<filename>``."""
    safe = _UNSAFE_CHARS.sub("_", filename.rsplit("/", 1)[-1]).strip("._") or "document"
    return f"{tenant_id}/{document_id}/{safe}"


__all__ = ["DocumentStore", "StorageError", "document_key"]
