"""MinIO-backed document storage."""

from __future__ import annotations

import io
from typing import Mapping

from minio import Minio
from minio.error import S3Error

from app.storage.contracts import DocumentStore, StorageError


def _wrap_error(op: str, bucket: str | None, key: str | None, exc: Exception) -> StorageError:
    return StorageError(op=op, bucket=bucket, key=key, message=str(exc))


class MinioStorage(DocumentStore):
    """Document storage on top of the MinIO SDK."""

    def __init__(self, client: Minio):
        self._client = client

    def put_bytes(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
        metadata: Mapping[str, str] | None = None,
    ) -> str:
        try:
            self._client.put_object(
                bucket_name=bucket,
                object_name=key,
                data=io.BytesIO(data),
                length=len(data),
                content_type=content_type or "application/octet-stream",
                metadata=dict(metadata) if metadata else None,
            )
        except (S3Error, OSError, ValueError) as exc:
            raise _wrap_error("put", bucket, key, exc) from exc
        return f"{bucket}/{key}"

    def get_bytes(self, bucket: str, key: str) -> tuple[bytes, Mapping[str, str]]:
        try:
            response = self._client.get_object(bucket, key)
            try:
                return response.read(), dict(response.headers or {})
            finally:
                response.close()
                response.release_conn()
        except (S3Error, OSError, ValueError) as exc:
            raise _wrap_error("get", bucket, key, exc) from exc

    def remove(self, bucket: str, key: str) -> None:
        try:
            self._client.remove_object(bucket, key)
        except (S3Error, OSError, ValueError) as exc:
            raise _wrap_error("remove", bucket, key, exc) from exc

    def ensure_bucket(self, name: str) -> None:
        try:
            if not self._client.bucket_exists(name):
                self._client.make_bucket(name)
        except (S3Error, OSError, ValueError) as exc:
            raise _wrap_error("ensure_bucket", name, None, exc) from exc

    def bucket_exists(self, name: str) -> bool:
        try:
            return bool(self._client.bucket_exists(name))
        except (S3Error, OSError, ValueError) as exc:
            raise _wrap_error("bucket_exists", name, None, exc) from exc


__all__ = ["MinioStorage"]
