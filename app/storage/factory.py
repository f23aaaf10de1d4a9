"""Build the document store from application settings."""

from __future__ import annotations

from urllib.parse import urlparse

from minio import Minio

from app.core.config import Settings, settings as default_settings
from app.storage.minio_impl import MinioStorage


def normalize_endpoint(endpoint: str) -> tuple[str, bool]:
    """Split an endpoint URL into MinIO's ``host:port`` and a secure flag."""
    parsed = urlparse(endpoint)
    host = parsed.netloc or parsed.path.rstrip("/")
    return host, parsed.scheme == "https"


def build_minio_client(settings: Settings) -> Minio:
    host, secure = normalize_endpoint(settings.S3_ENDPOINT)
    return Minio(
        host,
        access_key=settings.S3_ACCESS_KEY,
        secret_key=settings.S3_SECRET_KEY,
        secure=secure,
    )


def build_storage(settings: Settings | None = None) -> MinioStorage:
    """Create MinioStorage and make sure the documents bucket exists."""
    settings = settings or default_settings
    storage = MinioStorage(build_minio_client(settings))
    storage.ensure_bucket(settings.S3_BUCKET_DOCUMENTS)
    return storage


__all__ = ["build_minio_client", "build_storage", "normalize_endpoint"]
