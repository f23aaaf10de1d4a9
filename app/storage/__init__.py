"""Storage package: document bytes in object storage."""

from app.storage.contracts import DocumentStore, StorageError, document_key
from app.storage.minio_impl import MinioStorage

__all__ = ["DocumentStore", "MinioStorage", "StorageError", "document_key"]
