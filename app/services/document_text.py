"""Document text extraction.

Works entirely on bytes so it can run inside a Temporal activity without
touching disk. PDFs go through pdfplumber; plain-text uploads are decoded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any

import pdfplumber

logger = logging.getLogger(__name__)

TEXT_CONTENT_TYPES = frozenset({"text/plain", "text/markdown"})


class DocumentError(Exception):
    """Base class for document text errors."""


class DocumentTextError(DocumentError):
    """The document can never yield text (final, no retry).

    Raised for: unsupported type, too large, too many pages, scanned PDFs.
    """


class DocumentParseError(DocumentError):
    """Parsing failed at runtime and may succeed on retry."""


@dataclass(frozen=True, slots=True)
class ParseResult:
    """Immutable result of text extraction."""

    text: str
    page_count: int
    metadata: dict[str, Any] = field(default_factory=dict)


def _check_size(data: bytes, max_size_mb: int) -> None:
    max_size_bytes = max_size_mb * 1024 * 1024
    if len(data) > max_size_bytes:
        raise DocumentTextError(
            f"file too large: {len(data) / 1024 / 1024:.1f}MB > {max_size_mb}MB"
        )


def _pdf_metadata(raw: dict[str, Any]) -> dict[str, Any]:
    # pdfplumber exposes the info dictionary with PDF-style keys
    out: dict[str, Any] = {}
    for key in ("Title", "Author", "Subject", "Creator"):
        value = raw.get(key)
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="ignore")
        if isinstance(value, str) and value.strip():
            out[key.lower()] = value.strip()
    return out


def extract_pdf_text(
    data: bytes,
    *,
    max_size_mb: int = 20,
    max_pages: int = 100,
) -> ParseResult:
    """Extract text content, page count and info metadata from PDF bytes.

    Raises:
        DocumentTextError: Not a PDF, too large, too many pages, or scanned.
        DocumentParseError: Corrupted or unparseable PDF.
    """
    if not data.startswith(b"%PDF"):
        raise DocumentTextError("unsupported content: missing PDF header")
    _check_size(data, max_size_mb)

    try:
        with pdfplumber.open(BytesIO(data)) as pdf:
            page_count = len(pdf.pages)
            if page_count > max_pages:
                raise DocumentTextError(f"too many pages: {page_count} > {max_pages}")

            pages_text: list[str] = []
            for page in pdf.pages:
                pages_text.append((page.extract_text() or "").strip())

            if not any(pages_text):
                raise DocumentTextError(
                    "no text content: PDF may be scanned/image-only (OCR not supported)"
                )

            return ParseResult(
                text="\n\n".join(pages_text).strip(),
                page_count=page_count,
                metadata=_pdf_metadata(pdf.metadata or {}),
            )

    except DocumentTextError:
        raise
    except Exception as e:
        logger.warning("PDF parse failed: %s", e, exc_info=True)
        raise DocumentParseError(f"failed to parse PDF: {type(e).__name__}") from e


def is_supported(content_type: str) -> bool:
    return content_type == "application/pdf" or content_type in TEXT_CONTENT_TYPES


def extract_document_text(
    data: bytes,
    content_type: str,
    *,
    max_size_mb: int = 20,
    max_pages: int = 100,
) -> ParseResult:
    """Dispatch on content type and return the document's text."""
    if content_type == "application/pdf":
        return extract_pdf_text(data, max_size_mb=max_size_mb, max_pages=max_pages)

    if content_type in TEXT_CONTENT_TYPES:
        _check_size(data, max_size_mb)
        text = data.decode("utf-8", errors="replace").strip()
        if not text:
            raise DocumentTextError("no text content: empty document")
        return ParseResult(text=text, page_count=1)

    raise DocumentTextError(f"unsupported content type: {content_type}")


__all__ = [
    "DocumentError",
    "DocumentTextError",
    "DocumentParseError",
    "ParseResult",
    "extract_document_text",
    "extract_pdf_text",
    "is_supported",
]
