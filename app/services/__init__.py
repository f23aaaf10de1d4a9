"""Business logic services."""

from app.services.document_text import (
    DocumentError,
    DocumentParseError,
    DocumentTextError,
    ParseResult,
    extract_document_text,
    is_supported,
)
from app.services.matching import suggest_contract
from app.services.rule_analyzer import analyze_text

__all__ = [
    "DocumentError",
    "DocumentTextError",
    "DocumentParseError",
    "ParseResult",
    "analyze_text",
    "extract_document_text",
    "is_supported",
    "suggest_contract",
]
