"""Temporal activities for the contract analysis workflow.

- parse_document: load the document from storage and extract its text
- analyze_contract: AI extraction with a rule-based fallback
- store_analysis: persist fields, confidence and the suggested contract
- fail_analysis: record a terminal failure
"""

from __future__ import annotations

import logging
from typing import Any

from temporalio import activity

from app.core.config import settings
from app.db import repository
from app.db.session import get_sync_db
from app.deps import get_storage
from app.schemas.domain import AnalysisExtraction
from app.services import analyze_text, extract_document_text, is_supported, suggest_contract
from worker.llm_extractor import LLMAnalyzeError, analyze_contract_text

logger = logging.getLogger(__name__)


@activity.defn
def parse_document(analysis_id: str) -> dict[str, Any]:
    """Mark the analysis PROCESSING and return the document's text.

    Returns:
        Dict with 'text', 'page_count', 'document_title' and 'metadata_title'.

    Raises:
        DocumentTextError: The document can't yield text (non-retryable).
        DocumentParseError: Parsing failed at runtime (retryable).
        StorageError: Reading from MinIO failed.
    """
    with get_sync_db() as db:
        analysis = repository.mark_analysis_processing(db, analysis_id)
        if analysis is None:
            raise ValueError(f"Analysis {analysis_id} not found")
        doc = analysis.document
        bucket, key = doc.bucket, doc.object_key
        content_type, title, filename = doc.content_type, doc.title, doc.filename

    if not is_supported(content_type):
        # Nothing to parse; the analyzers still get the title and filename
        logger.info("Analysis %s: %s not parseable, using metadata only", analysis_id, content_type)
        return {
            "text": f"Document title: {title}\nFilename: {filename}",
            "page_count": 0,
            "document_title": title,
            "metadata_title": None,
        }

    data, _ = get_storage().get_bytes(bucket, key)
    result = extract_document_text(
        data,
        content_type,
        max_size_mb=settings.PDF_MAX_FILE_SIZE_MB,
        max_pages=settings.PDF_MAX_PAGES,
    )

    logger.info(
        "Parsed document for analysis %s: %d pages, %d chars",
        analysis_id,
        result.page_count,
        len(result.text),
    )
    return {
        "text": result.text,
        "page_count": result.page_count,
        "document_title": title,
        "metadata_title": result.metadata.get("title"),
    }


@activity.defn
def analyze_contract(analysis_id: str, parsed: dict[str, Any]) -> dict[str, Any]:
    """Extract contract fields, preferring the AI analyzer when configured.

    Returns:
        Dict with 'analyzer' ("ai" or "rules") and 'extraction'
        (AnalysisExtraction.model_dump()).
    """
    text = parsed["text"]
    document_title = parsed.get("document_title") or ""

    if settings.AI_ENABLED and settings.OPENAI_API_KEY:
        try:
            extraction = analyze_contract_text(text, document_title=document_title)
            logger.info("AI analysis complete for %s", analysis_id)
            return {"analyzer": "ai", "extraction": extraction.model_dump()}
        except LLMAnalyzeError as e:
            logger.warning("AI analysis failed for %s, using rules: %s", analysis_id, e)

    extraction = analyze_text(
        text,
        document_title=document_title,
        metadata_title=parsed.get("metadata_title"),
    )
    logger.info("Rule-based analysis complete for %s", analysis_id)
    return {"analyzer": "rules", "extraction": extraction.model_dump()}


@activity.defn
def store_analysis(analysis_id: str, outcome: dict[str, Any]) -> dict[str, Any]:
    """Persist extracted fields and flip the record to COMPLETED.

    Idempotent: a record already in a terminal state is left as is.
    """
    extraction = AnalysisExtraction.model_validate(outcome["extraction"])

    with get_sync_db() as db:
        analysis = repository.get_analysis(db, analysis_id)
        if analysis is None:
            raise ValueError(f"Analysis {analysis_id} not found")

        suggested = suggest_contract(
            repository.contract_match_candidates(db, analysis.tenant_id),
            vendor=extraction.vendor,
            title=extraction.contract_title,
            threshold=settings.SUGGESTION_THRESHOLD,
        )
        repository.complete_analysis(
            db,
            analysis_id,
            extraction,
            analyzer=outcome["analyzer"],
            suggested_contract_id=suggested,
            raw=outcome["extraction"],
        )

    logger.info("Analysis %s completed (analyzer=%s)", analysis_id, outcome["analyzer"])
    return {"analysis_id": analysis_id, "suggested_contract_id": suggested}


@activity.defn
def fail_analysis(analysis_id: str, error: str) -> None:
    with get_sync_db() as db:
        repository.fail_analysis(db, analysis_id, error)
    logger.warning("Analysis %s failed: %s", analysis_id, error)


__all__ = ["analyze_contract", "fail_analysis", "parse_document", "store_analysis"]
