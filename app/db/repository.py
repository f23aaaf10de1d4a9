"""Repository helpers for analyses and contract matching (sync sessions)."""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy.orm import Session

from app.db.models import Contract, ContractAnalysis
from app.schemas.domain import AnalysisExtraction, AnalysisStatus, parse_iso_date


def get_analysis(db: Session, analysis_id: str) -> Optional[ContractAnalysis]:
    return db.query(ContractAnalysis).filter(ContractAnalysis.id == analysis_id).first()


def mark_analysis_processing(db: Session, analysis_id: str) -> Optional[ContractAnalysis]:
    analysis = get_analysis(db, analysis_id)
    if analysis is not None and not analysis.status.is_terminal:
        analysis.status = AnalysisStatus.PROCESSING
        analysis.error = None
    return analysis


def complete_analysis(
    db: Session,
    analysis_id: str,
    extraction: AnalysisExtraction,
    *,
    analyzer: str,
    suggested_contract_id: Optional[str] = None,
    raw: Optional[dict[str, Any]] = None,
) -> Optional[ContractAnalysis]:
    """Write extracted fields and flip the record to COMPLETED.

    A record that already reached a terminal state is left untouched so a
    retried activity cannot overwrite the first outcome.
    """
    analysis = get_analysis(db, analysis_id)
    if analysis is None or analysis.status.is_terminal:
        return analysis

    analysis.vendor = extraction.vendor
    analysis.contract_title = extraction.contract_title
    analysis.doc_type = extraction.doc_type
    analysis.effective_date = parse_iso_date(extraction.effective_date)
    analysis.termination_date = parse_iso_date(extraction.termination_date)
    analysis.confidence = extraction.confidence.model_dump()
    analysis.suggested_contract_id = suggested_contract_id
    analysis.analyzer = analyzer
    analysis.raw_analysis = raw
    analysis.status = AnalysisStatus.COMPLETED
    analysis.error = None
    return analysis


def fail_analysis(db: Session, analysis_id: str, error: str) -> Optional[ContractAnalysis]:
    analysis = get_analysis(db, analysis_id)
    if analysis is None or analysis.status.is_terminal:
        return analysis
    analysis.status = AnalysisStatus.FAILED
    analysis.error = error
    return analysis


def contract_match_candidates(db: Session, tenant_id: str) -> list[tuple[str, str]]:
    """Return ``(contract_id, label)`` pairs for suggestion matching.

    A contract contributes one pair per non-empty counterparty name or title.
    """
    rows = (
        db.query(Contract.id, Contract.counterparty_name, Contract.title)
        .filter(Contract.tenant_id == tenant_id)
        .all()
    )
    candidates: list[tuple[str, str]] = []
    for contract_id, counterparty, title in rows:
        for label in (counterparty, title):
            if label:
                candidates.append((contract_id, label))
    return candidates
