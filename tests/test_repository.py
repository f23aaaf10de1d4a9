"""Tests for repository helpers using SQLite (unit-level)."""

from __future__ import annotations

from datetime import date
from uuid import uuid4

import pytest

from app.db.models import Contract, ContractAnalysis, Document
from app.db.repository import (
    complete_analysis,
    contract_match_candidates,
    fail_analysis,
    get_analysis,
    mark_analysis_processing,
)
from app.schemas.domain import AnalysisExtraction, AnalysisStatus, ContractType, FieldConfidence


@pytest.fixture(scope="function")
def db_session(sqlite_sessionmaker):
    session = sqlite_sessionmaker()
    try:
        yield session
    finally:
        session.close()


def _analysis(db, user_id=None):
    doc = Document(
        id=str(uuid4()),
        tenant_id="tenant-1",
        title="Vendor MSA",
        filename="a.pdf",
        content_type="application/pdf",
        file_size=10,
        object_key="tenant-1/x/a.pdf",
    )
    analysis = ContractAnalysis(
        id=str(uuid4()),
        document_id=doc.id,
        tenant_id="tenant-1",
        user_id=user_id,
        status=AnalysisStatus.PENDING,
    )
    db.add_all([doc, analysis])
    db.flush()
    return analysis


def _extraction(**overrides):
    values = dict(
        vendor="Acme Corp",
        contract_title="Master Services Agreement",
        doc_type="MSA",
        effective_date="2024-01-01",
        termination_date="not a date",
        confidence=FieldConfidence(vendor=0.9, effective_date=0.95),
    )
    values.update(overrides)
    return AnalysisExtraction(**values)


def test_analysis_lifecycle_to_completed(db_session):
    analysis = _analysis(db_session, user_id="user-1")
    assert analysis.status == AnalysisStatus.PENDING

    mark_analysis_processing(db_session, analysis.id)
    assert get_analysis(db_session, analysis.id).status == AnalysisStatus.PROCESSING

    complete_analysis(
        db_session,
        analysis.id,
        _extraction(),
        analyzer="rules",
        suggested_contract_id="contract-9",
        raw={"vendor": "Acme Corp"},
    )
    db_session.commit()

    stored = get_analysis(db_session, analysis.id)
    assert stored.status == AnalysisStatus.COMPLETED
    assert stored.vendor == "Acme Corp"
    assert stored.effective_date == date(2024, 1, 1)
    # Unparseable dates are dropped rather than stored
    assert stored.termination_date is None
    assert stored.confidence["vendor"] == 0.9
    assert stored.suggested_contract_id == "contract-9"
    assert stored.analyzer == "rules"
    assert stored.raw_analysis == {"vendor": "Acme Corp"}


def test_terminal_analysis_is_not_overwritten(db_session):
    analysis = _analysis(db_session)

    fail_analysis(db_session, analysis.id, "no text content")
    complete_analysis(db_session, analysis.id, _extraction(), analyzer="ai")
    mark_analysis_processing(db_session, analysis.id)
    db_session.commit()

    stored = get_analysis(db_session, analysis.id)
    assert stored.status == AnalysisStatus.FAILED
    assert stored.error == "no text content"
    assert stored.vendor is None


def test_missing_analysis_returns_none(db_session):
    assert mark_analysis_processing(db_session, "missing") is None
    assert fail_analysis(db_session, "missing", "boom") is None


def test_contract_match_candidates_scoped_to_tenant(db_session):
    db_session.add_all(
        [
            Contract(id="c1", tenant_id="tenant-1", contract_type=ContractType.MSA, counterparty_name="Acme Corp", title="Acme MSA"),
            Contract(id="c2", tenant_id="tenant-1", contract_type=ContractType.NDA, counterparty_name=None, title="Mutual NDA"),
            Contract(id="c3", tenant_id="tenant-2", contract_type=ContractType.MSA, counterparty_name="Other Co"),
        ]
    )
    db_session.commit()

    candidates = contract_match_candidates(db_session, "tenant-1")

    assert sorted(candidates) == [("c1", "Acme Corp"), ("c1", "Acme MSA"), ("c2", "Mutual NDA")]
