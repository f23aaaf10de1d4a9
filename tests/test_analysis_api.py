"""Tests for starting and polling contract analyses."""

from datetime import date
from uuid import uuid4

from app.db import repository
from app.db.models import ContractAnalysis
from app.schemas.domain import AnalysisExtraction, AnalysisStatus, FieldConfidence
from conftest import TENANT_ID
from worker.workflows import ContractAnalysisWorkflow


def _start(api_client, document_id):
    return api_client.post(f"/api/contracts/upload/analyze/{document_id}")


class TestStartAnalysis:
    def test_creates_pending_record_and_starts_workflow(self, api_client, api_env, seed_document):
        document_id = seed_document()

        response = _start(api_client, document_id)

        assert response.status_code == 202
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "PENDING"
        analysis = body["analysis"]
        assert analysis["documentId"] == document_id
        assert analysis["status"] == "PENDING"
        assert analysis["vendor"] is None

        api_env.temporal.start_workflow.assert_awaited_once()
        call = api_env.temporal.start_workflow.call_args
        assert call.args == (ContractAnalysisWorkflow.run, analysis["id"])
        assert call.kwargs["id"] == f"analysis-{analysis['id']}"

    def test_each_request_gets_a_new_record(self, api_client, seed_document):
        document_id = seed_document()

        first = _start(api_client, document_id).json()["analysis"]["id"]
        second = _start(api_client, document_id).json()["analysis"]["id"]

        assert first != second

    def test_unknown_document(self, api_client, api_env):
        response = _start(api_client, "missing-doc")

        assert response.status_code == 404
        assert response.json()["message"] == "Document not found"
        api_env.temporal.start_workflow.assert_not_called()

    def test_temporal_not_connected(self, api_client, api_env, seed_document):
        api_env.app.state.temporal = None

        response = _start(api_client, seed_document())

        assert response.status_code == 503
        assert response.json()["errorCode"] == "SERVICE_UNAVAILABLE"
        with api_env.sessionmaker() as session:
            assert session.query(ContractAnalysis).count() == 0

    def test_workflow_start_failure_fails_record(self, api_client, api_env, seed_document):
        api_env.temporal.start_workflow.side_effect = RuntimeError("temporal unreachable")

        response = _start(api_client, seed_document())

        assert response.status_code == 503
        with api_env.sessionmaker() as session:
            analysis = session.query(ContractAnalysis).one()
            assert analysis.status == AnalysisStatus.FAILED
            assert analysis.error == "Analysis could not be started"


class TestGetAnalysis:
    def _analysis(self, api_env, document_id):
        with api_env.sessionmaker() as session:
            analysis = ContractAnalysis(id=str(uuid4()), document_id=document_id, tenant_id=TENANT_ID)
            session.add(analysis)
            session.commit()
            return analysis.id

    def test_pending_has_no_fields(self, api_client, api_env, seed_document):
        analysis_id = self._analysis(api_env, seed_document())

        response = api_client.get(f"/api/contracts/upload/analysis/{analysis_id}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "PENDING"
        assert data["confidence"] == {}
        assert data["error"] is None

    def test_completed_exposes_fields(self, api_client, api_env, seed_document):
        analysis_id = self._analysis(api_env, seed_document())
        extraction = AnalysisExtraction(
            vendor="Acme Corp",
            contract_title="Master Services Agreement",
            doc_type="MSA",
            effective_date="2024-01-01",
            termination_date="2026-01-01",
            confidence=FieldConfidence(vendor=0.9, contract_title=0.8, effective_date=0.7),
        )
        with api_env.sessionmaker() as session:
            repository.complete_analysis(session, analysis_id, extraction, analyzer="rules")
            session.commit()

        data = api_client.get(f"/api/contracts/upload/analysis/{analysis_id}").json()["data"]

        assert data["status"] == "COMPLETED"
        assert data["vendor"] == "Acme Corp"
        assert data["contractTitle"] == "Master Services Agreement"
        assert data["effectiveDate"] == date(2024, 1, 1).isoformat()
        assert data["terminationDate"] == "2026-01-01"
        assert data["confidence"]["vendor"] == 0.9
        assert data["confidence"]["contractTitle"] == 0.8
        assert data["confidence"]["effectiveDate"] == 0.7

    def test_failed_exposes_error_only(self, api_client, api_env, seed_document):
        analysis_id = self._analysis(api_env, seed_document())
        with api_env.sessionmaker() as session:
            repository.fail_analysis(session, analysis_id, "no text content found (scanned PDF?)")
            session.commit()

        data = api_client.get(f"/api/contracts/upload/analysis/{analysis_id}").json()["data"]

        assert data["status"] == "FAILED"
        assert data["error"] == "no text content found (scanned PDF?)"
        assert data["vendor"] is None

    def test_unknown_analysis(self, api_client):
        response = api_client.get("/api/contracts/upload/analysis/nope")

        assert response.status_code == 404
        assert response.json()["message"] == "Analysis not found"

    def test_other_tenant_cannot_read(self, api_client, api_env, seed_document):
        analysis_id = self._analysis(api_env, seed_document())

        response = api_client.get(
            f"/api/contracts/upload/analysis/{analysis_id}",
            headers={"X-Tenant-ID": "tenant-b"},
        )

        assert response.status_code == 404
