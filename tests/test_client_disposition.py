"""Tests for create-new vs attach-to-existing after analysis."""

from datetime import date

import pytest

from app.db.models import ContractPrefill
from app.schemas.api import AnalysisResult
from app.schemas.domain import AnalysisStatus, AttachmentType
from client.disposition import CONTRACTS_CACHE_KEY, ContractCandidate, DispositionResolver
from client.errors import Conflict, NotFound, ValidationError


def _analysis(document_id="doc-1", suggested=None):
    return AnalysisResult(
        id="a-1",
        document_id=document_id,
        status=AnalysisStatus.COMPLETED,
        vendor="Acme Corp",
        contract_title="Master Services Agreement",
        doc_type="MSA",
        effective_date=date(2024, 1, 1),
        termination_date=date(2026, 1, 1),
        confidence={"vendor": 0.9, "effectiveDate": 0.7},
        suggested_contract_id=suggested,
    )


async def _contract(ctx, **fields):
    body = await ctx.request("POST", "/api/contracts", json={"contractType": "MSA", **fields})
    return body["data"]["id"]


class TestCreateFromAnalysis:
    @pytest.mark.asyncio
    async def test_stores_prefill_and_navigates(self, asgi_ctx, seed_document):
        document_id = seed_document()
        resolver = DispositionResolver(asgi_ctx)

        prefill_id = await resolver.create_from_analysis(_analysis(document_id), document_id)

        assert asgi_ctx.location == f"/contracts/new?prefillId={prefill_id}"
        prefill = await resolver.get_prefill(prefill_id)
        assert prefill["documentId"] == document_id
        assert prefill["vendor"] == "Acme Corp"
        assert prefill["title"] == "Master Services Agreement"
        assert prefill["effectiveDate"] == "2024-01-01"
        assert prefill["confidence"] == {"vendor": 0.9, "effectiveDate": 0.7}

    @pytest.mark.asyncio
    async def test_overrides_win(self, asgi_ctx, seed_document):
        document_id = seed_document()
        resolver = DispositionResolver(asgi_ctx)

        prefill_id = await resolver.create_from_analysis(
            _analysis(document_id), document_id, overrides={"title": "Acme MSA 2024"}
        )

        assert (await resolver.get_prefill(prefill_id))["title"] == "Acme MSA 2024"

    @pytest.mark.asyncio
    async def test_missing_document_is_local_error(self, asgi_ctx, api_env):
        with pytest.raises(ValidationError) as excinfo:
            await DispositionResolver(asgi_ctx).create_from_analysis(_analysis(), None)

        assert excinfo.value.field_errors == {"document_id": "Document is required"}
        assert asgi_ctx.location is None
        with api_env.sessionmaker() as session:
            assert session.query(ContractPrefill).count() == 0

    @pytest.mark.asyncio
    async def test_invalid_override_is_local_error(self, asgi_ctx, seed_document):
        document_id = seed_document()

        with pytest.raises(ValidationError) as excinfo:
            await DispositionResolver(asgi_ctx).create_from_analysis(
                _analysis(document_id), document_id, overrides={"effective_date": "not a date"}
            )

        assert "effective_date" in excinfo.value.field_errors


class TestAttachToExisting:
    @pytest.mark.asyncio
    async def test_attaches_with_confidence_note(self, asgi_ctx, seed_document):
        document_id = seed_document()
        contract_id = await _contract(asgi_ctx, counterpartyName="Acme Corp")
        invalidated = []
        asgi_ctx.cache.subscribe(invalidated.append)

        attachment_id = await DispositionResolver(asgi_ctx).attach_to_existing(
            contract_id, document_id, confidence={"vendor": 0.9, "effectiveDate": 0.7}
        )

        listed = (await asgi_ctx.request("GET", f"/api/contracts/{contract_id}/documents"))["data"]
        assert [a["id"] for a in listed] == [attachment_id]
        assert listed[0]["isPrimary"] is False
        assert listed[0]["docType"] == "MAIN"
        assert listed[0]["notes"] == "AI analyzed document. Confidence: vendor: 90%, effectiveDate: 70%"
        assert invalidated == [CONTRACTS_CACHE_KEY]

    @pytest.mark.asyncio
    async def test_doc_type_and_no_notes(self, asgi_ctx, seed_document):
        document_id = seed_document()
        contract_id = await _contract(asgi_ctx)

        await DispositionResolver(asgi_ctx).attach_to_existing(contract_id, document_id, doc_type=AttachmentType.AMENDMENT)

        listed = (await asgi_ctx.request("GET", f"/api/contracts/{contract_id}/documents"))["data"]
        assert listed[0]["docType"] == "AMENDMENT"
        assert listed[0]["notes"] is None

    @pytest.mark.asyncio
    async def test_duplicate_is_conflict(self, asgi_ctx, seed_document):
        document_id = seed_document()
        contract_id = await _contract(asgi_ctx)
        resolver = DispositionResolver(asgi_ctx)
        await resolver.attach_to_existing(contract_id, document_id)

        with pytest.raises(Conflict, match="already attached"):
            await resolver.attach_to_existing(contract_id, document_id)

    @pytest.mark.asyncio
    async def test_unknown_contract(self, asgi_ctx, seed_document):
        with pytest.raises(NotFound):
            await DispositionResolver(asgi_ctx).attach_to_existing("missing", seed_document())


class TestCandidates:
    @pytest.mark.asyncio
    async def test_suggested_first(self, asgi_ctx):
        other = await _contract(asgi_ctx, counterpartyName="Globex LLC")
        acme = await _contract(asgi_ctx, counterpartyName="Acme Corp")
        resolver = DispositionResolver(asgi_ctx)

        candidates = await resolver.candidates(_analysis(suggested=acme))

        assert [c.id for c in candidates][0] == acme
        assert candidates[0].suggested is True
        assert {c.id for c in candidates} == {acme, other}
        assert sum(c.suggested for c in candidates) == 1

    @pytest.mark.asyncio
    async def test_suggested_fetched_when_filtered_out(self, asgi_ctx):
        acme = await _contract(asgi_ctx, counterpartyName="Acme Corp")
        await _contract(asgi_ctx, counterpartyName="Globex LLC")

        candidates = await DispositionResolver(asgi_ctx).candidates(_analysis(suggested=acme), search="globex")

        assert [c.label for c in candidates] == ["Acme Corp", "Globex LLC"]
        assert candidates[0].suggested

    @pytest.mark.asyncio
    async def test_stale_suggestion_ignored(self, asgi_ctx):
        await _contract(asgi_ctx, counterpartyName="Globex LLC")

        candidates = await DispositionResolver(asgi_ctx).candidates(_analysis(suggested="deleted-contract"))

        assert [c.label for c in candidates] == ["Globex LLC"]
        assert not any(c.suggested for c in candidates)


def test_candidate_label_falls_back():
    assert ContractCandidate(id="c-1", title="Lease", counterparty_name=None).label == "Lease"
    assert ContractCandidate(id="c-1", title=None, counterparty_name=None).label == "c-1"
