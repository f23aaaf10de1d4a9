"""Create-new vs attach-to-existing after a document has been analyzed."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from app.schemas.api import AnalysisResult, AttachmentIn, PrefillIn
from app.schemas.domain import AttachmentType
from client.context import ClientContext
from client.errors import NotFound, ServerError, ValidationError, from_validation

logger = logging.getLogger(__name__)

CONTRACTS_CACHE_KEY = "contracts"


@dataclass(frozen=True)
class ContractCandidate:
    id: str
    title: Optional[str]
    counterparty_name: Optional[str]
    suggested: bool = False

    @property
    def label(self) -> str:
        return self.counterparty_name or self.title or self.id


class DispositionResolver:
    def __init__(self, ctx: ClientContext):
        self._ctx = ctx

    async def create_from_analysis(
        self,
        analysis: AnalysisResult,
        document_id: Optional[str],
        overrides: Optional[dict[str, Any]] = None,
    ) -> str:
        """Store the extracted fields as a prefill and open the wizard on it.

        Raises:
            ValidationError: ``document_id`` is missing; no request is sent.
        """
        if not document_id:
            raise ValidationError("A document is required", field_errors={"document_id": "Document is required"})

        values: dict[str, Any] = {
            "document_id": document_id,
            "title": analysis.contract_title,
            "vendor": analysis.vendor,
            "doc_type": analysis.doc_type,
            "effective_date": analysis.effective_date,
            "termination_date": analysis.termination_date,
            "confidence": dict(analysis.confidence),
        }
        values.update(overrides or {})
        try:
            prefill = PrefillIn.model_validate(values)
        except PydanticValidationError as exc:
            raise from_validation(exc) from exc

        body = await self._ctx.request(
            "POST",
            "/api/contracts/prefill",
            json=prefill.model_dump(mode="json", by_alias=True),
        )
        prefill_id = (body.get("data") or {}).get("id")
        if not prefill_id:
            raise ServerError("Prefill response did not include an id")

        logger.info("Stored prefill %s for document %s", prefill_id, document_id)
        self._ctx.navigate(f"/contracts/new?prefillId={prefill_id}")
        return prefill_id

    async def get_prefill(self, prefill_id: str) -> dict[str, Any]:
        body = await self._ctx.request("GET", f"/api/contracts/prefill/{prefill_id}")
        return body.get("data") or {}

    async def attach_to_existing(
        self,
        contract_id: str,
        document_id: str,
        doc_type: AttachmentType = AttachmentType.MAIN,
        confidence: Optional[dict[str, float]] = None,
    ) -> str:
        """Link the document to an existing contract as a non-primary attachment.

        The notes record the confidence scores at attachment time.

        Raises:
            Conflict: The document is already attached to that contract.
            NotFound: The contract or the document does not exist.
        """
        notes = None
        if confidence:
            notes = f"AI analyzed document. Confidence: {self._ctx.confidence.describe(confidence)}"
        attachment = AttachmentIn(
            document_id=document_id,
            doc_type=doc_type,
            is_primary=False,
            notes=notes,
        )
        body = await self._ctx.request(
            "POST",
            f"/api/contracts/{contract_id}/documents",
            json=attachment.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        attachment_id = (body.get("data") or {}).get("id")
        if not attachment_id:
            raise ServerError("Attachment response did not include an id")

        self._ctx.cache.invalidate(CONTRACTS_CACHE_KEY)
        logger.info("Attached document %s to contract %s", document_id, contract_id)
        return attachment_id

    async def candidates(self, analysis: AnalysisResult, search: Optional[str] = None) -> list[ContractCandidate]:
        """Existing contracts to pick from, the suggested one first and flagged."""
        params: dict[str, Any] = {"pageSize": 100}
        if search:
            params["search"] = search
        body = await self._ctx.request("GET", "/api/contracts", params=params)
        items = (body.get("data") or {}).get("items", [])

        suggested_id = analysis.suggested_contract_id
        candidates = [
            ContractCandidate(
                id=item["id"],
                title=item.get("title"),
                counterparty_name=item.get("counterpartyName"),
                suggested=item["id"] == suggested_id,
            )
            for item in items
        ]

        if suggested_id and not any(c.suggested for c in candidates):
            try:
                found = await self._ctx.request("GET", f"/api/contracts/{suggested_id}")
            except NotFound:
                logger.info("Suggested contract %s no longer exists", suggested_id)
            else:
                item = found.get("data") or {}
                candidates.append(
                    ContractCandidate(
                        id=suggested_id,
                        title=item.get("title"),
                        counterparty_name=item.get("counterpartyName"),
                        suggested=True,
                    )
                )

        candidates.sort(key=lambda c: not c.suggested)
        return candidates
