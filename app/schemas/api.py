"""Request/response models for the REST surface.

All payloads use camelCase on the wire; Python code uses snake_case.
"""

import re
from datetime import date, datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.schemas.domain import (
    AnalysisStatus,
    AttachmentType,
    ContractStatus,
    ContractType,
    ObligationStatus,
    ObligationType,
    Recurrence,
)

T = TypeVar("T")

_EMAIL_RE = re.compile(r"^\S+@\S+\.\S+$")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Envelope(CamelModel, Generic[T]):
    """Standard success envelope: ``{success, message, data}``."""

    success: bool = True
    message: Optional[str] = None
    data: T


# --------
# Documents
# --------
class DocumentOut(CamelModel):
    id: str
    title: str
    document_type: Optional[str] = None
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    is_confidential: bool = False
    filename: str
    content_type: str
    file_size: int
    tenant_id: Optional[str] = None
    uploaded_by: Optional[str] = None
    created_at: Optional[datetime] = None


# --------
# Analysis
# --------
class AnalysisResult(CamelModel):
    """Analysis record as exposed to pollers.

    Field data is only meaningful once COMPLETED; ``error`` only once FAILED.
    """

    id: str
    document_id: str
    status: AnalysisStatus
    vendor: Optional[str] = None
    contract_title: Optional[str] = None
    doc_type: Optional[str] = None
    effective_date: Optional[date] = None
    termination_date: Optional[date] = None
    confidence: dict[str, float] = Field(default_factory=dict)
    suggested_contract_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_record(cls, record: Any) -> "AnalysisResult":
        status = AnalysisStatus(record.status)
        base = cls(id=record.id, document_id=record.document_id, status=status)
        if status == AnalysisStatus.COMPLETED:
            return base.model_copy(
                update={
                    "vendor": record.vendor,
                    "contract_title": record.contract_title,
                    "doc_type": record.doc_type,
                    "effective_date": record.effective_date,
                    "termination_date": record.termination_date,
                    "confidence": {to_camel(k): v for k, v in (record.confidence or {}).items()},
                    "suggested_contract_id": record.suggested_contract_id,
                }
            )
        if status == AnalysisStatus.FAILED:
            return base.model_copy(update={"error": record.error or "Analysis failed"})
        return base


class AnalyzeResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    analysis: AnalysisResult
    status: AnalysisStatus


# --------
# Prefill
# --------
class PrefillIn(CamelModel):
    document_id: str = Field(min_length=1)
    title: Optional[str] = None
    vendor: Optional[str] = None
    doc_type: Optional[str] = None
    effective_date: Optional[date] = None
    termination_date: Optional[date] = None
    confidence: dict[str, float] = Field(default_factory=dict)


class PrefillOut(PrefillIn):
    id: str


class CreatedRef(CamelModel):
    id: str


# -----------
# Obligations
# -----------
class ObligationIn(CamelModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    obligation_type: ObligationType = ObligationType.OTHER
    responsible_party: Optional[str] = None
    due_date: Optional[date] = None
    recurrence: Optional[Recurrence] = None
    status: ObligationStatus = ObligationStatus.PENDING
    reminder_days: list[int] = Field(default_factory=list)

    @field_validator("reminder_days")
    @classmethod
    def _non_negative(cls, value: list[int]) -> list[int]:
        if any(day < 0 for day in value):
            raise ValueError("Reminder days must be zero or positive")
        return value


class ObligationOut(ObligationIn):
    id: str
    contract_id: str
    created_at: Optional[datetime] = None


# ---------
# Contracts
# ---------
class ContractFields(CamelModel):
    contract_status: Optional[ContractStatus] = None
    contract_number: Optional[str] = Field(default=None, max_length=100)
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    counterparty_name: Optional[str] = Field(default=None, max_length=255)
    counterparty_address: Optional[str] = None
    counterparty_contact_email: Optional[str] = None
    effective_date: Optional[date] = None
    expiry_date: Optional[date] = None
    execution_date: Optional[date] = None
    renewal_date: Optional[date] = None
    total_value: Optional[str] = Field(default=None, max_length=100)
    currency: Optional[str] = Field(default=None, max_length=20)
    custom_metadata: Optional[dict[str, Any]] = None

    @field_validator("counterparty_contact_email")
    @classmethod
    def _email(cls, value: Optional[str]) -> Optional[str]:
        if value in (None, ""):
            return None
        if not _EMAIL_RE.match(value):
            raise ValueError("Invalid email address")
        return value


class ContractCreate(ContractFields):
    contract_type: ContractType
    contract_status: ContractStatus = ContractStatus.DRAFT
    document_id: Optional[str] = None


class ContractUpdate(ContractFields):
    contract_type: Optional[ContractType] = None
    # When present, replaces the contract's obligation set
    obligations: Optional[list[ObligationIn]] = None


class ContractOut(ContractFields):
    id: str
    tenant_id: str
    contract_type: ContractType
    contract_status: ContractStatus
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    obligations: list[ObligationOut] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ContractTypeOption(CamelModel):
    id: ContractType
    name: str


# -----------
# Attachments
# -----------
class AttachmentIn(CamelModel):
    document_id: str = Field(min_length=1)
    doc_type: AttachmentType = AttachmentType.MAIN
    is_primary: bool = False
    notes: Optional[str] = None
    effective_date: Optional[date] = None


class AttachmentOut(AttachmentIn):
    id: str
    contract_id: str
    created_at: Optional[datetime] = None
    document: Optional[DocumentOut] = None


class ListPage(CamelModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    page_size: int
