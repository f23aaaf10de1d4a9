"""Domain enums and extraction models for contract intake."""

import enum
from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class AnalysisStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (AnalysisStatus.COMPLETED, AnalysisStatus.FAILED)


class ContractStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    UNDER_REVIEW = "UNDER_REVIEW"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    TERMINATED = "TERMINATED"
    RENEWED = "RENEWED"


class ContractType(str, enum.Enum):
    MSA = "MSA"
    SOW = "SOW"
    NDA = "NDA"
    SLA = "SLA"
    SERVICE_AGREEMENT = "SERVICE_AGREEMENT"
    SUBSCRIPTION_AGREEMENT = "SUBSCRIPTION_AGREEMENT"
    LPA = "LPA"
    SIDE_LETTER = "SIDE_LETTER"
    AMENDMENT = "AMENDMENT"
    PURCHASE_ORDER = "PURCHASE_ORDER"
    LEASE = "LEASE"
    LICENSE = "LICENSE"
    CONSULTING = "CONSULTING"
    EMPLOYMENT = "EMPLOYMENT"
    OTHER = "OTHER"


CONTRACT_TYPE_LABELS: dict[ContractType, str] = {
    ContractType.MSA: "Master Services Agreement",
    ContractType.SOW: "Statement of Work",
    ContractType.NDA: "Non-Disclosure Agreement",
    ContractType.SLA: "Service Level Agreement",
    ContractType.SERVICE_AGREEMENT: "Service Agreement",
    ContractType.SUBSCRIPTION_AGREEMENT: "Subscription Agreement",
    ContractType.LPA: "Limited Partnership Agreement",
    ContractType.SIDE_LETTER: "Side Letter",
    ContractType.AMENDMENT: "Amendment",
    ContractType.PURCHASE_ORDER: "Purchase Order",
    ContractType.LEASE: "Lease Agreement",
    ContractType.LICENSE: "License Agreement",
    ContractType.CONSULTING: "Consulting Agreement",
    ContractType.EMPLOYMENT: "Employment Contract",
    ContractType.OTHER: "Other",
}

# Free-form labels produced by the analyzers
_CONTRACT_TYPE_ALIASES: dict[str, ContractType] = {
    "SERVICE": ContractType.SERVICE_AGREEMENT,
    "SERVICES": ContractType.SERVICE_AGREEMENT,
    "MASTER_SERVICES_AGREEMENT": ContractType.MSA,
    "STATEMENT_OF_WORK": ContractType.SOW,
    "NON_DISCLOSURE_AGREEMENT": ContractType.NDA,
    "CONFIDENTIALITY_AGREEMENT": ContractType.NDA,
    "SERVICE_LEVEL_AGREEMENT": ContractType.SLA,
    "SUBSCRIPTION": ContractType.SUBSCRIPTION_AGREEMENT,
    "PO": ContractType.PURCHASE_ORDER,
    "LICENCE": ContractType.LICENSE,
    "EMPLOYMENT_CONTRACT": ContractType.EMPLOYMENT,
    "EMPLOYMENT_AGREEMENT": ContractType.EMPLOYMENT,
}


def normalize_contract_type(raw: Optional[str]) -> ContractType:
    """Map an analyzer's doc type label onto ContractType (unknown -> OTHER)."""
    if not raw:
        return ContractType.OTHER
    key = raw.strip().upper().replace("-", "_").replace(" ", "_")
    try:
        return ContractType(key)
    except ValueError:
        return _CONTRACT_TYPE_ALIASES.get(key, ContractType.OTHER)


class ObligationType(str, enum.Enum):
    REPORTING = "REPORTING"
    PAYMENT = "PAYMENT"
    DISCLOSURE = "DISCLOSURE"
    COMPLIANCE = "COMPLIANCE"
    OPERATIONAL = "OPERATIONAL"
    OTHER = "OTHER"


class ObligationStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class Recurrence(str, enum.Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    SEMI_ANNUALLY = "SEMI_ANNUALLY"
    ANNUALLY = "ANNUALLY"


class AttachmentType(str, enum.Enum):
    MAIN = "MAIN"
    AMENDMENT = "AMENDMENT"
    SIDE_LETTER = "SIDE_LETTER"
    EXHIBIT = "EXHIBIT"
    TERMINATION = "TERMINATION"
    RENEWAL = "RENEWAL"
    OTHER = "OTHER"


class FieldConfidence(BaseModel):
    """Per-field extraction confidence in [0, 1]."""

    vendor: float = Field(default=0.1, ge=0.0, le=1.0)
    contract_title: float = Field(default=0.1, ge=0.0, le=1.0)
    doc_type: float = Field(default=0.1, ge=0.0, le=1.0)
    effective_date: float = Field(default=0.1, ge=0.0, le=1.0)
    termination_date: float = Field(default=0.1, ge=0.0, le=1.0)


class AnalysisExtraction(BaseModel):
    """Structured fields pulled out of a contract document."""

    vendor: Optional[str] = None
    contract_title: Optional[str] = None
    doc_type: Optional[str] = None
    effective_date: Optional[str] = None  # ISO format YYYY-MM-DD
    termination_date: Optional[str] = None
    confidence: FieldConfidence = Field(default_factory=FieldConfidence)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Return a date for a strict YYYY-MM-DD string, otherwise None."""
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def date_order_warnings(effective: Optional[date], expiry: Optional[date]) -> list[str]:
    """Advisory data-quality checks; never blocks persistence."""
    if effective and expiry and expiry < effective:
        return ["expiryDate precedes effectiveDate"]
    return []
