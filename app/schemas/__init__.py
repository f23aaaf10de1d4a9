"""Domain and API schemas for contract intake."""

from app.schemas.domain import (
    AnalysisExtraction,
    AnalysisStatus,
    AttachmentType,
    ContractStatus,
    ContractType,
    FieldConfidence,
    ObligationStatus,
    ObligationType,
    Recurrence,
    normalize_contract_type,
)

__all__ = [
    "AnalysisExtraction",
    "AnalysisStatus",
    "AttachmentType",
    "ContractStatus",
    "ContractType",
    "FieldConfidence",
    "ObligationStatus",
    "ObligationType",
    "Recurrence",
    "normalize_contract_type",
]
