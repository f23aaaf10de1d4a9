from __future__ import annotations

"""SQLAlchemy models for documents, analyses, prefills and contracts (typed, portable)."""

from datetime import date, datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.session import Base
from app.schemas.domain import (
    AnalysisStatus,
    AttachmentType,
    ContractStatus,
    ContractType,
    ObligationStatus,
    ObligationType,
    Recurrence,
)


def _uuid() -> str:
    return str(uuid4())


class Document(Base):
    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    document_type: Mapped[Optional[str]] = mapped_column(String(50))
    description: Mapped[Optional[str]] = mapped_column(Text)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_confidential: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    bucket: Mapped[str] = mapped_column(String(63), nullable=False, default="documents")
    object_key: Mapped[str] = mapped_column(String(512), nullable=False)  # "<tenant>/<uuid>/<filename>"

    uploaded_by: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    analyses: Mapped[list["ContractAnalysis"]] = relationship(
        "ContractAnalysis",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="ContractAnalysis.created_at",
    )


class ContractAnalysis(Base):
    """One AI/rule-based extraction run over a document."""

    __tablename__ = "contract_upload_analysis"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    document_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    tenant_id: Mapped[str] = mapped_column(String(36), nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(36))

    status: Mapped[AnalysisStatus] = mapped_column(
        SAEnum(AnalysisStatus), nullable=False, default=AnalysisStatus.PENDING
    )
    error: Mapped[Optional[str]] = mapped_column(Text)
    analyzer: Mapped[Optional[str]] = mapped_column(String(20))  # "ai" | "rules"

    vendor: Mapped[Optional[str]] = mapped_column(String(255))
    contract_title: Mapped[Optional[str]] = mapped_column(String(255))
    doc_type: Mapped[Optional[str]] = mapped_column(String(50))
    effective_date: Mapped[Optional[date]] = mapped_column(Date)
    termination_date: Mapped[Optional[date]] = mapped_column(Date)
    confidence: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    suggested_contract_id: Mapped[Optional[str]] = mapped_column(String(36))
    raw_analysis: Mapped[Optional[dict]] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    document: Mapped["Document"] = relationship("Document", back_populates="analyses")

    __table_args__ = (
        Index("idx_analysis_document_created", "document_id", "created_at"),
    )


class ContractPrefill(Base):
    __tablename__ = "contract_prefills"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    document_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    tenant_id: Mapped[str] = mapped_column(String(36), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(255))
    vendor: Mapped[Optional[str]] = mapped_column(String(255))
    doc_type: Mapped[Optional[str]] = mapped_column(String(50))
    effective_date: Mapped[Optional[date]] = mapped_column(Date)
    termination_date: Mapped[Optional[date]] = mapped_column(Date)
    confidence: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class Contract(Base):
    __tablename__ = "contracts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(36), nullable=False)

    contract_type: Mapped[ContractType] = mapped_column(SAEnum(ContractType), nullable=False)
    contract_status: Mapped[ContractStatus] = mapped_column(
        SAEnum(ContractStatus), nullable=False, default=ContractStatus.DRAFT
    )
    contract_number: Mapped[Optional[str]] = mapped_column(String(100))
    title: Mapped[Optional[str]] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text)

    counterparty_name: Mapped[Optional[str]] = mapped_column(String(255))
    counterparty_address: Mapped[Optional[str]] = mapped_column(Text)
    counterparty_contact_email: Mapped[Optional[str]] = mapped_column(String(255))

    effective_date: Mapped[Optional[date]] = mapped_column(Date)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date)
    execution_date: Mapped[Optional[date]] = mapped_column(Date)
    renewal_date: Mapped[Optional[date]] = mapped_column(Date)

    total_value: Mapped[Optional[str]] = mapped_column(String(100))
    currency: Mapped[Optional[str]] = mapped_column(String(20))
    custom_metadata: Mapped[Optional[dict]] = mapped_column(JSON)

    created_by: Mapped[Optional[str]] = mapped_column(String(36))
    updated_by: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    obligations: Mapped[list["ContractObligation"]] = relationship(
        "ContractObligation",
        back_populates="contract",
        cascade="all, delete-orphan",
        order_by="ContractObligation.created_at",
    )
    attachments: Mapped[list["ContractDocument"]] = relationship(
        "ContractDocument",
        back_populates="contract",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_contract_tenant_updated", "tenant_id", "updated_at"),
        Index("idx_contract_status", "contract_status"),
    )


class ContractObligation(Base):
    __tablename__ = "contract_obligations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    contract_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False
    )
    tenant_id: Mapped[str] = mapped_column(String(36), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    obligation_type: Mapped[ObligationType] = mapped_column(SAEnum(ObligationType), nullable=False)
    responsible_party: Mapped[Optional[str]] = mapped_column(String(255))
    due_date: Mapped[Optional[date]] = mapped_column(Date)
    recurrence: Mapped[Optional[Recurrence]] = mapped_column(SAEnum(Recurrence))
    status: Mapped[ObligationStatus] = mapped_column(
        SAEnum(ObligationStatus), nullable=False, default=ObligationStatus.PENDING
    )
    reminder_days: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    created_by: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    contract: Mapped["Contract"] = relationship("Contract", back_populates="obligations")

    __table_args__ = (
        Index("idx_obligation_contract_due", "contract_id", "due_date"),
    )


class ContractDocument(Base):
    """Link between a contract and a document it references."""

    __tablename__ = "contract_documents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    contract_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False
    )
    document_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("documents.id", ondelete="RESTRICT"), nullable=False
    )
    tenant_id: Mapped[str] = mapped_column(String(36), nullable=False)
    doc_type: Mapped[AttachmentType] = mapped_column(
        SAEnum(AttachmentType), nullable=False, default=AttachmentType.MAIN
    )
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    effective_date: Mapped[Optional[date]] = mapped_column(Date)
    added_by: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    contract: Mapped["Contract"] = relationship("Contract", back_populates="attachments")
    document: Mapped["Document"] = relationship("Document")

    __table_args__ = (
        UniqueConstraint("contract_id", "document_id", name="uq_contract_document"),
    )
