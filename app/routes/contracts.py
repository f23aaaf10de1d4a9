"""Contract, obligation, attachment and prefill endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.errors import ConflictError, NotFoundError
from app.db.models import (
    Contract,
    ContractDocument,
    ContractObligation,
    ContractPrefill,
    Document,
)
from app.db.session import get_db
from app.deps import RequestContext, get_request_context
from app.schemas.api import (
    AttachmentIn,
    AttachmentOut,
    ContractCreate,
    ContractOut,
    ContractTypeOption,
    ContractUpdate,
    CreatedRef,
    Envelope,
    ListPage,
    ObligationIn,
    ObligationOut,
    PrefillIn,
    PrefillOut,
)
from app.schemas.domain import (
    CONTRACT_TYPE_LABELS,
    AttachmentType,
    ContractStatus,
    date_order_warnings,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contracts", tags=["contracts"])

DUPLICATE_ATTACHMENT = "Document is already attached to this contract"


# --------
# Helpers
# --------
async def _load_contract(db: AsyncSession, ctx: RequestContext, contract_id: str) -> Contract:
    result = await db.execute(
        select(Contract)
        .where(Contract.id == contract_id, Contract.tenant_id == ctx.tenant_id)
        .options(selectinload(Contract.obligations))
        .execution_options(populate_existing=True)
    )
    contract = result.scalar_one_or_none()
    if contract is None:
        raise NotFoundError("Contract not found")
    return contract


async def _load_document(db: AsyncSession, ctx: RequestContext, document_id: str) -> Document:
    result = await db.execute(
        select(Document).where(Document.id == document_id, Document.tenant_id == ctx.tenant_id)
    )
    document = result.scalar_one_or_none()
    if document is None:
        raise NotFoundError("Document not found")
    return document


def _contract_out(contract: Contract) -> ContractOut:
    out = ContractOut.model_validate(contract)
    out.warnings = date_order_warnings(contract.effective_date, contract.expiry_date)
    return out


def _new_obligation(contract: Contract, body: ObligationIn, ctx: RequestContext) -> ContractObligation:
    return ContractObligation(
        contract_id=contract.id,
        tenant_id=contract.tenant_id,
        created_by=ctx.user_id,
        **body.model_dump(),
    )


# ------------------------------
# Lookups and prefill snapshots
# ------------------------------
@router.get("/lookup/contract-types", response_model=Envelope[list[ContractTypeOption]])
async def list_contract_types():
    options = [ContractTypeOption(id=t, name=label) for t, label in CONTRACT_TYPE_LABELS.items()]
    return Envelope(data=options)


@router.post("/prefill", response_model=Envelope[CreatedRef], status_code=201)
async def create_prefill(
    body: PrefillIn,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """Stash extracted fields so the wizard can be seeded without re-analysis."""
    await _load_document(db, ctx, body.document_id)

    prefill = ContractPrefill(tenant_id=ctx.tenant_id, **body.model_dump())
    db.add(prefill)
    await db.commit()

    logger.info("Created prefill %s for document %s", prefill.id, body.document_id)
    return Envelope(message="Prefill stored", data=CreatedRef(id=prefill.id))


@router.get("/prefill/{prefill_id}", response_model=Envelope[PrefillOut])
async def get_prefill(
    prefill_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(ContractPrefill).where(
            ContractPrefill.id == prefill_id,
            ContractPrefill.tenant_id == ctx.tenant_id,
        )
    )
    prefill = result.scalar_one_or_none()
    if prefill is None:
        raise NotFoundError("Prefill not found")
    return Envelope(data=PrefillOut.model_validate(prefill))


# ---------
# Contracts
# ---------
@router.get("", response_model=Envelope[ListPage[ContractOut]])
async def list_contracts(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    status: Optional[ContractStatus] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """List the tenant's contracts, most recently updated first."""
    filters = [Contract.tenant_id == ctx.tenant_id]
    if status is not None:
        filters.append(Contract.contract_status == status)
    if search:
        pattern = f"%{search.strip()}%"
        filters.append(or_(Contract.title.ilike(pattern), Contract.counterparty_name.ilike(pattern)))

    count_result = await db.execute(select(func.count(Contract.id)).where(*filters))
    total = count_result.scalar() or 0

    result = await db.execute(
        select(Contract)
        .where(*filters)
        .options(selectinload(Contract.obligations))
        .order_by(Contract.updated_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    items = [_contract_out(c) for c in result.scalars().all()]
    return Envelope(data=ListPage(items=items, total=total, page=page, page_size=page_size))


@router.post("", response_model=Envelope[ContractOut], status_code=201)
async def create_contract(
    body: ContractCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """Create a contract; a ``documentId`` becomes its primary MAIN attachment."""
    document = None
    if body.document_id:
        document = await _load_document(db, ctx, body.document_id)

    contract = Contract(
        tenant_id=ctx.tenant_id,
        created_by=ctx.user_id,
        updated_by=ctx.user_id,
        **body.model_dump(exclude={"document_id"}),
    )
    db.add(contract)
    await db.flush()

    if document is not None:
        db.add(
            ContractDocument(
                contract_id=contract.id,
                document_id=document.id,
                tenant_id=ctx.tenant_id,
                doc_type=AttachmentType.MAIN,
                is_primary=True,
                added_by=ctx.user_id,
            )
        )
    await db.commit()

    logger.info("Created contract %s (%s)", contract.id, contract.contract_type.value)
    contract = await _load_contract(db, ctx, contract.id)
    return Envelope(message="Contract created", data=_contract_out(contract))


@router.get("/{contract_id}", response_model=Envelope[ContractOut])
async def get_contract(
    contract_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    contract = await _load_contract(db, ctx, contract_id)
    return Envelope(data=_contract_out(contract))


@router.patch("/{contract_id}", response_model=Envelope[ContractOut])
async def update_contract(
    contract_id: str,
    body: ContractUpdate,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """Partial update. ``obligations``, when sent, replaces the whole set."""
    contract = await _load_contract(db, ctx, contract_id)

    changes = body.model_dump(exclude_unset=True, exclude={"obligations"})
    for field, value in changes.items():
        # Required columns can't be cleared
        if field in ("contract_type", "contract_status") and value is None:
            continue
        setattr(contract, field, value)
    contract.updated_by = ctx.user_id

    if body.obligations is not None:
        contract.obligations.clear()
        await db.flush()
        for item in body.obligations:
            contract.obligations.append(_new_obligation(contract, item, ctx))

    await db.commit()

    logger.info("Updated contract %s (%d fields)", contract_id, len(changes))
    contract = await _load_contract(db, ctx, contract_id)
    return Envelope(message="Contract updated", data=_contract_out(contract))


# -----------
# Obligations
# -----------
@router.get("/{contract_id}/obligations", response_model=Envelope[list[ObligationOut]])
async def list_obligations(
    contract_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    contract = await _load_contract(db, ctx, contract_id)
    return Envelope(data=[ObligationOut.model_validate(o) for o in contract.obligations])


@router.post("/{contract_id}/obligations", response_model=Envelope[ObligationOut], status_code=201)
async def create_obligation(
    contract_id: str,
    body: ObligationIn,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    contract = await _load_contract(db, ctx, contract_id)
    obligation = _new_obligation(contract, body, ctx)
    db.add(obligation)
    await db.commit()
    await db.refresh(obligation)
    return Envelope(message="Obligation created", data=ObligationOut.model_validate(obligation))


# -----------
# Attachments
# -----------
async def _load_attachment(db: AsyncSession, contract_id: str, attachment_id: str) -> ContractDocument:
    result = await db.execute(
        select(ContractDocument)
        .where(ContractDocument.id == attachment_id, ContractDocument.contract_id == contract_id)
        .options(selectinload(ContractDocument.document))
    )
    attachment = result.scalar_one_or_none()
    if attachment is None:
        raise NotFoundError("Attachment not found")
    return attachment


@router.get("/{contract_id}/documents", response_model=Envelope[list[AttachmentOut]])
async def list_attachments(
    contract_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    await _load_contract(db, ctx, contract_id)
    result = await db.execute(
        select(ContractDocument)
        .where(ContractDocument.contract_id == contract_id)
        .options(selectinload(ContractDocument.document))
        .order_by(ContractDocument.is_primary.desc(), ContractDocument.created_at)
    )
    return Envelope(data=[AttachmentOut.model_validate(a) for a in result.scalars().all()])


@router.post("/{contract_id}/documents", response_model=Envelope[AttachmentOut], status_code=201)
async def attach_document(
    contract_id: str,
    body: AttachmentIn,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """Link a document to a contract; one link per (contract, document) pair."""
    await _load_contract(db, ctx, contract_id)
    await _load_document(db, ctx, body.document_id)

    existing = await db.execute(
        select(ContractDocument.id).where(
            ContractDocument.contract_id == contract_id,
            ContractDocument.document_id == body.document_id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise ConflictError(DUPLICATE_ATTACHMENT)

    if body.is_primary:
        await db.execute(
            update(ContractDocument)
            .where(ContractDocument.contract_id == contract_id)
            .values(is_primary=False)
        )

    attachment = ContractDocument(
        contract_id=contract_id,
        tenant_id=ctx.tenant_id,
        added_by=ctx.user_id,
        **body.model_dump(),
    )
    db.add(attachment)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent attach of the same pair
        await db.rollback()
        raise ConflictError(DUPLICATE_ATTACHMENT)

    logger.info("Attached document %s to contract %s", body.document_id, contract_id)
    attachment = await _load_attachment(db, contract_id, attachment.id)
    return Envelope(message="Document attached", data=AttachmentOut.model_validate(attachment))


@router.delete("/{contract_id}/documents/{attachment_id}", response_model=Envelope[CreatedRef])
async def detach_document(
    contract_id: str,
    attachment_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    await _load_contract(db, ctx, contract_id)
    attachment = await _load_attachment(db, contract_id, attachment_id)
    await db.delete(attachment)
    await db.commit()
    return Envelope(message="Document detached", data=CreatedRef(id=attachment_id))
