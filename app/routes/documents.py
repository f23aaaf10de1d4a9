"""Document upload and metadata endpoints."""

import json
import logging
from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import (
    NotFoundError,
    PayloadTooLargeError,
    RequestValidationFailed,
    ServiceUnavailableError,
)
from app.db.models import Document
from app.db.session import get_db
from app.deps import RequestContext, get_request_context, get_storage
from app.schemas.api import DocumentOut, Envelope, ListPage
from app.storage import StorageError, document_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["documents"])


def parse_tags(raw: Optional[str]) -> list[str]:
    """Accept a JSON list or a comma-delimited string; drop blanks."""
    if not raw or not raw.strip():
        return []
    text = raw.strip()
    if text.startswith("["):
        try:
            values = json.loads(text)
        except json.JSONDecodeError:
            raise RequestValidationFailed(
                "Invalid tags", field_errors={"tags": "Tags must be a list of strings"}
            )
        if not isinstance(values, list):
            raise RequestValidationFailed(
                "Invalid tags", field_errors={"tags": "Tags must be a list of strings"}
            )
        items = [str(v) for v in values]
    else:
        items = text.split(",")
    return [t.strip() for t in items if t.strip()]


@router.post("", response_model=Envelope[DocumentOut], status_code=201)
async def upload_document(
    file: UploadFile = File(...),
    title: str = Form(..., min_length=1, max_length=255),
    document_type: Optional[str] = Form(None, alias="documentType"),
    description: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    is_confidential: bool = Form(False, alias="isConfidential"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
    storage=Depends(get_storage),
):
    """Store an uploaded file and its metadata."""
    content = await file.read()
    if not content:
        raise RequestValidationFailed("Uploaded file is empty", field_errors={"file": "File is empty"})

    max_bytes = settings.MAX_FILE_SIZE_MB * 1024 * 1024
    if len(content) > max_bytes:
        raise PayloadTooLargeError(
            f"File exceeds {settings.MAX_FILE_SIZE_MB}MB limit",
            field_errors={"file": f"File exceeds {settings.MAX_FILE_SIZE_MB}MB limit"},
        )

    tag_list = parse_tags(tags)
    document_id = str(uuid4())
    filename = file.filename or "document"
    content_type = file.content_type or "application/octet-stream"
    object_key = document_key(ctx.tenant_id, document_id, filename)

    try:
        await run_in_threadpool(
            storage.put_bytes,
            settings.S3_BUCKET_DOCUMENTS,
            object_key,
            content,
            content_type=content_type,
        )
    except StorageError as e:
        logger.error("Storing document %s failed: %s", document_id, e)
        raise ServiceUnavailableError("Document storage unavailable")

    doc = Document(
        id=document_id,
        tenant_id=ctx.tenant_id,
        title=title.strip(),
        document_type=document_type,
        description=description,
        tags=tag_list,
        is_confidential=is_confidential,
        filename=filename,
        content_type=content_type,
        file_size=len(content),
        bucket=settings.S3_BUCKET_DOCUMENTS,
        object_key=object_key,
        uploaded_by=ctx.user_id,
    )
    db.add(doc)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        # The row never landed; don't leave an orphaned object behind
        await run_in_threadpool(storage.remove, settings.S3_BUCKET_DOCUMENTS, object_key)
        raise
    await db.refresh(doc)

    logger.info("Stored document %s (%d bytes) for tenant %s", document_id, len(content), ctx.tenant_id)
    return Envelope(message="Document uploaded", data=DocumentOut.model_validate(doc))


@router.get("", response_model=Envelope[ListPage[DocumentOut]])
async def list_documents(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """List the tenant's documents, newest first."""
    count_result = await db.execute(
        select(func.count(Document.id)).where(Document.tenant_id == ctx.tenant_id)
    )
    total = count_result.scalar() or 0

    result = await db.execute(
        select(Document)
        .where(Document.tenant_id == ctx.tenant_id)
        .order_by(Document.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    items = [DocumentOut.model_validate(d) for d in result.scalars().all()]
    return Envelope(data=ListPage(items=items, total=total, page=page, page_size=page_size))


@router.get("/{document_id}", response_model=Envelope[DocumentOut])
async def get_document(
    document_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Document).where(Document.id == document_id, Document.tenant_id == ctx.tenant_id)
    )
    doc = result.scalar_one_or_none()
    if doc is None:
        raise NotFoundError("Document not found")
    return Envelope(data=DocumentOut.model_validate(doc))
