"""Contract analysis endpoints: start a run and poll its status."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import NotFoundError, ServiceUnavailableError
from app.db.models import ContractAnalysis, Document
from app.db.session import get_db
from app.deps import RequestContext, get_request_context
from app.schemas.api import AnalysisResult, AnalyzeResponse, Envelope
from app.schemas.domain import AnalysisStatus
from worker.workflows import ContractAnalysisWorkflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contracts/upload", tags=["analysis"])


@router.post("/analyze/{document_id}", response_model=AnalyzeResponse, status_code=202)
async def analyze_document(
    document_id: str,
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """Create a PENDING analysis record and hand it to the worker."""
    result = await db.execute(
        select(Document).where(Document.id == document_id, Document.tenant_id == ctx.tenant_id)
    )
    if result.scalar_one_or_none() is None:
        raise NotFoundError("Document not found")

    temporal = getattr(request.app.state, "temporal", None)
    if temporal is None:
        raise ServiceUnavailableError("Analysis service unavailable")

    analysis = ContractAnalysis(
        document_id=document_id,
        tenant_id=ctx.tenant_id,
        user_id=ctx.user_id,
        status=AnalysisStatus.PENDING,
    )
    db.add(analysis)
    await db.commit()
    await db.refresh(analysis)

    try:
        await temporal.start_workflow(
            ContractAnalysisWorkflow.run,
            analysis.id,
            id=f"analysis-{analysis.id}",
            task_queue=settings.WORKER_TASK_QUEUE,
        )
    except Exception as e:
        logger.error("Could not start analysis workflow for %s: %s", analysis.id, e)
        analysis.status = AnalysisStatus.FAILED
        analysis.error = "Analysis could not be started"
        await db.commit()
        raise ServiceUnavailableError("Analysis service unavailable")

    logger.info("Started analysis %s for document %s", analysis.id, document_id)
    return AnalyzeResponse(
        message="Analysis started",
        analysis=AnalysisResult.from_record(analysis),
        status=analysis.status,
    )


@router.get("/analysis/{analysis_id}", response_model=Envelope[AnalysisResult])
async def get_analysis(
    analysis_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """Current state of an analysis; fields only once COMPLETED."""
    result = await db.execute(
        select(ContractAnalysis).where(
            ContractAnalysis.id == analysis_id,
            ContractAnalysis.tenant_id == ctx.tenant_id,
        )
    )
    analysis = result.scalar_one_or_none()
    if analysis is None:
        raise NotFoundError("Analysis not found")
    return Envelope(data=AnalysisResult.from_record(analysis))
