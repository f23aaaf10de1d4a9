"""Liveness and readiness probes."""

import logging

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.core.config import settings
from app.db.session import AsyncSessionLocal

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check():
    return {"status": "ok", "service": settings.APP_NAME}


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Report database, document storage and Temporal reachability."""
    checks: dict[str, str] = {}

    try:
        async with AsyncSessionLocal() as db:
            await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.warning("Readiness: database check failed: %s", e)
        checks["database"] = f"error: {e}"

    minio = getattr(request.app.state, "minio", None)
    if minio is None:
        checks["storage"] = "not configured"
    else:
        try:
            exists = await run_in_threadpool(minio.bucket_exists, settings.S3_BUCKET_DOCUMENTS)
            checks["storage"] = "ok" if exists else f"missing bucket {settings.S3_BUCKET_DOCUMENTS}"
        except Exception as e:
            logger.warning("Readiness: storage check failed: %s", e)
            checks["storage"] = f"error: {e}"

    if getattr(request.app.state, "temporal", None) is not None:
        checks["temporal"] = "ok"
    else:
        checks["temporal"] = "not connected"

    all_ok = all(value == "ok" for value in checks.values())
    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={"status": "ok" if all_ok else "degraded", "checks": checks},
    )
