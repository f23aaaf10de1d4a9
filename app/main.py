"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from temporalio.client import Client as TemporalClient

from app.core.config import settings
from app.core.errors import install_error_handlers
from app.core.logging import setup_logging
from app.db import init_db
from app.routes import analysis_router, contracts_router, documents_router, health_router
from app.storage.factory import build_minio_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize resources on startup."""
    setup_logging()

    await init_db()

    if settings.S3_ENDPOINT and settings.S3_ACCESS_KEY and settings.S3_SECRET_KEY:
        app.state.minio = build_minio_client(settings)
    else:
        app.state.minio = None

    # The API stays up without Temporal; analysis requests answer 503
    try:
        app.state.temporal = await TemporalClient.connect(
            settings.TEMPORAL_ADDRESS,
            namespace=settings.TEMPORAL_NAMESPACE,
        )
        logger.info("Connected to Temporal at %s", settings.TEMPORAL_ADDRESS)
    except Exception as e:
        logger.warning("Failed to connect to Temporal: %s", e)
        app.state.temporal = None

    yield


def create_app() -> FastAPI:
    application = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    install_error_handlers(application)

    application.include_router(health_router)
    application.include_router(documents_router)
    if settings.CONTRACTS_ENABLED:
        application.include_router(analysis_router)
        application.include_router(contracts_router)
    else:
        logger.info("Contract module disabled (CONTRACTS_ENABLED=false)")
    return application


app = create_app()
