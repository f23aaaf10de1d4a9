"""Submit uploaded documents for analysis and poll until a terminal state."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from app.schemas.api import AnalysisResult
from client.context import ClientContext
from client.errors import ServerError, Timeout

logger = logging.getLogger(__name__)


class AnalysisPoller:
    def __init__(self, ctx: ClientContext):
        self._ctx = ctx

    async def request_analysis(self, document_id: str) -> str:
        """Start analysis of a document and return the new analysis id.

        Raises:
            NotFound: The document does not exist for this tenant.
            ServerError: The analysis service could not be started.
        """
        body = await self._ctx.request("POST", f"/api/contracts/upload/analyze/{document_id}")
        analysis = body.get("analysis") or {}
        analysis_id = analysis.get("id")
        if not analysis_id:
            raise ServerError("Analysis response did not include an id")
        logger.info("Analysis %s requested for document %s", analysis_id, document_id)
        return analysis_id

    async def get_analysis_status(self, analysis_id: str) -> AnalysisResult:
        body = await self._ctx.request("GET", f"/api/contracts/upload/analysis/{analysis_id}")
        return AnalysisResult.model_validate(body.get("data") or {})

    async def wait_for_completion(
        self,
        analysis_id: str,
        interval: Optional[float] = None,
        max_wait: Optional[float] = None,
    ) -> AnalysisResult:
        """Poll on a fixed interval until COMPLETED or FAILED.

        Raises:
            Timeout: ``max_wait`` seconds elapsed without a terminal state.
        """
        interval = self._ctx.settings.poll_interval_s if interval is None else interval
        max_wait = self._ctx.settings.poll_max_wait_s if max_wait is None else max_wait

        loop = asyncio.get_running_loop()
        deadline = loop.time() + max_wait
        while True:
            result = await self.get_analysis_status(analysis_id)
            if result.status.is_terminal:
                logger.info("Analysis %s finished with status %s", analysis_id, result.status.value)
                return result
            if loop.time() + interval > deadline:
                raise Timeout("Analysis timed out")
            await asyncio.sleep(interval)

    async def analyze(self, document_id: str, **kwargs) -> AnalysisResult:
        analysis_id = await self.request_analysis(document_id)
        return await self.wait_for_completion(analysis_id, **kwargs)
