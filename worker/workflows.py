"""Temporal workflow for contract analysis.

parse_document -> analyze_contract -> store_analysis, with fail_analysis
recording the error when any step gives up.
"""

from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError

with workflow.unsafe.imports_passed_through():
    from worker.activities import (
        analyze_contract,
        fail_analysis,
        parse_document,
        store_analysis,
    )


def _failure_message(err: ActivityError) -> str:
    cause = err.cause
    message = getattr(cause, "message", None) or str(cause or err)
    return message or "Analysis failed"


@workflow.defn
class ContractAnalysisWorkflow:
    """Runs one analysis record from PENDING to COMPLETED or FAILED.

    The API creates the record and starts this workflow with id
    ``analysis-<analysis_id>``, so a record never has two runs at once.
    """

    @workflow.run
    async def run(self, analysis_id: str) -> dict:
        workflow.logger.info(f"Starting contract analysis {analysis_id}")

        try:
            # Unsupported, oversized or scanned documents will never parse
            parsed = await workflow.execute_activity(
                parse_document,
                analysis_id,
                start_to_close_timeout=timedelta(minutes=5),
                retry_policy=RetryPolicy(
                    maximum_attempts=2,
                    non_retryable_error_types=["DocumentTextError"],
                ),
            )

            # The OpenAI adapter retries internally; keep activity retries light
            outcome = await workflow.execute_activity(
                analyze_contract,
                args=[analysis_id, parsed],
                start_to_close_timeout=timedelta(minutes=3),
                retry_policy=RetryPolicy(
                    maximum_attempts=2,
                    initial_interval=timedelta(seconds=2),
                    backoff_coefficient=2.0,
                    maximum_interval=timedelta(seconds=30),
                ),
            )

            stored = await workflow.execute_activity(
                store_analysis,
                args=[analysis_id, outcome],
                start_to_close_timeout=timedelta(minutes=1),
                retry_policy=RetryPolicy(maximum_attempts=3),
            )
        except ActivityError as err:
            message = _failure_message(err)
            workflow.logger.warning(f"Analysis {analysis_id} failed: {message}")
            await workflow.execute_activity(
                fail_analysis,
                args=[analysis_id, message],
                start_to_close_timeout=timedelta(minutes=1),
                retry_policy=RetryPolicy(maximum_attempts=5),
            )
            return {"status": "failed", "analysis_id": analysis_id, "error": message}

        workflow.logger.info(f"Contract analysis {analysis_id} completed")
        return {
            "status": "completed",
            "analysis_id": analysis_id,
            "analyzer": outcome["analyzer"],
            "suggested_contract_id": stored.get("suggested_contract_id"),
        }


__all__ = ["ContractAnalysisWorkflow"]
