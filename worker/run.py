"""Temporal worker entry point: polls the analysis queue."""
import asyncio
import logging
import signal
from concurrent.futures import ThreadPoolExecutor

from temporalio.client import Client
from temporalio.worker import Worker

from app.core.logging import setup_logging
from worker.activities import analyze_contract, fail_analysis, parse_document, store_analysis
from worker.config import WorkerSettings
from worker.workflows import ContractAnalysisWorkflow

logger = logging.getLogger("worker")


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:  # pragma: no cover - Windows
            signal.signal(sig, lambda *_: stop_event.set())


def build_worker(client: Client, settings: WorkerSettings, executor: ThreadPoolExecutor) -> Worker:
    return Worker(
        client,
        task_queue=settings.WORKER_TASK_QUEUE,
        workflows=[ContractAnalysisWorkflow],
        activities=[parse_document, analyze_contract, store_analysis, fail_analysis],
        activity_executor=executor,
    )


async def run_worker() -> None:
    settings = WorkerSettings()
    logger.info("Starting worker: %r", settings)

    client = await Client.connect(settings.TEMPORAL_ADDRESS, namespace=settings.TEMPORAL_NAMESPACE)
    activity_executor = ThreadPoolExecutor(max_workers=settings.ACTIVITY_THREADS)
    worker = build_worker(client, settings, activity_executor)

    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    logger.info("Worker running, polling %s", settings.WORKER_TASK_QUEUE)
    worker_task = asyncio.create_task(worker.run())

    await stop_event.wait()
    logger.info("Shutdown signal received, stopping worker...")

    worker_task.cancel()
    await asyncio.gather(worker_task, return_exceptions=True)
    activity_executor.shutdown(wait=True)
    logger.info("Worker stopped")


def main() -> None:
    setup_logging()
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
