"""Worker configuration.

Environment-based configuration for the Temporal worker.
"""
import os


class WorkerSettings:
    """Worker configuration from environment variables."""

    def __init__(self):
        self.TEMPORAL_ADDRESS = os.getenv("TEMPORAL_ADDRESS", "temporal:7233")
        self.TEMPORAL_NAMESPACE = os.getenv("TEMPORAL_NAMESPACE", "default")
        self.WORKER_TASK_QUEUE = os.getenv("WORKER_TASK_QUEUE", "analysis-queue")
        self.ACTIVITY_THREADS = int(os.getenv("WORKER_ACTIVITY_THREADS", "4"))

    def __repr__(self):
        return (
            f"WorkerSettings(temporal={self.TEMPORAL_ADDRESS}, "
            f"queue={self.WORKER_TASK_QUEUE}, "
            f"namespace={self.TEMPORAL_NAMESPACE})"
        )
