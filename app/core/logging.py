"""Logging configuration."""

import logging
import os


def setup_logging() -> None:
    """Configure application logging.

    Noisy third-party loggers are held at WARNING so request-level logs from
    the service stay readable.
    """
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    for name in ("httpx", "httpcore", "temporalio"):
        logging.getLogger(name).setLevel(logging.WARNING)
