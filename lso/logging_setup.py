"""Console logging for the orchestrator process."""
from __future__ import annotations

import logging
import sys

from .settings import settings


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once: one stdout handler, timestamped lines."""
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")

    root_logger = logging.getLogger()
    root_logger.setLevel((level or settings.log_level).upper())

    if not any(isinstance(h, logging.StreamHandler) for h in root_logger.handlers):
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(formatter)
        root_logger.addHandler(console)

    # Per-request noise from the health probe.
    logging.getLogger("httpx").setLevel(logging.WARNING)
