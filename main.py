from __future__ import annotations

import uvicorn
from fastapi import FastAPI

from lso.api import create_app
from lso.db import EventLog
from lso.logging_setup import setup_logging
from lso.orchestrator import ServiceOrchestrator
from lso.settings import ServiceConfig, settings


def build_app() -> FastAPI:
    """One orchestrator per process, built from LSO_* environment variables."""
    setup_logging(settings.log_level)
    config = ServiceConfig.from_env()
    events = EventLog(settings.db_path) if settings.enable_journal else None
    orchestrator = ServiceOrchestrator(config, events=events)
    return create_app(orchestrator, events=events, autostart=settings.autostart)


if __name__ == "__main__":
    uvicorn.run(build_app(), host=settings.api_host, port=settings.api_port)
