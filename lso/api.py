"""HTTP control surface for the UI layer.

Mirrors the desktop app's IPC handlers: every action answers with a
`{success, status, error}` envelope instead of an HTTP error, so the UI can
render `status.message` / `status.last_error` the same way in all cases.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI, Query

from .api_models import ActionResponse, DataDirResponse, EventModel, ServiceStatusModel, UrlResponse
from .db import EventLog
from .errors import OrchestratorError
from .orchestrator import ServiceOrchestrator
from .runtime import StatusSnapshot

logger = logging.getLogger(__name__)


def _action(orchestrator: ServiceOrchestrator, op: Callable[[], StatusSnapshot]) -> ActionResponse:
    try:
        snap = op()
    except OrchestratorError as e:
        logger.warning("Service action failed (%s): %s", e.kind, e.message)
        return ActionResponse(
            success=False,
            status=ServiceStatusModel.from_snapshot(orchestrator.get_status()),
            error=str(e),
            error_kind=e.kind,
            hint=e.hint or None,
        )
    return ActionResponse(success=True, status=ServiceStatusModel.from_snapshot(snap))


def create_app(
    orchestrator: ServiceOrchestrator, events: EventLog | None = None, autostart: bool = False
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if autostart:
            # Kick off the pipeline without holding up server startup.
            orchestrator.ensure_running_async()
        yield

    app = FastAPI(title="Local Service Orchestrator", lifespan=lifespan)

    @app.post("/service/start", response_model=ActionResponse)
    def start_service(wait: bool = Query(True, description="Block until ready or failed")) -> ActionResponse:
        if not wait:
            orchestrator.ensure_running_async()
            return ActionResponse(success=True, status=ServiceStatusModel.from_snapshot(orchestrator.get_status()))
        return _action(orchestrator, orchestrator.ensure_running)

    @app.get("/service/status", response_model=ActionResponse)
    def get_status() -> ActionResponse:
        return ActionResponse(success=True, status=ServiceStatusModel.from_snapshot(orchestrator.get_status()))

    @app.post("/service/stop", response_model=ActionResponse)
    def stop_service() -> ActionResponse:
        return _action(orchestrator, orchestrator.stop)

    @app.post("/service/restart", response_model=ActionResponse)
    def restart_service() -> ActionResponse:
        return _action(orchestrator, orchestrator.restart)

    @app.get("/service/url", response_model=UrlResponse)
    def get_url() -> UrlResponse:
        return UrlResponse(url=orchestrator.get_base_url())

    @app.get("/service/data-dir", response_model=DataDirResponse)
    def get_data_dir() -> DataDirResponse:
        return DataDirResponse(data_dir=orchestrator.get_data_dir())

    @app.get("/events", response_model=list[EventModel])
    def list_events(limit: int = Query(50, ge=1, le=1000)) -> list[EventModel]:
        if events is None:
            return []
        return [EventModel(**row) for row in events.latest_events(limit)]

    return app
