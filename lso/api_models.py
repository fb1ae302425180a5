from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from .runtime import StatusSnapshot


class ServiceStatusModel(BaseModel):
    is_running: bool
    phase: str = Field(..., description="idle|checking_runtime|...|ready|stopping|error")
    message: str = Field(..., description="Human-readable current step")
    url: str
    last_error: str | None = None
    last_health_check_at: datetime | None = None
    container_name: str
    image_name: str
    data_dir: str
    health_url: str
    updated_at: datetime

    @classmethod
    def from_snapshot(cls, snap: StatusSnapshot) -> "ServiceStatusModel":
        return cls(
            is_running=snap.is_running,
            phase=snap.phase.value,
            message=snap.message,
            url=snap.url,
            last_error=snap.last_error,
            last_health_check_at=snap.last_health_check_at,
            container_name=snap.container_name,
            image_name=snap.image_name,
            data_dir=snap.data_dir,
            health_url=snap.health_url,
            updated_at=snap.updated_at,
        )


class ActionResponse(BaseModel):
    success: bool
    status: ServiceStatusModel | None = None
    error: str | None = None
    error_kind: str | None = None
    hint: str | None = None


class UrlResponse(BaseModel):
    success: bool = True
    url: str


class DataDirResponse(BaseModel):
    success: bool = True
    data_dir: str


class EventModel(BaseModel):
    id: int
    ts: str
    level: str
    container_name: str | None = None
    phase: str | None = None
    message: str
