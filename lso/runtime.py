from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Phase(str, Enum):
    IDLE = "idle"
    CHECKING_RUNTIME = "checking_runtime"
    CHECKING_IMAGE = "checking_image"
    PULLING_IMAGE = "pulling_image"
    PREPARING_VOLUME = "preparing_volume"
    CLEANING_UP = "cleaning_up"
    STARTING = "starting"
    WAITING_HEALTH = "waiting_health"
    READY = "ready"
    STOPPING = "stopping"
    ERROR = "error"


@dataclass
class ServiceStatus:
    is_running: bool = False
    phase: Phase = Phase.IDLE
    message: str = "Service idle"
    url: str | None = None
    last_error: str | None = None
    last_health_check_at: datetime | None = None


@dataclass(frozen=True)
class StatusSnapshot:
    """What callers see: live status merged with config-derived fields."""

    is_running: bool
    phase: Phase
    message: str
    url: str
    last_error: str | None
    last_health_check_at: datetime | None
    container_name: str
    image_name: str
    data_dir: str
    health_url: str
    updated_at: datetime

    def as_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["phase"] = self.phase.value
        for key in ("last_health_check_at", "updated_at"):
            if out[key] is not None:
                out[key] = out[key].isoformat()
        return out


class StatusStore:
    """In-memory status shared by the pipeline (writer) and any number of readers."""

    def __init__(self) -> None:
        self.lock = Lock()
        self._status = ServiceStatus()
        self._updated_at = utc_now()

    def update(self, **fields: Any) -> None:
        with self.lock:
            for key, value in fields.items():
                if not hasattr(self._status, key):
                    raise AttributeError(f"ServiceStatus has no field {key!r}")
                setattr(self._status, key, value)
            self._updated_at = utc_now()

    def read(self) -> tuple[ServiceStatus, datetime]:
        with self.lock:
            return ServiceStatus(**asdict(self._status)), self._updated_at
