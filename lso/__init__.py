"""Local Service Orchestrator (LSO).

Keeps one local Docker container (an Open WebUI instance by default) running
and healthy on behalf of a desktop app:
 - resolves the docker CLI and checks the daemon
 - pulls the image when it is missing
 - reuses a running container, replaces a stale one
 - polls the service until it answers over HTTP
 - exposes a status snapshot that a UI can poll at any time

`ensure_running()` is idempotent and single-flight per orchestrator.
"""
from .errors import (
    ContainerStartFailed,
    HealthTimeout,
    ImagePullFailed,
    OrchestratorError,
    RuntimeNotInstalled,
    RuntimeNotRunning,
)
from .orchestrator import ServiceOrchestrator
from .runtime import Phase, StatusSnapshot
from .settings import ServiceConfig

__all__ = [
    "ContainerStartFailed",
    "HealthTimeout",
    "ImagePullFailed",
    "OrchestratorError",
    "Phase",
    "RuntimeNotInstalled",
    "RuntimeNotRunning",
    "ServiceConfig",
    "ServiceOrchestrator",
    "StatusSnapshot",
]
