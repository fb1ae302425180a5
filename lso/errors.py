from __future__ import annotations


class OrchestratorError(Exception):
    """A pipeline phase failed. Carries the tool output when there is one."""

    kind = "orchestrator_error"
    hint = ""

    def __init__(self, message: str, output: str | None = None):
        super().__init__(message)
        self.message = message
        self.output = output or None

    def __str__(self) -> str:
        if self.output:
            return f"{self.message}\n{self.output}"
        return self.message


class RuntimeNotInstalled(OrchestratorError):
    kind = "runtime_not_installed"
    hint = "Install Docker Desktop (or Docker Engine) and make sure `docker` is on PATH."


class RuntimeNotRunning(OrchestratorError):
    kind = "runtime_not_running"
    hint = "Start Docker Desktop (or the docker daemon) and try again."


class ImagePullFailed(OrchestratorError):
    kind = "image_pull_failed"
    hint = "Check network access to the image registry and try again."


class ContainerStartFailed(OrchestratorError):
    kind = "container_start_failed"
    hint = "Check that the host port is free and the data directory is shareable with Docker."


class HealthTimeout(OrchestratorError):
    kind = "health_timeout"
    hint = "The container was left running; inspect it with `docker logs <name>`."


class InvalidConfig(OrchestratorError, ValueError):
    kind = "invalid_config"
    hint = "Fix the LSO_* setting named in the error and restart the orchestrator."
