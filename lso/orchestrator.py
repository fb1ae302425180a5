from __future__ import annotations

import logging
import time
from concurrent.futures import Future
from pathlib import Path
from threading import Lock, Thread
from typing import Callable, TypeVar

from .db import EventLog
from .docker_ops import BARE_DOCKER, DockerCLI
from .errors import (
    ContainerStartFailed,
    HealthTimeout,
    ImagePullFailed,
    OrchestratorError,
    RuntimeNotInstalled,
    RuntimeNotRunning,
)
from .health import HealthProbe, HealthResult
from .runtime import Phase, StatusSnapshot, StatusStore, utc_now
from .settings import ServiceConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ServiceOrchestrator:
    """Keeps exactly one healthy container running for one service.

    `ensure_running()` walks a fixed sequence of idempotent steps: docker CLI
    and daemon checks, image check/pull, data directory, container
    reconciliation and a time-boxed health poll. The pipeline runs on its own
    worker thread and only one runs at a time: callers arriving while it is in
    flight attach to the same Future and get the same result.

    Status is written only by whoever holds the operation lock (the pipeline,
    `stop()` or `restart()`). `get_status()` never waits for that lock.
    """

    def __init__(
        self,
        config: ServiceConfig,
        docker: DockerCLI | None = None,
        probe: HealthProbe | None = None,
        events: EventLog | None = None,
    ):
        self.config = config
        self.docker = docker or DockerCLI()
        self.probe = probe or HealthProbe.from_config(config)
        self.events = events
        self.store = StatusStore()
        self._guard = Lock()  # protects _inflight
        self._op_lock = Lock()  # held by the one operation allowed to write status
        self._inflight: Future[StatusSnapshot] | None = None

    # -- accessors -------------------------------------------------------

    def get_status(self) -> StatusSnapshot:
        status, updated_at = self.store.read()
        return StatusSnapshot(
            is_running=status.is_running,
            phase=status.phase,
            message=status.message,
            url=status.url or self.config.base_url,
            last_error=status.last_error,
            last_health_check_at=status.last_health_check_at,
            container_name=self.config.container_name,
            image_name=self.config.image_name,
            data_dir=self.config.data_dir,
            health_url=self.config.health_urls[0],
            updated_at=updated_at,
        )

    def get_data_dir(self) -> str:
        return self.config.data_dir

    def get_base_url(self) -> str:
        return self.config.base_url

    # -- single-flight ensure -------------------------------------------

    def ensure_running(self, timeout: float | None = None) -> StatusSnapshot:
        """Block until the (possibly shared) pipeline finishes. Raises OrchestratorError."""
        return self.ensure_running_async().result(timeout=timeout)

    def ensure_running_async(self) -> Future[StatusSnapshot]:
        with self._guard:
            if self._inflight is not None:
                logger.debug("ensure_running already in flight for %s; attaching", self.config.container_name)
                return self._inflight
            fut: Future[StatusSnapshot] = Future()
            self._inflight = fut

        Thread(
            target=self._run_pipeline,
            args=(fut,),
            name=f"lso-ensure-{self.config.container_name}",
            daemon=True,
        ).start()
        return fut

    def _run_pipeline(self, fut: Future[StatusSnapshot]) -> None:
        try:
            with self._op_lock:
                snapshot = self._guarded(self._ensure_running)
        except BaseException as e:
            self._release(fut)
            fut.set_exception(e)
            return
        self._release(fut)
        fut.set_result(snapshot)

    def _release(self, fut: Future[StatusSnapshot]) -> None:
        with self._guard:
            if self._inflight is fut:
                self._inflight = None

    def _ensure_running(self) -> StatusSnapshot:
        name = self.config.container_name

        self._check_runtime()
        self._ensure_image()
        self._prepare_volume()

        self._set_phase(Phase.STARTING, f"Looking for container {name}")
        if self.docker.container_running(name):
            self.store.update(message=f"Adopting running container {name}")
            logger.info("Container %s already running; adopting it", name)
            self._event("INFO", "Adopted running container", Phase.WAITING_HEALTH)
        else:
            if self.docker.container_exists(name):
                self._set_phase(Phase.CLEANING_UP, f"Removing previous container {name}")
                self._remove_container()
            self._start_container()

        self._wait_for_health()
        return self._mark_ready()

    # -- stop / restart --------------------------------------------------

    def stop(self) -> StatusSnapshot:
        """Best-effort stop + remove. Waits for an in-flight pipeline first."""
        with self._op_lock:
            return self._guarded(self._stop)

    def _stop(self) -> StatusSnapshot:
        self._set_phase(Phase.STOPPING, f"Stopping container {self.config.container_name}")
        self._remove_container()
        self.store.update(is_running=False, phase=Phase.IDLE, message="Service stopped", url=None)
        self._event("INFO", "Service stopped", Phase.IDLE)
        return self.get_status()

    def restart(self) -> StatusSnapshot:
        """Tear the container down and start a fresh one. Skips runtime/image checks."""
        with self._op_lock:
            return self._guarded(self._restart)

    def _restart(self) -> StatusSnapshot:
        self.store.update(is_running=False, url=None)
        self._set_phase(Phase.STOPPING, f"Stopping container {self.config.container_name}")
        self._remove_container()
        self._prepare_volume()
        self._start_container()
        self._wait_for_health()
        return self._mark_ready()

    # -- steps ------------------------------------------------------------

    def _check_runtime(self) -> None:
        self._set_phase(Phase.CHECKING_RUNTIME, "Checking Docker installation")
        res = self.docker.version()
        if not res.ok:
            if self.docker.binary != BARE_DOCKER and self.docker.version(BARE_DOCKER).ok:
                self.docker.adopt_binary(BARE_DOCKER)
            else:
                raise RuntimeNotInstalled("Docker is not installed or could not be found on PATH.", output=res.output)

        self.store.update(message="Checking that the Docker daemon is running")
        res = self.docker.info()
        if not res.ok:
            raise RuntimeNotRunning("Docker is installed but not running. Start Docker and try again.", output=res.output)

    def _ensure_image(self) -> None:
        image = self.config.image_name
        self._set_phase(Phase.CHECKING_IMAGE, f"Checking image {image}")
        if self.docker.image_exists(image):
            return

        self._set_phase(Phase.PULLING_IMAGE, f"Pulling image {image} (this can take a few minutes)")
        res = self.docker.pull(image)
        if not res.ok:
            raise ImagePullFailed(f"Could not pull image {image}.", output=res.output)
        self._event("INFO", f"Pulled image {image}", Phase.PULLING_IMAGE)

    def _prepare_volume(self) -> None:
        self._set_phase(Phase.PREPARING_VOLUME, "Preparing data directory")
        try:
            Path(self.config.data_dir).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ContainerStartFailed(f"Could not create data directory {self.config.data_dir}.", output=str(e)) from e

    def _remove_container(self) -> None:
        # Either command may legitimately no-op; the goal is a free name.
        name = self.config.container_name
        for res in (self.docker.stop(name), self.docker.remove(name)):
            if not res.ok:
                logger.debug("Ignoring cleanup failure for %s: %s", name, res.output)

    def _start_container(self) -> None:
        name = self.config.container_name
        self._set_phase(Phase.STARTING, f"Starting container {name}")
        res = self.docker.run_container(self.config)
        if not res.ok:
            raise ContainerStartFailed(f"Could not start container {name}.", output=res.output)
        self._event("INFO", f"Started container from image {self.config.image_name}", Phase.STARTING)

    def _wait_for_health(self) -> HealthResult:
        timeout_s = max(0.0, float(self.config.health_timeout_s))
        interval_s = max(0.0, float(self.config.health_interval_s))
        self._set_phase(Phase.WAITING_HEALTH, f"Waiting for {self.config.base_url} to respond")

        deadline = time.monotonic() + timeout_s
        attempt = 0
        while True:
            attempt += 1
            result = self.probe.check(deadline=deadline)
            if result.healthy:
                logger.info("Health check passed on attempt %d via %s (%s)", attempt, result.url, result.message)
                self.store.update(last_health_check_at=utc_now())
                return result

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                # The container stays up so it can be inspected.
                raise HealthTimeout(
                    f"Service did not respond within {timeout_s:g}s.",
                    output=result.message,
                )
            self.store.update(message=f"Waiting for {self.config.base_url} to respond (attempt {attempt})")
            time.sleep(min(interval_s, remaining))

    def _mark_ready(self) -> StatusSnapshot:
        self.store.update(
            is_running=True,
            phase=Phase.READY,
            message="Service ready",
            url=self.config.base_url,
            last_error=None,
        )
        self._event("INFO", f"Service ready at {self.config.base_url}", Phase.READY)
        return self.get_status()

    # -- status helpers -------------------------------------------------

    def _guarded(self, op: Callable[[], T]) -> T:
        try:
            return op()
        except OrchestratorError as e:
            self._fail(e.message, str(e))
            raise
        except Exception as e:
            msg = f"Unexpected error: {type(e).__name__}: {e}"
            self._fail(msg, msg)
            raise

    def _fail(self, message: str, detail: str) -> None:
        self.store.update(is_running=False, phase=Phase.ERROR, message=message, last_error=detail)
        logger.error("%s: %s", self.config.container_name, detail)
        self._event("ERROR", detail, Phase.ERROR)

    def _set_phase(self, phase: Phase, message: str) -> None:
        self.store.update(phase=phase, message=message)
        logger.info("[%s] %s", phase.value, message)

    def _event(self, level: str, message: str, phase: Phase | None = None) -> None:
        if self.events is None:
            return
        self.events.log_event(
            level, message, container_name=self.config.container_name, phase=phase.value if phase else None
        )
