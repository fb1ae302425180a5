import os as _os
import sys

import pytest

# Ensure project root is importable (so `import lso` works without installing the package)
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from lso.db import EventLog  # noqa: E402
from lso.docker_ops import DockerCLI  # noqa: E402
from lso.orchestrator import ServiceOrchestrator  # noqa: E402
from lso.settings import ServiceConfig  # noqa: E402

from fakes import FakeDocker, FakeProbe  # noqa: E402


@pytest.fixture
def make_config(tmp_path):
    def _make(**overrides) -> ServiceConfig:
        kw = dict(
            image_name="demo:latest",
            container_name="svc-1",
            host_port=3000,
            container_port=8080,
            data_dir=str(tmp_path / "data"),
            health_timeout_s=2.0,
            health_interval_s=0.01,
        )
        kw.update(overrides)
        return ServiceConfig(**kw)

    return _make


@pytest.fixture
def make_orchestrator(tmp_path, make_config):
    """Build an orchestrator wired to a FakeDocker runner and a FakeProbe.

    Returns (orchestrator, fake_docker, fake_probe).
    """

    def _make(docker: FakeDocker | None = None, probe: FakeProbe | None = None, journal: bool = False, **config):
        fake = docker or FakeDocker()
        fake_probe = probe or FakeProbe()
        events = EventLog(str(tmp_path / "events.db")) if journal else None
        orch = ServiceOrchestrator(
            make_config(**config),
            docker=DockerCLI(binary="/usr/bin/docker", runner=fake),
            probe=fake_probe,
            events=events,
        )
        return orch, fake, fake_probe

    return _make
