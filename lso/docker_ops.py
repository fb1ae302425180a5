from __future__ import annotations

import logging
import os
import re
import subprocess
import sys
from dataclasses import dataclass
from typing import Callable, Sequence

from .errors import InvalidConfig
from .settings import ServiceConfig, settings

logger = logging.getLogger(__name__)

BARE_DOCKER = "docker"

# Docker's own rule for container names.
CONTAINER_NAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.\-]{0,127}$")
ENV_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Applied unless the caller overrides it: the local service is single-user.
DEFAULT_CONTAINER_ENV = {"WEBUI_AUTH": "false"}


def validate_container_name(name: str) -> None:
    if not CONTAINER_NAME_RE.match(name):
        raise InvalidConfig(
            "Invalid container name. Use letters/numbers and _.- starting with a letter or number (max 128 chars)."
        )


def validate_image_ref(ref: str) -> None:
    # Security: the ref ends up in argv, keep it from being read as a flag.
    if not ref or ref.startswith("-") or any(ch.isspace() for ch in ref):
        raise InvalidConfig("Invalid image reference. Expected registry/name:tag without whitespace.")


def validate_env_key(key: str) -> None:
    if not ENV_KEY_RE.match(key):
        raise InvalidConfig(f"Invalid environment variable name: {key!r}")


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Best diagnostic text the tool produced (stderr first)."""
        return (self.stderr or "").strip() or (self.stdout or "").strip()


Runner = Callable[[Sequence[str], float], CommandResult]


def subprocess_runner(argv: Sequence[str], timeout_s: float) -> CommandResult:
    """Run one CLI invocation. Launch failures and timeouts become failed results."""
    try:
        proc = subprocess.run(
            list(argv),
            capture_output=True,
            text=True,
            timeout=timeout_s,
            check=False,
            # No console window flashing up on Windows hosts.
            creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
        )
    except FileNotFoundError as e:
        return CommandResult(127, "", f"Executable not found: {e}")
    except subprocess.TimeoutExpired:
        return CommandResult(124, "", f"Command timed out after {timeout_s:g}s")
    except OSError as e:
        return CommandResult(126, "", f"{type(e).__name__}: {e}")
    return CommandResult(proc.returncode, proc.stdout or "", proc.stderr or "")


def docker_candidates(platform: str | None = None) -> list[str]:
    platform = platform or sys.platform
    if platform == "win32":
        return [
            os.path.join(
                os.getenv("ProgramFiles", r"C:\Program Files"), "Docker", "Docker", "resources", "bin", "docker.exe"
            ),
            os.path.join(
                os.getenv("ProgramFiles(x86)", r"C:\Program Files (x86)"),
                "Docker",
                "Docker",
                "resources",
                "bin",
                "docker.exe",
            ),
        ]
    if platform == "darwin":
        return ["/usr/local/bin/docker"]
    return ["/usr/bin/docker"]


def resolve_docker_binary(platform: str | None = None, exists: Callable[[str], bool] = os.path.exists) -> str:
    """Well-known install path for the platform, else the bare name (PATH lookup at exec time)."""
    for candidate in docker_candidates(platform):
        if exists(candidate):
            return candidate
    return BARE_DOCKER


def _quote(part: str) -> str:
    if re.search(r"\s", part):
        return f'"{part}"'
    return part


def command_string(argv: Sequence[str]) -> str:
    """Single-string form of an invocation, for logs and diagnostics only."""
    return " ".join(_quote(p) for p in argv)


def host_volume_path(path: str, platform: str | None = None) -> str:
    platform = platform or sys.platform
    if platform == "win32":
        return path
    return path.replace("\\", "/")


def container_env(config: ServiceConfig) -> dict[str, str]:
    env = dict(DEFAULT_CONTAINER_ENV)
    for key, value in config.env_overrides.items():
        validate_env_key(key)
        env[key] = value
    return env


def build_run_args(config: ServiceConfig, platform: str | None = None) -> list[str]:
    """Arguments (after the binary) of the `docker run` that starts the service."""
    validate_container_name(config.container_name)
    validate_image_ref(config.image_name)

    args = [
        "run",
        "-d",
        "--name",
        config.container_name,
        "--restart",
        "unless-stopped",
        "-p",
        f"{int(config.host_port)}:{int(config.container_port)}",
        "-v",
        f"{host_volume_path(config.data_dir, platform)}:{config.container_data_path}",
    ]
    for key, value in container_env(config).items():
        args.extend(["-e", f"{key}={value}"])
    args.append(config.image_name)
    return args


class DockerCLI:
    """Thin wrapper over the docker command line.

    The binary is resolved once, lazily, and cached. Every call carries a
    timeout. Nothing here raises on a failing command: callers get a
    CommandResult and decide what a failure means.
    """

    def __init__(
        self,
        binary: str | None = None,
        runner: Runner | None = None,
        timeout_s: float | None = None,
        pull_timeout_s: float | None = None,
    ):
        self._binary = binary
        self._runner = runner or subprocess_runner
        self.timeout_s = settings.command_timeout_s if timeout_s is None else timeout_s
        self.pull_timeout_s = settings.pull_timeout_s if pull_timeout_s is None else pull_timeout_s

    @property
    def binary(self) -> str:
        if self._binary is None:
            self._binary = resolve_docker_binary()
            logger.debug("Resolved docker binary: %s", self._binary)
        return self._binary

    def adopt_binary(self, binary: str) -> None:
        logger.info("Using docker binary %s", binary)
        self._binary = binary

    def _exec(self, argv: list[str], timeout_s: float | None = None) -> CommandResult:
        timeout = self.timeout_s if timeout_s is None else timeout_s
        logger.debug("$ %s", command_string(argv))
        res = self._runner(argv, timeout)
        if not res.ok:
            logger.debug("exit %s: %s", res.returncode, res.output)
        return res

    def run(self, *args: str, timeout_s: float | None = None) -> CommandResult:
        return self._exec([self.binary, *args], timeout_s)

    def version(self, binary: str | None = None) -> CommandResult:
        return self._exec([binary or self.binary, "--version"])

    def info(self) -> CommandResult:
        return self.run("info")

    def image_exists(self, ref: str) -> bool:
        validate_image_ref(ref)
        return self.run("image", "inspect", ref).ok

    def pull(self, ref: str) -> CommandResult:
        validate_image_ref(ref)
        return self.run("pull", ref, timeout_s=self.pull_timeout_s)

    def _names(self, *ps_args: str) -> list[str]:
        res = self.run(*ps_args)
        if not res.ok:
            return []
        return [line.strip() for line in res.stdout.splitlines() if line.strip()]

    def container_running(self, name: str) -> bool:
        # The name filter is a substring match; compare whole names.
        return name in self._names("ps", "--filter", f"name={name}", "--format", "{{.Names}}")

    def container_exists(self, name: str) -> bool:
        return name in self._names("ps", "-a", "--filter", f"name={name}", "--format", "{{.Names}}")

    def stop(self, name: str) -> CommandResult:
        return self.run("stop", name)

    def remove(self, name: str) -> CommandResult:
        return self.run("rm", "-f", name)

    def run_container(self, config: ServiceConfig) -> CommandResult:
        return self.run(*build_run_args(config))
