"""In-process stand-ins for the docker CLI and the health probe."""
from __future__ import annotations

import threading
import time

from lso.docker_ops import CommandResult
from lso.health import HealthResult

OK = CommandResult(0)


class FakeDocker:
    """Simulates docker CLI state (daemon, images, named containers).

    Used as the `runner` of a DockerCLI, so it receives full argv lists and
    records every one of them in `calls`.
    """

    def __init__(
        self,
        installed=("/usr/bin/docker", "docker"),
        daemon_up=True,
        images=("demo:latest",),
        containers=None,
        pull_ok=True,
        run_ok=True,
        stop_ok=True,
        rm_ok=True,
        run_gate: threading.Event | None = None,
    ):
        self.installed = set(installed)
        self.daemon_up = daemon_up
        self.images = set(images)
        self.containers: dict[str, str] = dict(containers or {})  # name -> running|exited
        self.pull_ok = pull_ok
        self.run_ok = run_ok
        self.stop_ok = stop_ok
        self.rm_ok = rm_ok
        self.run_gate = run_gate
        self.run_started = threading.Event()
        self.calls: list[list[str]] = []
        self.timeouts: list[float] = []
        self._lock = threading.Lock()

    def __call__(self, argv, timeout_s):
        argv = list(argv)
        with self._lock:
            self.calls.append(argv)
            self.timeouts.append(timeout_s)
        binary, args = argv[0], argv[1:]

        if args == ["--version"]:
            if binary in self.installed:
                return CommandResult(0, "Docker version 27.0.3, build 7d4bcd8\n")
            return CommandResult(127, "", f"Executable not found: {binary}")

        verb = args[0] if args else ""
        if verb == "info":
            if self.daemon_up:
                return CommandResult(0, "Server Version: 27.0.3\n")
            return CommandResult(1, "", "Cannot connect to the Docker daemon at unix:///var/run/docker.sock.")

        if args[:2] == ["image", "inspect"]:
            if args[2] in self.images:
                return CommandResult(0, "[{}]\n")
            return CommandResult(1, "[]\n", f"Error: No such image: {args[2]}")

        if verb == "pull":
            if not self.pull_ok:
                return CommandResult(1, "", "Error response from daemon: net/http: TLS handshake timeout")
            self.images.add(args[1])
            return CommandResult(0, f"Status: Downloaded newer image for {args[1]}\n")

        if verb == "ps":
            show_all = "-a" in args
            needle = args[args.index("--filter") + 1].split("=", 1)[1]
            names = [
                n for n, state in self.containers.items() if needle in n and (show_all or state == "running")
            ]
            return CommandResult(0, "".join(f"{n}\n" for n in names))

        if verb == "stop":
            name = args[1]
            if not self.stop_ok or name not in self.containers:
                return CommandResult(1, "", f"Error response from daemon: No such container: {name}")
            self.containers[name] = "exited"
            return CommandResult(0, f"{name}\n")

        if verb == "rm":
            name = args[-1]
            if not self.rm_ok:
                return CommandResult(1, "", f"Error response from daemon: removal of container {name} is already in progress")
            self.containers.pop(name, None)
            return CommandResult(0, f"{name}\n")

        if verb == "run":
            self.run_started.set()
            if self.run_gate is not None:
                self.run_gate.wait(10)
            if not self.run_ok:
                return CommandResult(
                    125, "", "docker: Error response from daemon: Bind for 0.0.0.0:3000 failed: port is already allocated."
                )
            name = args[args.index("--name") + 1]
            self.containers[name] = "running"
            return CommandResult(0, "4f1c2e9b7a3d\n")

        return CommandResult(1, "", f"unknown command: {' '.join(args)}")

    def verbs(self) -> list[str]:
        return [c[1] for c in self.calls if len(c) > 1]

    def count(self, verb: str) -> int:
        return self.verbs().count(verb)


class FakeProbe:
    """Returns scripted health results, then `default` forever."""

    def __init__(self, results=(), default=True):
        self.results = list(results)
        self.default = default
        self.calls = 0

    def check(self, deadline=None) -> HealthResult:
        self.calls += 1
        healthy = self.results.pop(0) if self.results else self.default
        if healthy:
            return HealthResult(True, "HTTP 200", url="http://127.0.0.1:3000/api/health", status_code=200)
        return HealthResult(False, "http://127.0.0.1:3000/api/health: No response: ConnectError")


class SlowProbe:
    """Never healthy; each tick takes `delay_s`, cut short at the deadline."""

    def __init__(self, delay_s):
        self.delay_s = delay_s
        self.calls = 0

    def check(self, deadline=None) -> HealthResult:
        self.calls += 1
        delay_s = self.delay_s
        if deadline is not None:
            delay_s = max(0.0, min(delay_s, deadline - time.monotonic()))
        time.sleep(delay_s)
        return HealthResult(False, "http://127.0.0.1:3000/api/health: Timed out")
