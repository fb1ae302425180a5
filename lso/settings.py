from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

APP_DIR_NAME = "lso"

DEFAULT_IMAGE = "ghcr.io/open-webui/open-webui:main"
DEFAULT_CONTAINER = "lso-openwebui"
DEFAULT_HOST_PORT = 3000
DEFAULT_CONTAINER_PORT = 8080
DEFAULT_CONTAINER_DATA_PATH = "/app/backend/data"
DEFAULT_HEALTH_PATHS = ("/api/health", "/api/v1/health", "/")
DEFAULT_HEALTHY_CODES = (200, 404)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_str(name: str, default: str) -> str:
    raw = (os.getenv(name) or "").strip()
    return raw or default


def _env_codes(name: str, default: tuple[int, ...]) -> tuple[int, ...]:
    raw = os.getenv(name)
    if not raw:
        return default
    codes: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            codes.append(int(part))
        except ValueError:
            return default
    return tuple(codes) or default


def user_data_dir() -> Path:
    """Per-user application data directory for the host platform."""
    if sys.platform == "win32":
        base = os.getenv("APPDATA") or str(Path.home() / "AppData" / "Roaming")
        return Path(base) / APP_DIR_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME
    xdg = os.getenv("XDG_DATA_HOME")
    base_path = Path(xdg) if xdg else Path.home() / ".local" / "share"
    return base_path / APP_DIR_NAME


def resolve_data_dir(custom: str | None = None) -> str:
    """Pick the host directory bind-mounted into the container.

    A custom directory wins when it can be created. Otherwise the default under
    the user data directory is used. The directory is never deleted here.
    """
    if custom:
        try:
            Path(custom).mkdir(parents=True, exist_ok=True)
            return str(custom)
        except OSError as e:
            logger.warning("Could not create custom data dir %s (%s); using default", custom, e)
    default = user_data_dir() / "openwebui-data"
    try:
        default.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        # The pipeline creates it again before the first container start.
        logger.warning("Could not create data dir %s: %s", default, e)
    return str(default)


def _env_overrides() -> dict[str, str]:
    env: dict[str, str] = {}
    for key, value in os.environ.items():
        if key.startswith("LSO_ENV_") and len(key) > len("LSO_ENV_"):
            env[key[len("LSO_ENV_"):]] = value
    if os.getenv("LSO_WEBUI_AUTH") is not None:
        env["WEBUI_AUTH"] = os.environ["LSO_WEBUI_AUTH"]
    if os.getenv("LSO_OPENAI_API_BASE_URL"):
        env["OPENAI_API_BASE_URL"] = os.environ["LSO_OPENAI_API_BASE_URL"]
    return env


@dataclass(frozen=True)
class ServiceConfig:
    """Immutable description of the one service an orchestrator owns."""

    image_name: str = DEFAULT_IMAGE
    container_name: str = DEFAULT_CONTAINER
    host_port: int = DEFAULT_HOST_PORT
    container_port: int = DEFAULT_CONTAINER_PORT
    data_dir: str = ""
    base_url: str = ""
    container_data_path: str = DEFAULT_CONTAINER_DATA_PATH
    health_timeout_s: float = 90.0
    health_interval_s: float = 2.0
    health_paths: tuple[str, ...] = DEFAULT_HEALTH_PATHS
    healthy_status_codes: tuple[int, ...] = DEFAULT_HEALTHY_CODES
    env_overrides: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Frozen dataclass: derived defaults go through object.__setattr__.
        if not self.base_url:
            object.__setattr__(self, "base_url", f"http://127.0.0.1:{int(self.host_port)}")
        else:
            object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
        if not self.data_dir:
            object.__setattr__(self, "data_dir", str(user_data_dir() / "openwebui-data"))
        object.__setattr__(self, "env_overrides", dict(self.env_overrides))

    @property
    def health_urls(self) -> list[str]:
        return [f"{self.base_url}{p}" for p in self.health_paths]

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        host_port = _env_int("LSO_PORT", DEFAULT_HOST_PORT)
        return cls(
            image_name=_env_str("LSO_IMAGE", DEFAULT_IMAGE),
            container_name=_env_str("LSO_CONTAINER", DEFAULT_CONTAINER),
            host_port=host_port,
            container_port=_env_int("LSO_CONTAINER_PORT", DEFAULT_CONTAINER_PORT),
            base_url=_env_str("LSO_URL", f"http://127.0.0.1:{host_port}"),
            data_dir=resolve_data_dir(os.getenv("LSO_DATA_DIR", "").strip() or None),
            container_data_path=_env_str("LSO_CONTAINER_DATA_PATH", DEFAULT_CONTAINER_DATA_PATH),
            health_timeout_s=_env_float("LSO_HEALTH_TIMEOUT_S", 90.0),
            health_interval_s=_env_float("LSO_HEALTH_INTERVAL_S", 2.0),
            healthy_status_codes=_env_codes("LSO_HEALTH_CODES", DEFAULT_HEALTHY_CODES),
            env_overrides=_env_overrides(),
        )


@dataclass(frozen=True)
class Settings:
    # Event journal
    db_path: str = os.getenv("LSO_DB_PATH", str(user_data_dir() / "lso-events.db"))
    enable_journal: bool = _env_bool("LSO_ENABLE_JOURNAL", True)

    # Subprocess / HTTP bounds
    command_timeout_s: float = _env_float("LSO_COMMAND_TIMEOUT_S", 60.0)
    pull_timeout_s: float = _env_float("LSO_PULL_TIMEOUT_S", 600.0)
    http_timeout_s: float = _env_float("LSO_HTTP_TIMEOUT_S", 3.0)

    # Control API
    api_host: str = os.getenv("LSO_API_HOST", "127.0.0.1")
    api_port: int = _env_int("LSO_API_PORT", 8765)
    autostart: bool = _env_bool("LSO_AUTOSTART", False)

    log_level: str = os.getenv("LSO_LOG_LEVEL", "INFO")


settings = Settings()
