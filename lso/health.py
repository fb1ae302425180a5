from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Iterable

import httpx

from .settings import DEFAULT_HEALTHY_CODES, ServiceConfig, settings


@dataclass(frozen=True)
class HealthResult:
    healthy: bool
    message: str
    url: str | None = None
    status_code: int | None = None
    latency_ms: float | None = None


def check_health(
    client: httpx.Client,
    url: str,
    healthy_codes: Iterable[int] = DEFAULT_HEALTHY_CODES,
    timeout_s: float | None = None,
) -> tuple[bool, str, float | None, int | None]:
    """GET one candidate URL.

    A 404 counts as healthy by default: the process answered, it just has no
    route there. `timeout_s` overrides the client timeout for this request.
    Returns (is_healthy, message, latency_ms, status_code).
    """
    start = time.monotonic()
    try:
        resp = client.get(url) if timeout_s is None else client.get(url, timeout=timeout_s)
    except httpx.TimeoutException:
        return False, "Timed out", round((time.monotonic() - start) * 1000.0, 2), None
    except httpx.HTTPError as e:
        return False, f"No response: {type(e).__name__}", round((time.monotonic() - start) * 1000.0, 2), None
    latency_ms = round((time.monotonic() - start) * 1000.0, 2)
    if resp.status_code in set(healthy_codes):
        return True, f"HTTP {resp.status_code}", latency_ms, resp.status_code
    return False, f"HTTP {resp.status_code}", latency_ms, resp.status_code


class HealthProbe:
    """One readiness tick: try each candidate URL in order, first healthy wins."""

    def __init__(
        self,
        urls: Iterable[str],
        healthy_codes: Iterable[int] = DEFAULT_HEALTHY_CODES,
        timeout_s: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.urls = list(urls)
        if not self.urls:
            raise ValueError("HealthProbe needs at least one URL")
        self.healthy_codes = tuple(healthy_codes)
        self.timeout_s = settings.http_timeout_s if timeout_s is None else timeout_s
        self._transport = transport

    @classmethod
    def from_config(
        cls,
        config: ServiceConfig,
        timeout_s: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> "HealthProbe":
        return cls(config.health_urls, config.healthy_status_codes, timeout_s=timeout_s, transport=transport)

    def check(self, deadline: float | None = None) -> HealthResult:
        """`deadline` is a `time.monotonic()` value; no request outlives it."""
        failures: list[str] = []
        with httpx.Client(timeout=self.timeout_s, follow_redirects=False, transport=self._transport) as client:
            for url in self.urls:
                timeout_s = None
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        failures.append(f"{url}: Skipped, deadline reached")
                        break
                    timeout_s = min(self.timeout_s, remaining)
                ok, msg, latency_ms, code = check_health(client, url, self.healthy_codes, timeout_s=timeout_s)
                if ok:
                    return HealthResult(True, msg, url=url, status_code=code, latency_ms=latency_ms)
                failures.append(f"{url}: {msg}")
        return HealthResult(False, "; ".join(failures))
