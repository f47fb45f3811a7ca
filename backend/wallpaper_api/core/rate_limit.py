from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from threading import Lock
from typing import Any

from wallpaper_api.core.errors import ApiError, ErrorCode

_PRUNE_THRESHOLD = 10_000


def client_ip_from_request(request: Any) -> str:
    headers = getattr(request, "headers", None) or {}
    xff = headers.get("X-Forwarded-For") or headers.get("x-forwarded-for")
    if xff:
        ip = str(xff).split(",", 1)[0].strip()
        if ip:
            return ip
    client = getattr(request, "client", None)
    host = getattr(client, "host", None) if client is not None else None
    return str(host).strip() if host else ""


@dataclass(slots=True)
class _Window:
    second: int
    count: int


@dataclass(slots=True)
class ClientRateLimiter:
    """Fixed one-second window per client address; ``rps <= 0`` disables it."""

    rps: int
    now: Callable[[], float] = time.time
    _windows: dict[str, _Window] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock)

    @property
    def enabled(self) -> bool:
        return int(self.rps) > 0

    def allow(self, key: str) -> bool:
        if not self.enabled:
            return True
        key = key or "unknown"
        now_s = int(self.now())
        with self._lock:
            current = self._windows.get(key)
            if current is None or current.second != now_s:
                self._windows[key] = _Window(second=now_s, count=1)
                if len(self._windows) > _PRUNE_THRESHOLD:
                    self._windows = {k: w for k, w in self._windows.items() if w.second == now_s}
                return True
            if current.count >= int(self.rps):
                return False
            current.count += 1
            return True


def enforce_rate_limit(limiter: ClientRateLimiter | None, *, key: str) -> None:
    if limiter is None or limiter.allow(key):
        return
    raise ApiError(
        code=ErrorCode.RATE_LIMITED,
        message="Too many requests",
        status_code=429,
        details={"limit_per_second": int(limiter.rps)},
    )
