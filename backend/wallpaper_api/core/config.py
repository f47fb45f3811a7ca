from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

UA_TRUST_MODES: frozenset[str] = frozenset({"auto", "always", "never"})


@dataclass(frozen=True, slots=True)
class Settings:
    host: str
    port: int
    api_token: str
    wallpapers_dir: str
    base_url: str
    scan_interval_s: int
    top_k: int
    dedup_enabled: bool
    dedup_window: int
    rate_limit_rps: int
    ua_trust_mode: str
    log_level: str

    @property
    def auth_enabled(self) -> bool:
        return bool(self.api_token)

    @property
    def dedup_active(self) -> bool:
        return bool(self.dedup_enabled) and int(self.dedup_window) > 0


def _get(env: Mapping[str, str], key: str, default: str) -> str:
    value = env.get(key, default)
    if value is None:
        return default
    return str(value).strip()


def _get_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = _get(env, key, "").lower()
    if raw in {"1", "true", "yes", "y", "on"}:
        return True
    if raw in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _get_int(env: Mapping[str, str], key: str, default: int, *, min_v: int) -> int:
    raw = _get(env, key, "")
    try:
        value = int(raw)
    except ValueError:
        return default
    if value < min_v:
        return default
    return value


def normalize_base_url(url: str) -> str:
    url = (url or "").strip()
    while url.endswith("/"):
        url = url[:-1]
    return url


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if env is None else env

    ua_trust_mode = _get(env, "UA_TRUST_MODE", "auto").lower()
    if ua_trust_mode not in UA_TRUST_MODES:
        ua_trust_mode = "auto"

    return Settings(
        host=_get(env, "HOST", "0.0.0.0") or "0.0.0.0",
        port=_get_int(env, "PORT", 8080, min_v=1),
        api_token=_get(env, "API_TOKEN", ""),
        wallpapers_dir=_get(env, "WALLPAPERS_DIR", "/data/wallpapers") or "/data/wallpapers",
        base_url=normalize_base_url(_get(env, "BASE_URL", "")),
        scan_interval_s=_get_int(env, "SCAN_INTERVAL_SEC", 30, min_v=1),
        top_k=_get_int(env, "TOP_K", 30, min_v=1),
        dedup_enabled=_get_bool(env, "DEDUP_ENABLED", True),
        dedup_window=_get_int(env, "DEDUP_WINDOW", 20, min_v=0),
        rate_limit_rps=_get_int(env, "RATE_LIMIT_RPS", 10, min_v=0),
        ua_trust_mode=ua_trust_mode,
        log_level=_get(env, "LOG_LEVEL", "INFO").upper() or "INFO",
    )
