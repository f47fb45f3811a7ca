from __future__ import annotations

from typing import TYPE_CHECKING

from prometheus_client import Counter, Gauge, Histogram

from wallpaper_api.core.ratio import RATIO_SOURCES

if TYPE_CHECKING:
    from wallpaper_api.core.catalog import Catalog

WALLPAPER_RESULTS: tuple[str, ...] = (
    "ok",
    "no_match",
    "bad_request",
    "unauthorized",
    "rate_limited",
    "error",
)

REFRESH_RESULTS: tuple[str, ...] = ("ok", "error")

WALLPAPER_REQUESTS_TOTAL = Counter(
    "wallpaper_api_requests_total",
    "Total /api/wallpaper requests by result.",
    ["result"],
)

RATIO_SOURCE_TOTAL = Counter(
    "wallpaper_api_ratio_source_total",
    "Successful selections by the rule that resolved the target ratio.",
    ["source"],
)

NO_MATCH_TOTAL = Counter(
    "wallpaper_api_no_match_total",
    "Selections that returned no wallpaper, by reason.",
    ["reason"],
)

SELECT_LATENCY_SECONDS = Histogram(
    "wallpaper_api_select_latency_seconds",
    "Latency for /api/wallpaper (seconds).",
    buckets=(
        0.001,
        0.0025,
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
    ),
)

CATALOG_REFRESH_TOTAL = Counter(
    "wallpaper_api_catalog_refresh_total",
    "Catalog rebuild attempts by result.",
    ["result"],
)

CATALOG_REFRESH_SECONDS = Histogram(
    "wallpaper_api_catalog_refresh_seconds",
    "Catalog rebuild duration (seconds).",
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

CATALOG_ITEMS = Gauge(
    "wallpaper_api_catalog_items",
    "Items in the current catalog snapshot.",
)

DEDUP_KEYS = Gauge(
    "wallpaper_api_dedup_keys",
    "Dedup keys currently tracked in memory.",
)


def _init_labelsets() -> None:
    for result in WALLPAPER_RESULTS:
        WALLPAPER_REQUESTS_TOTAL.labels(result=result).inc(0)
    for source in RATIO_SOURCES:
        RATIO_SOURCE_TOTAL.labels(source=source).inc(0)
    for result in REFRESH_RESULTS:
        CATALOG_REFRESH_TOTAL.labels(result=result).inc(0)


_init_labelsets()


def observe_wallpaper_result(*, result: str, duration_s: float | None) -> None:
    result = (result or "").strip()
    if result not in WALLPAPER_RESULTS:
        result = "error"
    WALLPAPER_REQUESTS_TOTAL.labels(result=result).inc()
    if duration_s is not None and duration_s >= 0:
        SELECT_LATENCY_SECONDS.observe(duration_s)


def observe_selection(*, ratio_source: str | None, reason: str | None) -> None:
    if reason:
        NO_MATCH_TOTAL.labels(reason=reason).inc()
        return
    if ratio_source in RATIO_SOURCES:
        RATIO_SOURCE_TOTAL.labels(source=ratio_source).inc()


def observe_catalog_refresh(*, ok: bool, catalog: Catalog | None, duration_s: float | None) -> None:
    CATALOG_REFRESH_TOTAL.labels(result="ok" if ok else "error").inc()
    if duration_s is not None and duration_s >= 0:
        CATALOG_REFRESH_SECONDS.observe(duration_s)
    if catalog is not None:
        CATALOG_ITEMS.set(float(catalog.total_count))


def set_dedup_keys(count: int) -> None:
    DEDUP_KEYS.set(float(max(0, int(count))))
