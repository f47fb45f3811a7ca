from __future__ import annotations

import random
import time
from pathlib import Path

from fastapi import FastAPI, Request
from starlette.staticfiles import StaticFiles

from wallpaper_api.api.metrics import router as metrics_router
from wallpaper_api.api.public.healthz import router as healthz_router
from wallpaper_api.api.public.wallpaper import router as wallpaper_router
from wallpaper_api.core.catalog_refresh import CatalogHolder, CatalogRefresher
from wallpaper_api.core.config import Settings, load_settings
from wallpaper_api.core.dedup import DedupHistoryStore
from wallpaper_api.core.errors import ApiError, ErrorCode, json_error_response
from wallpaper_api.core.logging import configure_logging, get_logger
from wallpaper_api.core.metrics import observe_wallpaper_result
from wallpaper_api.core.rate_limit import ClientRateLimiter
from wallpaper_api.core.request_id import install_request_id_middleware

log = get_logger(__name__)


def _wallpaper_result_from_status(status: int) -> str:
    if status in {200, 301, 302, 303, 307, 308}:
        return "ok"
    if status == 404:
        return "no_match"
    if status == 400:
        return "bad_request"
    if status == 401:
        return "unauthorized"
    if status == 429:
        return "rate_limited"
    return "error"


def mount_assets(app: FastAPI, wallpapers_dir: str | Path) -> bool:
    root = Path(wallpapers_dir)
    if not root.is_dir():
        log.warning("assets_not_mounted wallpapers_dir=%s reason=missing", str(root))
        return False
    app.mount("/assets", StaticFiles(directory=str(root)), name="assets")
    return True


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="wallpaper-api", docs_url="/api/docs", redoc_url="/api/redoc")

    @app.exception_handler(ApiError)
    async def _api_error_handler(request: Request, exc: ApiError):  # type: ignore[no-redef]
        return json_error_response(
            code=exc.code,
            message=exc.message,
            status_code=exc.status_code,
            request=request,
            details=exc.details,
        )

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):  # type: ignore[no-redef]
        log.exception("unhandled_exception path=%s", str(getattr(request, "url", "")))
        return json_error_response(
            code=ErrorCode.INTERNAL_ERROR,
            message="Internal server error",
            status_code=500,
            request=request,
            details={"error_type": type(exc).__name__},
        )

    @app.middleware("http")
    async def _metrics_middleware(request: Request, call_next):  # type: ignore[no-redef]
        if request.url.path != "/api/wallpaper":
            return await call_next(request)

        started = time.monotonic()
        response = None
        try:
            response = await call_next(request)
            return response
        finally:
            status_code = int(getattr(response, "status_code", 0) or 0)
            observe_wallpaper_result(
                result=_wallpaper_result_from_status(status_code),
                duration_s=time.monotonic() - started,
            )

    install_request_id_middleware(app)

    holder = CatalogHolder(settings.wallpapers_dir)
    holder.refresh()
    refresher = CatalogRefresher(holder, interval_s=float(settings.scan_interval_s))

    app.state.settings = settings
    app.state.catalog_holder = holder
    app.state.catalog_refresher = refresher
    app.state.dedup_store = DedupHistoryStore()
    app.state.rate_limiter = ClientRateLimiter(rps=int(settings.rate_limit_rps))
    app.state.rng = random.Random()

    log.info(
        "wallpaper_index_loaded wallpapers_dir=%s total=%s categories=%s",
        settings.wallpapers_dir,
        holder.current.total_count,
        len(holder.current.by_category),
    )

    @app.on_event("startup")
    async def _startup() -> None:  # type: ignore[no-redef]
        refresher.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:  # type: ignore[no-redef]
        await refresher.stop()

    app.include_router(healthz_router)
    app.include_router(wallpaper_router)
    app.include_router(metrics_router)

    mount_assets(app, settings.wallpapers_dir)

    return app
