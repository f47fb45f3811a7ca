from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, RedirectResponse

from wallpaper_api.core.catalog_refresh import CatalogHolder
from wallpaper_api.core.config import Settings
from wallpaper_api.core.dedup import DedupHistoryStore
from wallpaper_api.core.errors import ApiError, ErrorCode
from wallpaper_api.core.logging import get_logger
from wallpaper_api.core.metrics import observe_selection, set_dedup_keys
from wallpaper_api.core.rate_limit import client_ip_from_request, enforce_rate_limit
from wallpaper_api.core.request_id import get_or_create_request_id
from wallpaper_api.core.security import require_api_token
from wallpaper_api.core.selector import select_wallpaper

log = get_logger(__name__)

router = APIRouter()

_FORMATS = {"image", "json"}


def build_public_url(base_url: str, url_path: str) -> str:
    safe_path = url_path[1:] if url_path.startswith("/") else url_path
    if base_url:
        return f"{base_url}/assets/{safe_path}"
    return f"/assets/{safe_path}"


@router.get("/api/wallpaper")
async def wallpaper(
    request: Request,
    width: str | None = None,
    height: str | None = None,
    aspect: str | None = None,
    category: str | None = None,
    client_id: str | None = None,
    format: str = "image",
) -> Any:
    settings: Settings = request.app.state.settings
    require_api_token(request.headers, api_token=settings.api_token)

    client_ip = client_ip_from_request(request)
    enforce_rate_limit(getattr(request.app.state, "rate_limiter", None), key=client_ip)

    format_norm = (format or "image").strip().lower()
    if format_norm not in _FORMATS:
        raise ApiError(code=ErrorCode.BAD_REQUEST, message="Unsupported format", status_code=400)

    client_id_norm = (client_id or "").strip()
    dedup_key = client_id_norm or client_ip
    query = {"width": width, "height": height, "aspect": aspect, "category": category}

    holder: CatalogHolder = request.app.state.catalog_holder
    store: DedupHistoryStore = request.app.state.dedup_store
    catalog = holder.current

    with store.key_lock(dedup_key):
        selection = select_wallpaper(
            catalog,
            query,
            user_agent=request.headers.get("user-agent"),
            top_k=settings.top_k,
            dedup_enabled=settings.dedup_enabled,
            dedup_window=settings.dedup_window,
            dedup_store=store,
            dedup_key=dedup_key,
            ua_trust_mode=settings.ua_trust_mode,
            rng=request.app.state.rng,
        )
        if selection.item is not None and settings.dedup_active and dedup_key:
            store.record(dedup_key, selection.item.id, window=settings.dedup_window)

    observe_selection(ratio_source=selection.meta.get("ratio_source"), reason=selection.reason)
    set_dedup_keys(len(store))

    item = selection.item
    if item is None:
        log.info(
            "wallpaper_no_match reason=%s category=%s",
            selection.reason,
            (category or "").strip() or None,
        )
        raise ApiError(
            code=ErrorCode.NO_MATCH,
            message="No wallpaper found",
            status_code=404,
            details=dict(selection.meta),
        )

    location = build_public_url(settings.base_url, item.url_path)
    log.info(
        "wallpaper_selected id=%s category=%s client_id=%s ip=%s ratio_source=%s dedup_applied=%s",
        item.id,
        (category or "").strip() or None,
        client_id_norm or None,
        client_ip or None,
        selection.meta.get("ratio_source"),
        bool(selection.meta.get("dedup_applied")),
    )

    if format_norm == "json":
        return JSONResponse(
            status_code=200,
            content={
                "ok": True,
                "code": "OK",
                "request_id": get_or_create_request_id(request),
                "data": {
                    "url": location,
                    "item": item.to_dict(),
                    "meta": dict(selection.meta),
                },
            },
            headers={"Cache-Control": "no-store"},
        )

    return RedirectResponse(url=location, status_code=302, headers={"Cache-Control": "no-store"})
