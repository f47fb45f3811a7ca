from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from wallpaper_api.core.catalog_refresh import CatalogHolder
from wallpaper_api.core.config import Settings
from wallpaper_api.core.dedup import DedupHistoryStore
from wallpaper_api.core.request_id import get_or_create_request_id

router = APIRouter()


@router.get("/api/health")
async def health(request: Request) -> Any:
    rid = get_or_create_request_id(request)

    settings: Settings = request.app.state.settings
    holder: CatalogHolder = request.app.state.catalog_holder
    store: DedupHistoryStore = request.app.state.dedup_store
    catalog = holder.current

    return JSONResponse(
        status_code=200,
        content={
            "ok": True,
            "generated_at": catalog.generated_at_iso(),
            "total_count": catalog.total_count,
            "categories": catalog.categories,
            "last_refresh_error": holder.last_error,
            "dedup": {
                "enabled": bool(settings.dedup_enabled),
                "window": int(settings.dedup_window),
                "keys_in_memory": len(store),
            },
            "security": {
                "rate_limit_rps": int(settings.rate_limit_rps),
                "auth_enabled": bool(settings.auth_enabled),
            },
            "matching": {
                "top_k": int(settings.top_k),
                "ua_trust_mode": settings.ua_trust_mode,
                "dominant_landscape_ratio": catalog.dominant_landscape_ratio,
                "dominant_portrait_ratio": catalog.dominant_portrait_ratio,
                "dominant_all_ratio": catalog.dominant_all_ratio,
            },
            "request_id": rid,
        },
    )
