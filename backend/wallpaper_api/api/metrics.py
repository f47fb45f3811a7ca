from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import Response
from prometheus_client.exposition import CONTENT_TYPE_LATEST, generate_latest

from wallpaper_api.core.metrics import CATALOG_ITEMS, set_dedup_keys
from wallpaper_api.core.security import require_api_token

router = APIRouter()


@router.get("/metrics")
async def metrics(request: Request) -> Response:
    require_api_token(request.headers, api_token=request.app.state.settings.api_token)

    CATALOG_ITEMS.set(float(request.app.state.catalog_holder.current.total_count))
    set_dedup_keys(len(request.app.state.dedup_store))

    content = generate_latest()
    return Response(content=content, media_type=CONTENT_TYPE_LATEST)
