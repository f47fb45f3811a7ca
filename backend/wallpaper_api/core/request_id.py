from __future__ import annotations

import secrets
from typing import Any, Mapping

from fastapi import FastAPI, Request

REQUEST_ID_HEADER = "X-Request-Id"
_MAX_REQUEST_ID_LEN = 128


def new_request_id() -> str:
    return "req_" + secrets.token_hex(8)


def get_request_id_from_headers(headers: Mapping[str, str] | None) -> str | None:
    if not headers:
        return None
    value = headers.get(REQUEST_ID_HEADER) or headers.get(REQUEST_ID_HEADER.lower())
    if not value:
        return None
    value = value.strip()
    if not value or len(value) > _MAX_REQUEST_ID_LEN:
        return None
    return value


def get_or_create_request_id(request: Any) -> str:
    state = getattr(request, "state", None)
    if state is not None:
        rid = getattr(state, "request_id", None)
        if rid:
            return str(rid)
    rid = get_request_id_from_headers(getattr(request, "headers", None))
    rid = rid or new_request_id()
    if state is not None:
        state.request_id = rid
    return rid


def install_request_id_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def _request_id_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
        rid = get_or_create_request_id(request)
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
