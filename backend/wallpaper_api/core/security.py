from __future__ import annotations

import hmac
from collections.abc import Mapping

from wallpaper_api.core.errors import ApiError, ErrorCode


def safe_equal(a: str | None, b: str | None) -> bool:
    left = (a or "").encode("utf-8")
    right = (b or "").encode("utf-8")
    return hmac.compare_digest(left, right)


def _authorization_from_headers(headers: Mapping[str, str] | None) -> str | None:
    if not headers:
        return None
    return headers.get("Authorization") or headers.get("authorization")


def parse_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.strip().split(None, 1)
    if len(parts) != 2:
        return None
    scheme, token = parts
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token if token else None


def require_api_token(headers: Mapping[str, str] | None, *, api_token: str) -> None:
    """No-op when no token is configured; otherwise 401 unless the bearer token matches."""
    api_token = (api_token or "").strip()
    if not api_token:
        return
    token = parse_bearer_token(_authorization_from_headers(headers))
    if not token or not safe_equal(token, api_token):
        raise ApiError(code=ErrorCode.UNAUTHORIZED, message="Unauthorized", status_code=401)
