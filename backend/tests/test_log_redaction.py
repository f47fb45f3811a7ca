from __future__ import annotations

import io
import logging

from wallpaper_api.core.logging import RedactFilter
from wallpaper_api.core.redact import REDACTED, redact_any, redact_text


def test_redact_bearer_token() -> None:
    raw = "Authorization: Bearer abc.def.ghi"
    redacted = redact_text(raw)
    assert "abc.def.ghi" not in redacted
    assert "Bearer ***" in redacted


def test_redact_token_query_param() -> None:
    raw = "GET /api/wallpaper?token=abc123&category=nature"
    redacted = redact_text(raw)
    assert "abc123" not in redacted
    assert "token=***&category=nature" in redacted


def test_redact_mapping_sensitive_keys() -> None:
    raw = {"api_token": "secret", "nested": {"authorization": "Bearer x"}, "ok": 1}
    redacted = redact_any(raw)
    assert redacted["api_token"] == REDACTED
    assert redacted["nested"]["authorization"] == REDACTED
    assert redacted["ok"] == 1


def test_redact_filter_masks_formatted_message() -> None:
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RedactFilter())
    logger = logging.getLogger("wallpaper_api.tests.redact")
    logger.propagate = False
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    try:
        logger.info("auth_header value=%s", "Bearer topsecret")
    finally:
        logger.removeHandler(handler)

    out = stream.getvalue()
    assert "topsecret" not in out
    assert "Bearer ***" in out
