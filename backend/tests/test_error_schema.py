from __future__ import annotations

import json

from wallpaper_api.core.errors import ErrorCode, json_error_response, normalize_error_message


def test_normalize_error_message_defaults_per_code() -> None:
    assert normalize_error_message(code=ErrorCode.RATE_LIMITED, message="") == "Too many requests"
    assert normalize_error_message(code=ErrorCode.NO_MATCH, message="  ") == "No wallpaper found"
    assert normalize_error_message(code=ErrorCode.BAD_REQUEST, message=" Unsupported format ") == "Unsupported format"


def test_json_error_response_envelope_and_header() -> None:
    resp = json_error_response(
        code=ErrorCode.NO_MATCH,
        message="No wallpaper found",
        status_code=404,
        request_id="req_abc",
        details={"reason": "no_candidate"},
        headers={"Cache-Control": "no-store"},
    )
    assert resp.status_code == 404
    assert resp.headers["X-Request-Id"] == "req_abc"
    assert resp.headers["Cache-Control"] == "no-store"
    assert json.loads(resp.body) == {
        "ok": False,
        "code": "NO_MATCH",
        "message": "No wallpaper found",
        "request_id": "req_abc",
        "details": {"reason": "no_candidate"},
    }


def test_json_error_response_without_request() -> None:
    resp = json_error_response(code=ErrorCode.INTERNAL_ERROR, message="", status_code=500)
    body = json.loads(resp.body)
    assert body["request_id"] == "req_unknown"
    assert body["message"] == "Internal server error"
