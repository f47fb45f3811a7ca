from __future__ import annotations

from pathlib import Path

from fastapi.testclient import TestClient
from PIL import Image

from wallpaper_api.core.config import load_settings
from wallpaper_api.main import create_app


def test_health_reports_catalog_and_settings(tmp_path: Path) -> None:
    root = tmp_path / "walls"
    (root / "nature").mkdir(parents=True)
    Image.new("RGB", (1920, 1080)).save(root / "nature" / "a.png")
    Image.new("RGB", (1080, 1920)).save(root / "b.png")

    settings = load_settings(
        {
            "WALLPAPERS_DIR": str(root),
            "TOP_K": "12",
            "DEDUP_WINDOW": "5",
            "RATE_LIMIT_RPS": "3",
            "UA_TRUST_MODE": "never",
            "API_TOKEN": "secret_test",
            "SCAN_INTERVAL_SEC": "3600",
        }
    )
    app = create_app(settings)

    with TestClient(app) as client:
        resp = client.get("/api/health", headers={"X-Request-Id": "req_health"})
        assert resp.status_code == 200
        assert resp.headers["x-request-id"] == "req_health"
        body = resp.json()

    assert body["ok"] is True
    assert body["request_id"] == "req_health"
    assert body["total_count"] == 2
    assert body["categories"] == ["nature", "uncategorized"]
    assert body["generated_at"]
    assert body["last_refresh_error"] is None
    assert body["dedup"] == {"enabled": True, "window": 5, "keys_in_memory": 0}
    assert body["security"] == {"rate_limit_rps": 3, "auth_enabled": True}
    assert body["matching"]["top_k"] == 12
    assert body["matching"]["ua_trust_mode"] == "never"
    assert body["matching"]["dominant_landscape_ratio"] == 1.78
    assert body["matching"]["dominant_portrait_ratio"] == 0.56
    assert "secret_test" not in resp.text


def test_health_with_missing_wallpapers_dir(tmp_path: Path) -> None:
    settings = load_settings({"WALLPAPERS_DIR": str(tmp_path / "absent"), "SCAN_INTERVAL_SEC": "3600"})
    app = create_app(settings)

    with TestClient(app) as client:
        resp = client.get("/api/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["ok"] is True
        assert body["total_count"] == 0
        assert body["categories"] == []
        assert body["matching"]["dominant_all_ratio"] is None

        assets = client.get("/assets/anything.png")
        assert assets.status_code == 404
