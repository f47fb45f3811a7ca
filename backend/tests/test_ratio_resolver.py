from __future__ import annotations

import math

import pytest

from wallpaper_api.core.catalog import Catalog, CatalogItem
from wallpaper_api.core.ratio import (
    DEVICE_DESKTOP,
    DEVICE_MOBILE,
    DEVICE_TABLET,
    DEVICE_UNKNOWN,
    classify_user_agent,
    parse_aspect,
    resolve_target_ratio,
)

IPHONE_UA = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 Mobile/15E148"
IPAD_UA = "Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X) AppleWebKit/605.1.15 Mobile/15E148"
ANDROID_UA = "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 Chrome/120.0 Mobile Safari/537.36"
DESKTOP_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/120.0 Safari/537.36"


def _mixed_catalog() -> Catalog:
    return Catalog.from_items(
        [
            CatalogItem.from_relative_path("desk/a.png", 1920, 1080),
            CatalogItem.from_relative_path("desk/b.png", 2560, 1440),
            CatalogItem.from_relative_path("phone/c.png", 1080, 1920),
        ]
    )


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("16:9", 16 / 9),
        (" 21 : 9 ", 21 / 9),
        ("1.6", 1.6),
        ("0.5625", 0.5625),
        ("", None),
        (None, None),
        ("16:", None),
        ("0:9", None),
        ("-16:9", None),
        ("16:9:1", None),
        ("wide", None),
        ("nan", None),
        ("inf", None),
        ("0", None),
        ("1e308:1e-308", None),
        ("1e-308:1e308", None),
    ],
)
def test_parse_aspect(raw, expected) -> None:  # type: ignore[no-untyped-def]
    value = parse_aspect(raw)
    if expected is None:
        assert value is None
    else:
        assert value is not None
        assert math.isclose(value, expected)


def test_classify_user_agent() -> None:
    assert classify_user_agent(IPHONE_UA) == DEVICE_MOBILE
    assert classify_user_agent(ANDROID_UA) == DEVICE_MOBILE
    assert classify_user_agent(IPAD_UA) == DEVICE_TABLET
    assert classify_user_agent("Mozilla/5.0 (Linux; Android 13; SM-X700) Tablet") == DEVICE_TABLET
    assert classify_user_agent(DESKTOP_UA) == DEVICE_DESKTOP
    assert classify_user_agent("") == DEVICE_UNKNOWN
    assert classify_user_agent(None) == DEVICE_UNKNOWN


def test_width_height_wins_over_everything() -> None:
    decision = resolve_target_ratio(
        query={"width": "1920", "height": "1080", "aspect": "9:16"},
        user_agent=IPHONE_UA,
        catalog=_mixed_catalog(),
        ua_trust_mode="always",
    )
    assert decision.source == "width_height"
    assert decision.target_ratio is not None
    assert math.isclose(decision.target_ratio, 1920 / 1080)


def test_width_height_works_without_catalog_statistics() -> None:
    decision = resolve_target_ratio(
        query={"width": "1080", "height": "2400"},
        user_agent=None,
        catalog=Catalog.empty(),
        ua_trust_mode="never",
    )
    assert decision.source == "width_height"
    assert decision.target_ratio == pytest.approx(0.45)


def test_malformed_width_height_falls_through_to_aspect() -> None:
    decision = resolve_target_ratio(
        query={"width": "abc", "height": "1080", "aspect": "4:3"},
        user_agent=DESKTOP_UA,
        catalog=_mixed_catalog(),
        ua_trust_mode="auto",
    )
    assert decision.source == "aspect"
    assert decision.target_ratio == pytest.approx(4 / 3)


def test_malformed_aspect_is_treated_as_absent() -> None:
    decision = resolve_target_ratio(
        query={"aspect": "wide"},
        user_agent=DESKTOP_UA,
        catalog=_mixed_catalog(),
        ua_trust_mode="auto",
    )
    assert decision.source == "ua_desktop"


def test_mobile_ua_uses_dominant_portrait_ratio() -> None:
    decision = resolve_target_ratio(query={}, user_agent=IPHONE_UA, catalog=_mixed_catalog(), ua_trust_mode="auto")
    assert decision.source == "ua_mobile"
    assert decision.target_ratio == 0.56
    assert decision.device_hint == DEVICE_MOBILE


def test_tablet_ua_uses_dominant_landscape_ratio() -> None:
    decision = resolve_target_ratio(query={}, user_agent=IPAD_UA, catalog=_mixed_catalog(), ua_trust_mode="auto")
    assert decision.source == "ua_desktop"
    assert decision.target_ratio == 1.78
    assert decision.device_hint == DEVICE_TABLET


def test_never_trust_mode_ignores_user_agent() -> None:
    decision = resolve_target_ratio(query={}, user_agent=IPHONE_UA, catalog=_mixed_catalog(), ua_trust_mode="never")
    assert decision.source == "desktop_fallback"
    assert decision.target_ratio == 1.78
    assert decision.device_hint == DEVICE_UNKNOWN


def test_empty_user_agent_falls_back_to_landscape() -> None:
    decision = resolve_target_ratio(query={}, user_agent="", catalog=_mixed_catalog(), ua_trust_mode="auto")
    assert decision.source == "desktop_fallback"


def test_mobile_without_portrait_items_falls_back() -> None:
    catalog = Catalog.from_items([CatalogItem.from_relative_path("a.png", 1920, 1080)])
    decision = resolve_target_ratio(query={}, user_agent=IPHONE_UA, catalog=catalog, ua_trust_mode="auto")
    assert decision.source == "desktop_fallback"
    assert decision.target_ratio == 1.78


def test_portrait_only_catalog_uses_all_fallback_for_desktop() -> None:
    catalog = Catalog.from_items([CatalogItem.from_relative_path("a.png", 1080, 1920)])
    decision = resolve_target_ratio(query={}, user_agent=DESKTOP_UA, catalog=catalog, ua_trust_mode="auto")
    assert decision.source == "all_fallback"
    assert decision.target_ratio == 0.56


def test_empty_catalog_resolves_to_none() -> None:
    decision = resolve_target_ratio(query={}, user_agent=DESKTOP_UA, catalog=Catalog.empty(), ua_trust_mode="auto")
    assert decision.source == "none"
    assert decision.target_ratio is None


def test_overflowing_width_height_falls_through_to_aspect() -> None:
    decision = resolve_target_ratio(
        query={"width": "1e300", "height": "1e-300", "aspect": "16:9"},
        user_agent=DESKTOP_UA,
        catalog=_mixed_catalog(),
        ua_trust_mode="auto",
    )
    assert decision.source == "aspect"
    assert decision.target_ratio == pytest.approx(16 / 9)


def test_underflowing_width_height_is_treated_as_absent() -> None:
    decision = resolve_target_ratio(
        query={"width": "1e-300", "height": "1e300"},
        user_agent=DESKTOP_UA,
        catalog=_mixed_catalog(),
        ua_trust_mode="auto",
    )
    assert decision.source == "ua_desktop"
    assert decision.target_ratio == 1.78


def test_overflowing_aspect_is_treated_as_absent() -> None:
    decision = resolve_target_ratio(
        query={"aspect": "1e308:1e-308"},
        user_agent=IPHONE_UA,
        catalog=_mixed_catalog(),
        ua_trust_mode="auto",
    )
    assert decision.source == "ua_mobile"
    assert decision.target_ratio == 0.56
