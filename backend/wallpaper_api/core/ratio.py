from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from wallpaper_api.core.catalog import Catalog

DEVICE_MOBILE = "mobile"
DEVICE_TABLET = "tablet"
DEVICE_DESKTOP = "desktop"
DEVICE_UNKNOWN = "unknown"

SOURCE_WIDTH_HEIGHT = "width_height"
SOURCE_ASPECT = "aspect"
SOURCE_UA_MOBILE = "ua_mobile"
SOURCE_UA_DESKTOP = "ua_desktop"
SOURCE_DESKTOP_FALLBACK = "desktop_fallback"
SOURCE_ALL_FALLBACK = "all_fallback"
SOURCE_NONE = "none"

RATIO_SOURCES: tuple[str, ...] = (
    SOURCE_WIDTH_HEIGHT,
    SOURCE_ASPECT,
    SOURCE_UA_MOBILE,
    SOURCE_UA_DESKTOP,
    SOURCE_DESKTOP_FALLBACK,
    SOURCE_ALL_FALLBACK,
    SOURCE_NONE,
)

_TABLET_RE = re.compile(r"ipad|tablet")
_MOBILE_RE = re.compile(r"mobile|android|iphone")


@dataclass(frozen=True, slots=True)
class RatioDecision:
    target_ratio: float | None
    source: str
    device_hint: str | None = None


def parse_positive_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    raw = str(value).strip()
    if not raw:
        return None
    try:
        n = float(raw)
    except ValueError:
        return None
    if not math.isfinite(n) or n <= 0:
        return None
    return n


def positive_ratio(numerator: float, denominator: float) -> float | None:
    ratio = numerator / denominator
    if not math.isfinite(ratio) or ratio <= 0:
        return None
    return ratio


def parse_aspect(value: Any) -> float | None:
    """Accepts ``"1.6"`` or ``"16:9"``; anything else is treated as absent."""
    if value is None:
        return None
    raw = str(value).strip()
    if not raw:
        return None
    if ":" in raw:
        parts = raw.split(":")
        if len(parts) != 2:
            return None
        a = parse_positive_number(parts[0])
        b = parse_positive_number(parts[1])
        if a is None or b is None:
            return None
        return positive_ratio(a, b)
    return parse_positive_number(raw)


def classify_user_agent(user_agent: str | None) -> str:
    if not user_agent:
        return DEVICE_UNKNOWN
    text = user_agent.lower()
    # iPad user agents also carry "Mobile", so tablet tokens win.
    if _TABLET_RE.search(text):
        return DEVICE_TABLET
    if _MOBILE_RE.search(text):
        return DEVICE_MOBILE
    return DEVICE_DESKTOP


def resolve_target_ratio(
    *,
    query: Mapping[str, Any],
    user_agent: str | None,
    catalog: Catalog,
    ua_trust_mode: str,
) -> RatioDecision:
    width = parse_positive_number(query.get("width"))
    height = parse_positive_number(query.get("height"))
    target = positive_ratio(width, height) if width is not None and height is not None else None
    if target is not None:
        return RatioDecision(target_ratio=target, source=SOURCE_WIDTH_HEIGHT)

    aspect = parse_aspect(query.get("aspect"))
    if aspect is not None:
        return RatioDecision(target_ratio=aspect, source=SOURCE_ASPECT)

    device_hint = classify_user_agent(user_agent) if ua_trust_mode != "never" else DEVICE_UNKNOWN

    if device_hint == DEVICE_MOBILE and catalog.dominant_portrait_ratio is not None:
        return RatioDecision(
            target_ratio=catalog.dominant_portrait_ratio,
            source=SOURCE_UA_MOBILE,
            device_hint=device_hint,
        )
    if device_hint in {DEVICE_DESKTOP, DEVICE_TABLET} and catalog.dominant_landscape_ratio is not None:
        return RatioDecision(
            target_ratio=catalog.dominant_landscape_ratio,
            source=SOURCE_UA_DESKTOP,
            device_hint=device_hint,
        )

    if catalog.dominant_landscape_ratio is not None:
        return RatioDecision(
            target_ratio=catalog.dominant_landscape_ratio,
            source=SOURCE_DESKTOP_FALLBACK,
            device_hint=device_hint,
        )
    if catalog.dominant_all_ratio is not None:
        return RatioDecision(
            target_ratio=catalog.dominant_all_ratio,
            source=SOURCE_ALL_FALLBACK,
            device_hint=device_hint,
        )

    return RatioDecision(target_ratio=None, source=SOURCE_NONE, device_hint=device_hint)
