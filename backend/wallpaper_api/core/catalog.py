"""In-memory wallpaper catalog.

A :class:`Catalog` is an immutable snapshot of every readable image below the
wallpapers root together with the dominant aspect ratios derived from it.
Rebuilding never mutates an existing snapshot; callers swap in the new value.
"""

from __future__ import annotations

import math
import os
from collections import Counter
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from urllib.parse import quote

from PIL import Image

from wallpaper_api.core.logging import get_logger

log = get_logger(__name__)

IMAGE_EXTENSIONS: frozenset[str] = frozenset({".jpg", ".jpeg", ".png", ".webp", ".gif"})
UNCATEGORIZED = "uncategorized"


def is_image_file(name: str) -> bool:
    return os.path.splitext(name)[1].lower() in IMAGE_EXTENSIONS


def round_ratio(ratio: float) -> float:
    return round(float(ratio), 2)


def encode_url_path(rel_id: str) -> str:
    return "/".join(quote(seg, safe="") for seg in rel_id.split("/"))


@dataclass(frozen=True, slots=True)
class CatalogItem:
    id: str
    category: str
    width: int
    height: int
    ratio: float
    url_path: str

    @property
    def is_landscape(self) -> bool:
        return self.ratio >= 1.0

    @classmethod
    def from_relative_path(cls, rel_id: str, width: int, height: int) -> CatalogItem:
        parts = rel_id.split("/")
        category = parts[0] if len(parts) > 1 and parts[0] else UNCATEGORIZED
        return cls(
            id=rel_id,
            category=category,
            width=int(width),
            height=int(height),
            ratio=int(width) / int(height),
            url_path=encode_url_path(rel_id),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "category": self.category,
            "width": self.width,
            "height": self.height,
            "ratio": self.ratio,
            "url_path": self.url_path,
        }


def ratio_mode(items: Iterable[CatalogItem]) -> float | None:
    """Most common rounded ratio; ties go to the value seen first."""
    counts: Counter[float] = Counter()
    for item in items:
        counts[round_ratio(item.ratio)] += 1
    best: float | None = None
    best_count = 0
    for value, count in counts.items():
        if count > best_count:
            best = value
            best_count = count
    return best


@dataclass(frozen=True, slots=True)
class Catalog:
    items: tuple[CatalogItem, ...]
    by_category: Mapping[str, tuple[int, ...]]
    dominant_landscape_ratio: float | None
    dominant_portrait_ratio: float | None
    dominant_all_ratio: float | None
    built_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_items(cls, items: Iterable[CatalogItem], *, built_at: datetime | None = None) -> Catalog:
        items_t = tuple(items)
        groups: dict[str, list[int]] = {}
        for idx, item in enumerate(items_t):
            groups.setdefault(item.category, []).append(idx)

        landscape = [it for it in items_t if it.is_landscape]
        portrait = [it for it in items_t if not it.is_landscape]

        return cls(
            items=items_t,
            by_category=MappingProxyType({k: tuple(v) for k, v in groups.items()}),
            dominant_landscape_ratio=ratio_mode(landscape),
            dominant_portrait_ratio=ratio_mode(portrait),
            dominant_all_ratio=ratio_mode(items_t),
            built_at=built_at or datetime.now(timezone.utc),
        )

    @classmethod
    def empty(cls) -> Catalog:
        return cls.from_items(())

    @property
    def total_count(self) -> int:
        return len(self.items)

    @property
    def categories(self) -> list[str]:
        return sorted(self.by_category.keys())

    def category_items(self, category: str) -> tuple[CatalogItem, ...]:
        indices = self.by_category.get(category, ())
        return tuple(self.items[i] for i in indices)

    def generated_at_iso(self) -> str:
        dt = self.built_at.astimezone(timezone.utc)
        return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def _walk_image_files(directory: Path) -> Iterator[Path]:
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except FileNotFoundError:
        return

    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            yield from _walk_image_files(Path(entry.path))
        elif entry.is_file(follow_symlinks=False) and is_image_file(entry.name):
            yield Path(entry.path)


def read_image_size(path: Path) -> tuple[int, int] | None:
    try:
        with Image.open(path) as img:
            width, height = img.size
    except Image.DecompressionBombError:
        log.warning("catalog_skip_oversized path=%s max_pixels=%s", str(path), Image.MAX_IMAGE_PIXELS)
        return None
    except Exception as exc:
        log.debug("catalog_skip_unreadable path=%s err=%s", str(path), type(exc).__name__)
        return None

    try:
        w = float(width)
        h = float(height)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(w) or not math.isfinite(h) or w <= 0 or h <= 0:
        log.debug("catalog_skip_invalid_size path=%s width=%s height=%s", str(path), width, height)
        return None
    return int(w), int(h)


def build_catalog(root: str | Path) -> Catalog:
    """Scan ``root`` recursively and return a fully materialised catalog.

    A missing root yields an empty catalog. Unreadable or zero-sized images are
    skipped. Any other listing error (permissions, I/O) propagates to the caller.
    """
    root_path = Path(root)
    items: list[CatalogItem] = []
    for path in _walk_image_files(root_path):
        size = read_image_size(path)
        if size is None:
            continue
        rel_id = path.relative_to(root_path).as_posix()
        items.append(CatalogItem.from_relative_path(rel_id, size[0], size[1]))
    return Catalog.from_items(items)


def catalog_stats(catalog: Catalog) -> dict[str, float | None]:
    return {
        "dominant_landscape_ratio": catalog.dominant_landscape_ratio,
        "dominant_portrait_ratio": catalog.dominant_portrait_ratio,
        "dominant_all_ratio": catalog.dominant_all_ratio,
    }


def category_pool(catalog: Catalog, category: str | None) -> Sequence[CatalogItem]:
    if category:
        return catalog.category_items(category)
    return catalog.items
