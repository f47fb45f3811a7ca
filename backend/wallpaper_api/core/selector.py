"""Ranked, deduplicated, top-K random wallpaper selection.

The search widens the relevance-bounded candidate pool before it relaxes the
dedup window: showing the same image again sooner is worse than showing a
slightly worse match.
"""

from __future__ import annotations

import math
import random
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from wallpaper_api.core.catalog import Catalog, CatalogItem, category_pool
from wallpaper_api.core.dedup import DedupHistoryStore
from wallpaper_api.core.ratio import RatioDecision, resolve_target_ratio

REASON_EMPTY_INDEX = "empty_index"
REASON_NO_CATEGORY_MATCH = "no_category_match"
REASON_NO_CANDIDATE = "no_candidate"

_EXPANSIONS: tuple[int | None, ...] = (1, 2, 4, None)


@dataclass(frozen=True, slots=True)
class Selection:
    item: CatalogItem | None
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def reason(self) -> str | None:
        return self.meta.get("reason") if self.item is None else None


def ratio_distance(item_ratio: float, target_ratio: float | None) -> float:
    if not target_ratio or not item_ratio:
        return 0.0
    return abs(math.log(item_ratio) - math.log(target_ratio))


def order_pool(
    pool: Sequence[CatalogItem],
    target_ratio: float | None,
    *,
    rng: random.Random,
) -> list[CatalogItem]:
    if target_ratio is not None:
        return sorted(pool, key=lambda it: ratio_distance(it.ratio, target_ratio))
    shuffled = list(pool)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def candidate_sizes(pool_len: int, top_k: int) -> list[int]:
    k = max(1, int(top_k))
    sizes: list[int] = []
    for multiplier in _EXPANSIONS:
        size = pool_len if multiplier is None else min(pool_len, k * multiplier)
        if size > 0 and size not in sizes:
            sizes.append(size)
    return sizes


def dedup_windows(window: int) -> list[int]:
    out: list[int] = []
    for win in (int(window), int(window) // 2, 0):
        if win not in out:
            out.append(win)
    return out


def _success_meta(decision: RatioDecision, *, pool_size: int, dedup_applied: bool) -> dict[str, Any]:
    return {
        "ratio_source": decision.source,
        "target_ratio": decision.target_ratio,
        "device_hint": decision.device_hint,
        "pool_size": int(pool_size),
        "dedup_applied": bool(dedup_applied),
    }


def pick_candidate(
    ordered: Sequence[CatalogItem],
    decision: RatioDecision,
    *,
    top_k: int,
    dedup_enabled: bool,
    dedup_window: int,
    dedup_store: DedupHistoryStore | None,
    dedup_key: str | None,
    rng: random.Random,
) -> Selection:
    sizes = candidate_sizes(len(ordered), top_k)
    if not sizes:
        return Selection(item=None, meta={"reason": REASON_NO_CANDIDATE})

    if not dedup_enabled or not dedup_key or dedup_store is None or int(dedup_window) <= 0:
        candidates = ordered[: sizes[0]]
        item = rng.choice(candidates)
        return Selection(item=item, meta=_success_meta(decision, pool_size=len(candidates), dedup_applied=False))

    history = dedup_store.recent_ids(dedup_key, int(dedup_window))
    for win in dedup_windows(dedup_window):
        recent = set(history[-win:]) if win > 0 else set()
        for size in sizes:
            filtered = [it for it in ordered[:size] if it.id not in recent]
            if not filtered:
                continue
            item = rng.choice(filtered)
            meta = _success_meta(decision, pool_size=len(filtered), dedup_applied=True)
            meta["dedup_window_used"] = int(win)
            return Selection(item=item, meta=meta)

    return Selection(item=None, meta={"reason": REASON_NO_CANDIDATE})


def select_wallpaper(
    catalog: Catalog | None,
    query: Mapping[str, Any],
    *,
    user_agent: str | None,
    top_k: int,
    dedup_enabled: bool,
    dedup_window: int,
    dedup_store: DedupHistoryStore | None,
    dedup_key: str | None,
    ua_trust_mode: str,
    rng: random.Random | None = None,
) -> Selection:
    """Choose one wallpaper for a request, or a ``reason`` explaining why not.

    Does not record the pick; callers append to the dedup history once the
    item is actually served.
    """
    rng = rng or random.Random()

    if catalog is None or not catalog.items:
        return Selection(item=None, meta={"reason": REASON_EMPTY_INDEX})

    category = str(query.get("category") or "")
    pool = category_pool(catalog, category or None)
    if not pool:
        return Selection(item=None, meta={"reason": REASON_NO_CATEGORY_MATCH, "category": category})

    decision = resolve_target_ratio(
        query=query,
        user_agent=user_agent,
        catalog=catalog,
        ua_trust_mode=ua_trust_mode,
    )
    ordered = order_pool(pool, decision.target_ratio, rng=rng)

    return pick_candidate(
        ordered,
        decision,
        top_k=top_k,
        dedup_enabled=dedup_enabled,
        dedup_window=dedup_window,
        dedup_store=dedup_store,
        dedup_key=dedup_key,
        rng=rng,
    )
