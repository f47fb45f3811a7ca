from __future__ import annotations

import zlib
from collections import deque
from threading import Lock

_LOCK_STRIPES = 64


def history_cap(window: int) -> int:
    window_i = max(0, int(window))
    return max(window_i * 3, window_i + 10)


class DedupHistoryStore:
    """Per-key ring buffers of recently served item ids, most recent last.

    Keys are client ids or addresses and are never expired; only the length of
    each history is bounded.
    """

    def __init__(self) -> None:
        self._histories: dict[str, deque[str]] = {}
        self._map_lock = Lock()
        self._stripes = tuple(Lock() for _ in range(_LOCK_STRIPES))

    def __len__(self) -> int:
        with self._map_lock:
            return len(self._histories)

    def key_lock(self, key: str) -> Lock:
        """Lock serialising read-select-record for one key bucket."""
        return self._stripes[zlib.crc32(key.encode("utf-8")) % _LOCK_STRIPES]

    def recent_ids(self, key: str, n: int) -> list[str]:
        n_i = int(n)
        if not key or n_i <= 0:
            return []
        with self._map_lock:
            history = self._histories.get(key)
            if not history:
                return []
            items = list(history)
        return items[-n_i:]

    def record(self, key: str, item_id: str, *, window: int) -> None:
        if not key or not item_id or int(window) <= 0:
            return
        cap = history_cap(window)
        with self._map_lock:
            history = self._histories.get(key)
            if history is None or history.maxlen != cap:
                history = deque(history or (), maxlen=cap)
                self._histories[key] = history
            history.append(item_id)

    def clear(self) -> None:
        with self._map_lock:
            self._histories.clear()
