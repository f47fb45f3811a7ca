from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from pathlib import Path

from wallpaper_api.core.catalog import Catalog, build_catalog
from wallpaper_api.core.logging import get_logger
from wallpaper_api.core.metrics import observe_catalog_refresh

log = get_logger(__name__)


class CatalogHolder:
    """Owns the single shared reference to the current catalog snapshot.

    Readers call :attr:`current` and keep using the snapshot they got; a
    rebuild only assigns the new snapshot once it is complete.
    """

    def __init__(
        self,
        root: str | Path,
        *,
        builder: Callable[[Path], Catalog] | None = None,
        initial: Catalog | None = None,
    ) -> None:
        self._root = Path(root)
        self._builder = builder or build_catalog
        self._catalog = initial or Catalog.empty()
        self._last_error: str | None = None

    @property
    def root(self) -> Path:
        return self._root

    @property
    def current(self) -> Catalog:
        return self._catalog

    @property
    def last_error(self) -> str | None:
        return self._last_error

    def _on_failure(self, exc: Exception, *, started: float) -> None:
        self._last_error = type(exc).__name__
        observe_catalog_refresh(ok=False, catalog=None, duration_s=time.monotonic() - started)
        log.exception("catalog_refresh_failed root=%s", str(self._root))

    def _publish(self, catalog: Catalog, *, started: float) -> None:
        self._catalog = catalog
        self._last_error = None
        observe_catalog_refresh(ok=True, catalog=catalog, duration_s=time.monotonic() - started)
        log.info(
            "catalog_refreshed root=%s total=%s categories=%s",
            str(self._root),
            catalog.total_count,
            len(catalog.by_category),
        )

    def refresh(self) -> bool:
        """Rebuild synchronously; keeps the previous snapshot on failure."""
        started = time.monotonic()
        try:
            catalog = self._builder(self._root)
        except Exception as exc:
            self._on_failure(exc, started=started)
            return False
        self._publish(catalog, started=started)
        return True

    async def refresh_async(self) -> bool:
        started = time.monotonic()
        try:
            catalog = await asyncio.to_thread(self._builder, self._root)
        except Exception as exc:
            self._on_failure(exc, started=started)
            return False
        self._publish(catalog, started=started)
        return True


class CatalogRefresher:
    def __init__(self, holder: CatalogHolder, *, interval_s: float) -> None:
        self._holder = holder
        self._interval_s = float(interval_s)
        self._task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None

    @property
    def enabled(self) -> bool:
        return self._interval_s > 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self, stop_event: asyncio.Event, *, max_iterations: int | None = None) -> None:
        iterations = 0
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval_s)
                break
            except asyncio.TimeoutError:
                pass

            await self._holder.refresh_async()

            iterations += 1
            if max_iterations is not None and iterations >= max_iterations:
                break

    def start(self) -> None:
        if not self.enabled or self.running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self.run(self._stop_event))
        log.info("catalog_refresher_started interval_s=%s", self._interval_s)

    async def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        task = self._task
        self._task = None
        if task is not None:
            await task
            log.info("catalog_refresher_stopped")
