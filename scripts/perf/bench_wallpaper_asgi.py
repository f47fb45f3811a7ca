from __future__ import annotations

import argparse
import asyncio
import json
import logging
import platform
import statistics
import sys
import tempfile
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import httpx
from PIL import Image

from wallpaper_api.core.config import load_settings
from wallpaper_api.main import create_app

_SEED_SIZES: tuple[tuple[int, int], ...] = (
    (192, 108),
    (160, 100),
    (108, 192),
    (120, 90),
    (256, 108),
)
_SEED_CATEGORIES: tuple[str, ...] = ("nature", "city", "space", "abstract")


@dataclass(frozen=True, slots=True)
class BenchResult:
    total: int
    ok: int
    no_match: int
    other_error: int
    durations_s: list[float]


def _p(sorted_values: list[float], p: float) -> float:
    if not sorted_values:
        return 0.0
    p = max(0.0, min(float(p), 100.0))
    if p == 0.0:
        return sorted_values[0]
    if p == 100.0:
        return sorted_values[-1]
    k = (len(sorted_values) - 1) * (p / 100.0)
    f = int(k)
    c = min(f + 1, len(sorted_values) - 1)
    if f == c:
        return sorted_values[f]
    d0 = sorted_values[f] * (c - k)
    d1 = sorted_values[c] * (k - f)
    return d0 + d1


def _seed_wallpapers(root: Path, *, seed_images: int) -> None:
    count = max(1, int(seed_images))
    for i in range(count):
        category = _SEED_CATEGORIES[i % len(_SEED_CATEGORIES)]
        size = _SEED_SIZES[i % len(_SEED_SIZES)]
        path = root / category / f"seed_{i:06d}.png"
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGB", size, color=(i % 256, (i * 7) % 256, (i * 13) % 256)).save(path)


async def _run_bench(*, app, total_requests: int, concurrency: int, endpoint: str, clients: int) -> BenchResult:
    total_i = max(1, int(total_requests))
    conc_i = max(1, int(concurrency))
    clients_i = max(1, int(clients))

    transport = httpx.ASGITransport(app=app)
    timeout = httpx.Timeout(30.0, connect=10.0)
    client = httpx.AsyncClient(transport=transport, base_url="http://bench.local", timeout=timeout)

    semaphore = asyncio.Semaphore(conc_i)
    durations_s: list[float] = []
    ok = 0
    no_match = 0
    other_error = 0

    async def one(i: int) -> None:
        nonlocal ok, no_match, other_error
        sep = "&" if "?" in endpoint else "?"
        url = f"{endpoint}{sep}client_id=bench-{i % clients_i}"
        async with semaphore:
            started = time.perf_counter()
            try:
                resp = await client.get(url)
                if resp.status_code in {200, 302}:
                    ok += 1
                elif resp.status_code == 404:
                    no_match += 1
                else:
                    other_error += 1
            except Exception:
                other_error += 1
            finally:
                durations_s.append(time.perf_counter() - started)

    try:
        tasks = [asyncio.create_task(one(i)) for i in range(total_i)]
        await asyncio.gather(*tasks)
    finally:
        await client.aclose()

    return BenchResult(
        total=total_i,
        ok=ok,
        no_match=no_match,
        other_error=other_error,
        durations_s=durations_s,
    )


def _build_report(*, args, result: BenchResult, elapsed_s: float) -> dict[str, Any]:
    ds = sorted(float(x) for x in result.durations_s if x is not None and x >= 0)
    mean = statistics.fmean(ds) if ds else 0.0

    return {
        "created_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "endpoint": args.endpoint,
        "requests": {
            "total": result.total,
            "concurrency": args.concurrency,
            "clients": args.clients,
            "ok": result.ok,
            "no_match": result.no_match,
            "other_error": result.other_error,
        },
        "latency_s": {
            "min": ds[0] if ds else 0.0,
            "p50": _p(ds, 50.0),
            "p90": _p(ds, 90.0),
            "p99": _p(ds, 99.0),
            "max": ds[-1] if ds else 0.0,
            "mean": mean,
        },
        "throughput": {
            "elapsed_s": float(elapsed_s),
            "rps": float(result.total / elapsed_s) if elapsed_s > 0 else 0.0,
        },
        "seed_images": int(args.seed_images),
        "env": {
            "python": sys.version.split()[0],
            "platform": platform.platform(),
            "machine": platform.machine(),
        },
    }


async def main_async(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="In-process /api/wallpaper load test using httpx ASGITransport.")
    parser.add_argument("--requests", type=int, default=2000)
    parser.add_argument("--concurrency", type=int, default=50)
    parser.add_argument("--clients", type=int, default=20)
    parser.add_argument("--seed-images", type=int, default=1000)
    parser.add_argument("--endpoint", type=str, default="/api/wallpaper?format=json")
    parser.add_argument("--output", type=str, default="")
    args = parser.parse_args(argv)

    with tempfile.TemporaryDirectory(prefix="wallpaper_api_bench_") as td:
        root = Path(td) / "wallpapers"
        _seed_wallpapers(root, seed_images=args.seed_images)

        settings = load_settings(
            {
                "WALLPAPERS_DIR": str(root),
                "RATE_LIMIT_RPS": "0",
                "LOG_LEVEL": "WARNING",
            }
        )
        app = create_app(settings)

        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

        # Warm-up request primes import paths before timing.
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://bench.local",
        ) as c:
            await c.get("/api/health")

        started = time.perf_counter()
        result = await _run_bench(
            app=app,
            total_requests=args.requests,
            concurrency=args.concurrency,
            endpoint=args.endpoint,
            clients=args.clients,
        )
        elapsed_s = time.perf_counter() - started

        report = _build_report(args=args, result=result, elapsed_s=elapsed_s)

        out_path = (args.output or "").strip()
        if out_path:
            out = Path(out_path)
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(json.dumps(report, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
            print(f"[bench_wallpaper_asgi] wrote report: {out}")
        else:
            print(json.dumps(report, ensure_ascii=False, indent=2))

    return 0


def main(argv: list[str] | None = None) -> int:
    return asyncio.run(main_async(argv))


if __name__ == "__main__":
    raise SystemExit(main())
