import asyncio
import os
import time
from typing import List

from backend.app.catalog.base import Catalog, Pagination, SortKey
from backend.app.config import settings
from backend.app.dependencies import build_catalog, build_listing_service
from backend.app.services.filter_state import FilterState
from backend.app.utils.redis_cache import redis_delete_by_pattern, redis_set_json


def _should_stop(started: float, max_sec: float, now: float | None = None) -> bool:
    if not max_sec:
        return False
    current = now if now is not None else time.monotonic()
    return (current - started) > max_sec


def _hot_makes(raw: str | None, discovered: List[str]) -> List[str]:
    if raw:
        out: List[str] = []
        for part in raw.split(","):
            name = part.strip()
            if name and name not in out:
                out.append(name)
        return out
    return discovered


async def _run(catalog: Catalog, started: float, max_sec: float, page_size: int, sort: SortKey) -> int:
    service = build_listing_service(catalog)
    warmed = 0
    t0 = time.perf_counter()
    base = await service.search(FilterState(), Pagination(page=1, page_size=page_size), sort)
    if not base.success:
        print(f"[prewarm] catalog unavailable: {base.error}", flush=True)
        return warmed
    warmed += 1
    print(f"[prewarm] base total={base.page.total_count} ms={(time.perf_counter()-t0)*1000:.2f}")
    discovered = [opt.name for opt in (base.facets or {}).get("make", ())]
    for make in _hot_makes(os.getenv("PREWARM_HOT_MAKES"), discovered):
        if _should_stop(started, max_sec):
            print("[prewarm] stop by PREWARM_MAX_SEC", flush=True)
            break
        t0 = time.perf_counter()
        result = await service.search(FilterState(make=[make]), Pagination(page=1, page_size=page_size), sort)
        if not result.success:
            print(f"[prewarm] make={make} failed: {result.error}", flush=True)
            continue
        warmed += 1
        print(f"[prewarm] make={make} total={result.page.total_count} ms={(time.perf_counter()-t0)*1000:.2f}")
    return warmed


def main() -> None:
    started = time.monotonic()
    max_sec = float(os.getenv("PREWARM_MAX_SEC", "600") or 600)
    page_size = int(os.getenv("PREWARM_LIST_PAGE_SIZE", str(settings.DEFAULT_PAGE_SIZE)) or settings.DEFAULT_PAGE_SIZE)
    sort = SortKey.parse(os.getenv("PREWARM_LIST_SORT", "relevance"))

    if not redis_set_json("prewarm_ping", {"ok": True}, ttl_sec=60):
        print("[prewarm] redis unavailable or write-disabled")
        raise SystemExit(2)
    if os.getenv("PREWARM_FLUSH", "0") == "1":
        for pattern in ("facet_options:*", "items_page:*"):
            print(f"[prewarm] flushed {pattern} deleted={redis_delete_by_pattern(pattern)}")

    async def _main() -> int:
        catalog = build_catalog()
        try:
            return await _run(catalog, started, max_sec, page_size, sort)
        finally:
            await catalog.aclose()

    warmed = asyncio.run(_main())
    print(f"[prewarm] done states={warmed} in {(time.monotonic()-started)*1000:.2f} ms")


if __name__ == "__main__":
    main()
