import json
import logging
import time
from typing import Any, Optional

import redis
from starlette.concurrency import run_in_threadpool

from ..config import settings
from ..services.filter_state import FilterState
from ..services.url_canonicalizer import generate


logger = logging.getLogger(__name__)
_redis_client: Optional[redis.Redis] = None
_redis_disabled_until: float = 0.0
_redis_write_disabled_until: float = 0.0
_redis_write_disabled_reason: Optional[str] = None


def _now() -> float:
    return time.time()


def _mark_redis_disabled(reason: str, seconds: int = 60) -> None:
    global _redis_disabled_until
    _redis_disabled_until = _now() + seconds
    logger.warning("redis disabled for %ss: %s", seconds, reason)


def _mark_redis_write_disabled(reason: str, seconds: int = 300) -> None:
    global _redis_write_disabled_until, _redis_write_disabled_reason
    _redis_write_disabled_until = _now() + seconds
    _redis_write_disabled_reason = reason
    logger.warning("redis write disabled for %ss: %s", seconds, reason)


def get_redis() -> Optional[redis.Redis]:
    global _redis_client, _redis_disabled_until
    if _redis_disabled_until and _redis_disabled_until > _now():
        return None
    url = settings.REDIS_URL
    if not url:
        return None
    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                url,
                decode_responses=True,
                socket_connect_timeout=0.2,
                socket_timeout=0.5,
                retry_on_timeout=False,
                health_check_interval=30,
            )
            _redis_client.ping()
        except Exception as exc:
            logger.warning("redis unavailable: %s", exc)
            _mark_redis_disabled(str(exc))
            _redis_client = None
            return None
    return _redis_client


def build_facet_options_key(state: Optional[FilterState], policy: str) -> str:
    # canonical URL: equal filter states share one entry
    url = generate(state or FilterState(), root=settings.URL_ROOT)
    return f"facet_options:{policy}:{url}"


def build_items_page_key(state: Optional[FilterState], sort: Optional[str], page: int, page_size: int) -> str:
    url = generate(state or FilterState(), root=settings.URL_ROOT)
    return "items_page:{url}:{sort}:{page}:{size}".format(
        url=url,
        sort=sort or "relevance",
        page=page,
        size=page_size,
    )


def redis_get_json(key: str) -> Optional[Any]:
    client = get_redis()
    if client is None:
        return None
    try:
        raw = client.get(key)
        if not raw:
            return None
        return json.loads(raw)
    except Exception as exc:
        logger.warning("redis get failed: %s", exc)
        return None


def redis_set_json(key: str, value: Any, ttl_sec: int) -> bool:
    if _redis_write_disabled_until and _redis_write_disabled_until > _now():
        logger.warning(
            "redis write skipped (disabled): %s", _redis_write_disabled_reason or "unknown"
        )
        return False
    client = get_redis()
    if client is None:
        return False
    try:
        client.setex(key, ttl_sec, json.dumps(value, ensure_ascii=False))
        return True
    except Exception as exc:
        msg = str(exc)
        if "MISCONF" in msg or "No space left on device" in msg or "ENOSPC" in msg:
            _mark_redis_write_disabled(msg, seconds=300)
        logger.warning("redis set failed: %s", exc)
        return False


def redis_delete_by_pattern(pattern: str) -> int:
    client = get_redis()
    if client is None:
        return 0
    deleted = 0
    try:
        for key in client.scan_iter(match=pattern, count=200):
            try:
                deleted += int(client.delete(key))
            except Exception:
                continue
    except Exception as exc:
        logger.warning("redis scan/delete failed: %s", exc)
    return deleted


async def cache_get_json(key: str) -> Optional[Any]:
    return await run_in_threadpool(redis_get_json, key)


async def cache_set_json(key: str, value: Any, ttl_sec: int) -> bool:
    if ttl_sec <= 0:
        return False
    return await run_in_threadpool(redis_set_json, key, value, ttl_sec)
