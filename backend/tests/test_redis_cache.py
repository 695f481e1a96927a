import asyncio

import backend.app.utils.redis_cache as redis_cache
from backend.app.services.filter_state import FilterState
from backend.app.utils.redis_cache import build_facet_options_key, build_items_page_key


def test_facet_key_uses_canonical_url():
    a = build_facet_options_key(FilterState(make=["Toyota", "Honda"]), "exclude_self")
    b = build_facet_options_key(FilterState(make=["Toyota", "Honda"]), "exclude_self")
    assert a == b == "facet_options:exclude_self:/cars?make=toyota,honda"
    assert build_facet_options_key(None, "include_self") == "facet_options:include_self:/cars"


def test_items_page_key():
    key = build_items_page_key(FilterState(make=["BMW"]), "price-low", 2, 20)
    assert key == "items_page:/cars/bmw:price-low:2:20"
    assert build_items_page_key(None, None, 1, 20) == "items_page:/cars:relevance:1:20"


def test_cache_is_noop_without_redis(monkeypatch):
    monkeypatch.setattr(redis_cache.settings, "REDIS_URL", None)
    assert asyncio.run(redis_cache.cache_get_json("facet_options:x")) is None
    assert asyncio.run(redis_cache.cache_set_json("facet_options:x", {"a": 1}, 0)) is False
    assert redis_cache.redis_set_json("facet_options:x", {"a": 1}, 60) is False


def test_redis_failure_disables_client(monkeypatch):
    def boom(*args, **kwargs):
        raise ConnectionError("refused")

    monkeypatch.setattr(redis_cache.settings, "REDIS_URL", "redis://localhost:1/0")
    monkeypatch.setattr(redis_cache, "_redis_client", None)
    monkeypatch.setattr(redis_cache, "_redis_disabled_until", 0.0)
    monkeypatch.setattr(redis_cache.redis, "from_url", boom)

    assert redis_cache.get_redis() is None
    assert redis_cache._redis_disabled_until > 0
    assert redis_cache.redis_get_json("facet_options:x") is None
