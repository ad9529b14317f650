import time
from datetime import timedelta

import pytest

from movierating.cache import CacheItem, MemoryCache, get_cache, init_cache


@pytest.fixture
def cache():
    c = MemoryCache(0, 0)
    yield c
    c.stop_cleanup()


def test_set_and_get_round_trip(cache):
    cache.set("movie_detail:1", {"title": "Toy Story"})
    assert cache.get("movie_detail:1") == {"title": "Toy Story"}


def test_missing_key_returns_none_and_counts_miss(cache):
    assert cache.get("absent") is None
    stats = cache.stats()
    assert stats["miss_count"] == 1
    assert stats["hit_count"] == 0


def test_hit_rate(cache):
    cache.set("a", 1)
    cache.get("a")
    cache.get("b")
    stats = cache.stats()
    assert stats["hit_count"] == 1
    assert stats["miss_count"] == 1
    assert stats["hit_rate"] == 50.0


def test_hit_rate_zero_without_requests(cache):
    assert cache.stats()["hit_rate"] == 0.0


def test_cache_item_expiry():
    assert CacheItem("v", 0).expired() is False
    assert CacheItem("v", time.time_ns() - 1).expired() is True
    assert CacheItem("v", time.time_ns() + 10**12).expired() is False


def test_item_expires_after_duration(cache):
    cache.set_with_expiration("k", "v", 0.001)
    time.sleep(0.02)
    assert cache.get("k") is None


def test_default_expiration_applies_to_set():
    c = MemoryCache(0.001, 0)
    c.set("k", "v")
    time.sleep(0.02)
    assert c.get("k") is None


def test_negative_duration_never_expires(cache):
    cache.set_with_expiration("k", "v", -1)
    time.sleep(0.01)
    assert cache.get("k") == "v"


def test_expired_counted_then_removed(cache):
    cache.set_with_expiration("old", 1, 0.001)
    cache.set("fresh", 2)
    time.sleep(0.02)
    stats = cache.stats()
    assert stats["total"] == 2
    assert stats["expired"] == 1
    cache.delete_expired()
    assert cache.stats()["total"] == 1
    assert cache.get("fresh") == 2


def test_delete_and_flush(cache):
    cache.set("a", 1)
    cache.set("b", 2)
    cache.delete("a")
    assert cache.get("a") is None
    assert cache.get("b") == 2
    cache.flush()
    assert cache.stats()["total"] == 0


def test_type_stats_by_prefix(cache):
    for key in ["movie_detail:1", "movie_detail:2", "search:x:1:12", "total_movies_count"]:
        cache.set(key, True)
    assert cache.stats()["type_stats"] == {
        "movie_detail": 2,
        "search": 1,
        "total_movies_count": 1,
    }


def test_stats_fixed_fields(cache):
    stats = cache.stats()
    assert stats["memory_size"] == "未计算"
    assert stats["total"] == 0


def test_cleanup_interval_formatting():
    c = MemoryCache(timedelta(minutes=5), timedelta(minutes=10))
    try:
        assert c.stats()["cleanup_interval"] == "10m0s"
    finally:
        c.stop_cleanup()


def test_background_cleanup_removes_expired():
    c = MemoryCache(0, 0.01)
    try:
        c.set_with_expiration("k", 1, 0.001)
        deadline = time.monotonic() + 2
        while c.stats()["total"] and time.monotonic() < deadline:
            time.sleep(0.01)
        assert c.stats()["total"] == 0
    finally:
        c.stop_cleanup()


def test_init_cache_sets_shared_instance():
    created = init_cache(60, 0)
    assert get_cache() is created
    assert created.default_expiration == 60.0
    replaced = init_cache(timedelta(seconds=30), 0)
    assert get_cache() is replaced
    assert replaced.default_expiration == 30.0