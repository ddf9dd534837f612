"""Unit tests for the tool call result cache."""

import threading
import time

import pytest
from pydantic import BaseModel

from tool_engine.cache import CacheKey, ToolCallCache


class CityArgs(BaseModel):
    city: str


def test_put_then_get():
    """Test that a stored result is returned for the same call."""
    cache = ToolCallCache()

    assert cache.put("weather", {"city": "Oslo"}, {"forecast": "sunny"})

    assert cache.get("weather", {"city": "Oslo"}) == {"forecast": "sunny"}
    assert cache.get("weather", {"city": "Bergen"}) is None
    assert cache.get("other", {"city": "Oslo"}) is None


def test_key_normalizes_arguments():
    """Test that key case, key order and JSON-encoded arguments share an entry."""
    first = CacheKey.from_call("weather", {"City": "Oslo", "days": 2})
    second = CacheKey.from_call("weather", {" days ": 2, "city": "Oslo"})
    encoded = CacheKey.from_call("weather", '{"city": "Oslo", "days": 2}')

    assert first == second == encoded
    # values keep their case
    assert CacheKey.from_call("weather", {"city": "oslo"}) != first


def test_key_accepts_models_and_missing_arguments():
    assert CacheKey.from_call("weather", CityArgs(city="Oslo")) == CacheKey.from_call(
        "weather", {"city": "Oslo"}
    )
    assert CacheKey.from_call("ping", None) == CacheKey.from_call("ping", {})


def test_unkeyable_arguments_are_not_cached():
    cache = ToolCallCache()

    assert cache.put("t", {"obj": object()}, {"ok": True}) is False
    assert cache.get("t", {"obj": object()}) is None
    assert len(cache) == 0


def test_results_are_copied():
    """Test that callers cannot mutate cached results."""
    cache = ToolCallCache()
    result = {"items": [1, 2]}
    cache.put("list", {}, result)

    result["items"].append(3)
    fetched = cache.get("list", {})
    fetched["items"].append(4)

    assert cache.get("list", {}) == {"items": [1, 2]}


def test_entries_expire():
    cache = ToolCallCache(ttl=0.02)
    cache.put("t", {}, {"ok": True})

    assert cache.get("t", {}) == {"ok": True}
    time.sleep(0.04)

    assert cache.get("t", {}) is None
    assert len(cache) == 0


def test_per_entry_ttl_and_cleanup():
    cache = ToolCallCache(ttl=60)
    cache.put("short", {}, {"ok": True}, ttl=0.01)
    cache.put("long", {}, {"ok": True})
    time.sleep(0.03)

    assert cache.stats().expired_count == 1
    assert cache.cleanup_expired() == 1
    assert len(cache) == 1
    assert cache.get("long", {}) == {"ok": True}


def test_size_bound_evicts_oldest():
    """Test that a full cache drops its oldest tenth before inserting."""
    cache = ToolCallCache(max_size=10)
    for i in range(10):
        cache.put("t", {"i": i}, {"i": i})

    cache.put("t", {"i": 10}, {"i": 10})

    assert len(cache) == 10
    assert cache.get("t", {"i": 0}) is None
    assert cache.get("t", {"i": 1}) == {"i": 1}
    assert cache.get("t", {"i": 10}) == {"i": 10}


def test_overwrite_does_not_evict():
    cache = ToolCallCache(max_size=2)
    cache.put("t", {"i": 1}, {"v": 1})
    cache.put("t", {"i": 2}, {"v": 2})

    cache.put("t", {"i": 2}, {"v": 3})

    assert len(cache) == 2
    assert cache.get("t", {"i": 1}) == {"v": 1}
    assert cache.get("t", {"i": 2}) == {"v": 3}


def test_invalidate_tool_and_clear():
    cache = ToolCallCache()
    cache.put("a", {"x": 1}, {})
    cache.put("a", {"x": 2}, {})
    cache.put("b", {"x": 1}, {})

    assert cache.invalidate_tool("a") == 2
    assert len(cache) == 1

    cache.clear()
    assert len(cache) == 0


def test_stats_count_hits():
    cache = ToolCallCache()
    cache.put("a", {}, {})
    cache.put("b", {}, {})
    cache.get("a", {})
    cache.get("a", {})

    stats = cache.stats()

    assert stats.total_entries == 2
    assert stats.total_hits == 2
    assert stats.hit_rate == 1.0
    assert stats.to_dict()["total_hits"] == 2


def test_disabled_cache_stores_nothing():
    cache = ToolCallCache(enabled=False)

    assert cache.put("a", {}, {"ok": True}) is False
    assert cache.get("a", {}) is None
    assert cache.stats().hit_rate == 0.0


@pytest.mark.parametrize("kwargs", [{"ttl": 0}, {"max_size": 0}])
def test_invalid_configuration(kwargs):
    with pytest.raises(ValueError):
        ToolCallCache(**kwargs)


def test_concurrent_access():
    cache = ToolCallCache(max_size=50)
    errors: list[Exception] = []

    def worker(offset: int) -> None:
        try:
            for i in range(200):
                cache.put("t", {"i": offset + i}, {"i": i})
                cache.get("t", {"i": offset + i // 2})
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(n * 1000,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert len(cache) <= 50
