import threading

import pytest

from geofilter.cache import CachePolicy, TtlLruCache


def test_get_returns_inserted_value(clock):
    cache = TtlLruCache(4, 300, clock=clock)
    cache.put("1.1.1.1", "VN")
    assert cache.get("1.1.1.1") == "VN"
    assert cache.get("2.2.2.2") is None


def test_entry_expires_after_ttl(clock):
    cache = TtlLruCache(4, 300, clock=clock)
    cache.put("1.1.1.1", "VN")
    clock.advance(299.9)
    assert cache.get("1.1.1.1") == "VN"
    clock.advance(0.1)
    assert cache.get("1.1.1.1") is None
    # lazily removed on the read above
    assert len(cache) == 0


def test_reads_do_not_extend_expiry(clock):
    cache = TtlLruCache(4, 10, clock=clock)
    cache.put("a", "US")
    clock.advance(6)
    assert cache.get("a") == "US"
    clock.advance(6)
    assert cache.get("a") is None


def test_overwrite_refreshes_insertion_time(clock):
    cache = TtlLruCache(4, 10, clock=clock)
    cache.put("a", "US")
    clock.advance(8)
    cache.put("a", "CA")
    clock.advance(8)
    assert cache.get("a") == "CA"


def test_zero_ttl_never_serves(clock):
    cache = TtlLruCache(4, 0, clock=clock)
    cache.put("a", "US")
    assert cache.get("a") is None


def test_capacity_evicts_least_recently_used(clock):
    cache = TtlLruCache(2, 300, clock=clock)
    cache.put("a", "US")
    cache.put("b", "CN")
    assert cache.get("a") == "US"
    cache.put("c", "VN")
    assert len(cache) == 2
    assert cache.get("b") is None
    assert cache.get("a") == "US"
    assert cache.get("c") == "VN"


def test_eviction_ignores_freshness(clock):
    cache = TtlLruCache(2, 100, clock=clock)
    cache.put("old", "US")
    clock.advance(50)
    cache.put("fresh", "CN")
    cache.get("old")
    cache.put("new", "VN")
    assert "fresh" not in cache
    assert "old" in cache


def test_overwrite_does_not_evict(clock):
    cache = TtlLruCache(2, 300, clock=clock)
    cache.put("a", "US")
    cache.put("b", "CN")
    cache.put("a", "DE")
    assert len(cache) == 2
    assert cache.snapshot() == ("b", "a")


def test_contains_does_not_promote(clock):
    cache = TtlLruCache(2, 300, clock=clock)
    cache.put("a", "US")
    cache.put("b", "CN")
    assert "a" in cache
    cache.put("c", "VN")
    assert "a" not in cache


def test_clear_and_purge(clock):
    cache = TtlLruCache(8, 10, clock=clock)
    cache.put("a", "US")
    clock.advance(5)
    cache.put("b", "CN")
    clock.advance(6)
    assert cache.purge_expired() == 1
    assert cache.snapshot() == ("b",)
    cache.clear()
    assert len(cache) == 0


@pytest.mark.parametrize("capacity", [0, -1, True])
def test_invalid_capacity_rejected(capacity):
    with pytest.raises(ValueError):
        TtlLruCache(capacity, 300)


def test_negative_ttl_rejected():
    with pytest.raises(ValueError):
        CachePolicy(capacity=1, ttl=-1)


def test_concurrent_access_keeps_bound():
    cache = TtlLruCache(64, 300)
    errors = []

    def worker(offset):
        try:
            for i in range(2000):
                key = f"10.0.{offset}.{i % 200}"
                if cache.get(key) is None:
                    cache.put(key, "US")
        except Exception as exc:  # pragma: no cover - surfaced via assertion
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert not errors
    assert len(cache) == 64
    assert len(set(cache.snapshot())) == 64
