"""
Unit tests for AccountCache
"""

import threading

import pytest

from pumplog.core.account_cache import AccountCache, CacheEntry
from pumplog.core.bonding_curve import BondingCurveState
from pumplog.core.metrics import get_metrics


@pytest.fixture
def curve():
    return BondingCurveState(30_000_000_000, 1_073_000_000_000_000, 0, 793_100_000_000_000)


@pytest.fixture
def fake_clock(monkeypatch):
    """Controllable time.monotonic for expiry tests"""
    now = [1_000.0]
    monkeypatch.setattr("pumplog.core.account_cache.time.monotonic", lambda: now[0])
    return now


def test_put_then_get(mint, curve):
    cache = AccountCache(ttl_seconds=30)
    cache.put(mint, curve)

    assert cache.get(mint) == curve
    assert len(cache) == 1


def test_miss(mint):
    assert AccountCache().get(mint) is None


def test_entry_expires(mint, curve, fake_clock):
    cache = AccountCache(ttl_seconds=10)
    cache.put(mint, curve)

    fake_clock[0] += 10
    assert cache.get(mint) == curve

    fake_clock[0] += 0.5
    assert cache.get(mint) is None
    assert len(cache) == 0


def test_put_refreshes_expiry(mint, curve, fake_clock):
    cache = AccountCache(ttl_seconds=10)
    cache.put(mint, curve)
    fake_clock[0] += 8
    cache.put(mint, curve)
    fake_clock[0] += 8

    assert cache.get(mint) == curve


def test_oldest_entries_evicted(mint, bonding_curve, dev_wallet, curve):
    cache = AccountCache(max_entries=2)
    cache.put(mint, curve)
    cache.put(bonding_curve, curve)
    cache.put(dev_wallet, curve)

    assert len(cache) == 2
    assert cache.get(mint) is None
    assert cache.get(dev_wallet) == curve


def test_refreshed_entry_not_evicted_first(mint, bonding_curve, dev_wallet, curve):
    cache = AccountCache(max_entries=2)
    cache.put(mint, curve)
    cache.put(bonding_curve, curve)
    cache.put(mint, curve)
    cache.put(dev_wallet, curve)

    assert cache.get(bonding_curve) is None
    assert cache.get(mint) == curve


def test_invalidate_and_clear(mint, bonding_curve, curve):
    cache = AccountCache()
    cache.put(mint, curve)
    cache.put(bonding_curve, curve)

    cache.invalidate(mint)
    assert cache.get(mint) is None
    assert len(cache) == 1

    cache.clear()
    assert len(cache) == 0


def test_invalid_ttl():
    with pytest.raises(ValueError, match="ttl_seconds must be positive"):
        AccountCache(ttl_seconds=0)


def test_cache_entry_expiry():
    entry = CacheEntry(value=1, cached_at=100.0, ttl_seconds=5)

    assert not entry.is_expired(now=105.0)
    assert entry.is_expired(now=105.1)


def test_concurrent_readers_and_writers(mint, curve):
    cache = AccountCache()
    errors = []

    def reader():
        for _ in range(500):
            value = cache.get(mint)
            if value is not None and value != curve:
                errors.append(value)

    def writer():
        for _ in range(500):
            cache.put(mint, curve)

    threads = [threading.Thread(target=reader) for _ in range(4)] + [threading.Thread(target=writer)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []


def test_size_gauge(mint, bonding_curve, curve):
    cache = AccountCache()
    cache.put(mint, curve)
    cache.put(bonding_curve, curve)
    assert get_metrics().get_gauge("account_cache_entries") == 2

    cache.invalidate(mint)
    assert get_metrics().get_gauge("account_cache_entries") == 1
