"""
Account data cache keyed by address

Owned and injected by the caller: nothing here is process-wide. Reads
vastly outnumber writes, entries expire after a TTL and readers treat a
hit as eventually consistent.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from solders.pubkey import Pubkey

from pumplog.core.logger import get_logger
from pumplog.core.metrics import get_metrics


logger = get_logger(__name__)
metrics = get_metrics()


@dataclass
class CacheEntry:
    """Cached value with expiry"""
    value: Any
    cached_at: float
    ttl_seconds: float

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Check if cached value has expired"""
        return (now if now is not None else time.monotonic()) - self.cached_at > self.ttl_seconds


class AccountCache:
    """
    TTL cache of decoded account state

    Usage:
        cache = AccountCache(ttl_seconds=30)
        cache.put(mint, BondingCurveState.from_trade(trade))
        state = cache.get(mint)  # None once expired
    """

    def __init__(self, ttl_seconds: float = 30.0, max_entries: int = 10_000):
        """
        Initialize account cache

        Args:
            ttl_seconds: Lifetime of each entry
            max_entries: Oldest entries are evicted beyond this size
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._entries: Dict[Pubkey, CacheEntry] = {}
        self._lock = threading.RLock()

    def get(self, address: Pubkey) -> Optional[Any]:
        """Get a live entry, dropping it if expired"""
        with self._lock:
            entry = self._entries.get(address)
            if entry is None:
                metrics.increment_counter("account_cache_misses")
                return None
            if entry.is_expired():
                del self._entries[address]
                metrics.increment_counter("account_cache_expired")
                metrics.set_gauge("account_cache_entries", len(self._entries))
                return None
            metrics.increment_counter("account_cache_hits")
            return entry.value

    def put(self, address: Pubkey, value: Any) -> None:
        """Insert or refresh an entry"""
        with self._lock:
            self._entries.pop(address, None)
            self._entries[address] = CacheEntry(
                value=value,
                cached_at=time.monotonic(),
                ttl_seconds=self.ttl_seconds
            )
            while len(self._entries) > self.max_entries:
                # dicts keep insertion order, and put() re-inserts refreshed keys
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                logger.debug("account_cache_evicted", address=oldest)
            metrics.set_gauge("account_cache_entries", len(self._entries))

    def invalidate(self, address: Pubkey) -> None:
        """Drop one entry"""
        with self._lock:
            self._entries.pop(address, None)
            metrics.set_gauge("account_cache_entries", len(self._entries))

    def clear(self) -> None:
        """Drop all entries"""
        with self._lock:
            self._entries.clear()
            metrics.set_gauge("account_cache_entries", 0)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
