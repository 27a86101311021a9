"""
Tests for CompletedOrderCache.
"""

from datetime import datetime, timedelta, timezone

from cex_account_data.core.models import OpenOrder
from cex_account_data.sync.completed_orders import CacheEntry, CompletedOrderCache


def filled(order_id: int, symbol: str = "BTCUSDT") -> OpenOrder:
    return OpenOrder(symbol=symbol, order_id=order_id, status="FILLED")


class TestCacheEntry:
    """Test archive entry expiry."""

    def test_no_expiry(self):
        """Test an entry without expiry never expires."""
        entry = CacheEntry(order=filled(1))
        assert entry.is_expired is False
        assert entry.age_seconds >= 0

    def test_expired(self):
        """Test an entry past its expiry reports expired."""
        entry = CacheEntry(
            order=filled(1),
            expires_at=datetime.now(timezone.utc) - timedelta(seconds=1),
        )
        assert entry.is_expired is True


class TestCompletedOrderCache:
    """Test the completed order archive."""

    def test_add_and_get(self):
        """Test an archived order can be looked up by symbol and id."""
        cache = CompletedOrderCache()
        cache.add(filled(1))

        assert cache.get("BTCUSDT", 1).status == "FILLED"
        assert cache.get("ETHUSDT", 1) is None
        assert cache.size == 1

    def test_get_returns_copy(self):
        """Test callers cannot mutate archived orders."""
        cache = CompletedOrderCache()
        cache.add(filled(1))

        cache.get("BTCUSDT", 1).status = "CANCELED"
        assert cache.get("BTCUSDT", 1).status == "FILLED"

    def test_expired_entry_dropped(self):
        """Test expired entries are not returned."""
        cache = CompletedOrderCache(ttl=-1)
        cache.add(filled(1))

        assert cache.get("BTCUSDT", 1) is None
        assert cache.size == 0

    def test_cleanup_expired(self):
        """Test cleanup removes every expired entry."""
        cache = CompletedOrderCache(ttl=-1)
        cache.add(filled(1))
        cache.add(filled(2))

        assert cache.cleanup_expired() == 2
        assert cache.size == 0

    def test_evicts_oldest_when_full(self):
        """Test the oldest entry is evicted at capacity."""
        cache = CompletedOrderCache(max_size=2)
        cache.add(filled(1))
        cache.add(filled(2))
        cache.add(filled(3))

        assert cache.size == 2
        assert cache.get("BTCUSDT", 1) is None
        assert cache.get("BTCUSDT", 3) is not None

    def test_readd_does_not_evict(self):
        """Test replacing an archived order at capacity keeps the others."""
        cache = CompletedOrderCache(max_size=2)
        cache.add(filled(1))
        cache.add(filled(2))
        cache.add(filled(2))

        assert cache.get("BTCUSDT", 1) is not None

    def test_clear(self):
        """Test clear empties the archive."""
        cache = CompletedOrderCache()
        cache.add(filled(1))
        cache.clear()
        assert cache.size == 0
