"""
Completed order archive.

Orders leave the open-order book when they reach a terminal status. They
are kept here for a while so callers asking about a just-finished order
still get its final state without a REST round trip.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..core import get_logger
from ..core.models import OpenOrder, order_key

logger = get_logger(__name__)


@dataclass
class CacheEntry:
    """
    Archived order with expiry metadata.

    Attributes:
        order: Final order record
        archived_at: When the order was archived
        expires_at: When the entry expires
    """
    order: OpenOrder
    archived_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    expires_at: Optional[datetime] = None

    @property
    def is_expired(self) -> bool:
        """Check if entry has expired."""
        if self.expires_at is None:
            return False
        return datetime.now(timezone.utc) > self.expires_at

    @property
    def age_seconds(self) -> float:
        """Get age in seconds."""
        return (datetime.now(timezone.utc) - self.archived_at).total_seconds()


class CompletedOrderCache:
    """
    TTL cache of terminal orders keyed by ``symbol-orderId``.

    When full, the oldest entry is evicted.
    """

    def __init__(self, ttl: Optional[float] = 600.0, max_size: int = 10000):
        """
        Initialize cache.

        Args:
            ttl: Seconds an order stays archived (None for no expiry)
            max_size: Maximum number of archived orders
        """
        self.ttl = ttl
        self.max_size = max_size
        self._cache: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._cache)

    def add(self, order: OpenOrder) -> None:
        """Archive a terminal order, replacing any previous entry."""
        expires_at = None
        if self.ttl is not None:
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=self.ttl)

        with self._lock:
            if len(self._cache) >= self.max_size and order.key not in self._cache:
                oldest_key = min(self._cache, key=lambda k: self._cache[k].archived_at)
                del self._cache[oldest_key]
            self._cache[order.key] = CacheEntry(order=order.model_copy(), expires_at=expires_at)

    def get(self, symbol: str, order_id: int) -> Optional[OpenOrder]:
        """
        Look up an archived order.

        Returns:
            Copy of the final order, None if absent or expired
        """
        key = order_key(symbol, order_id)
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            if entry.is_expired:
                del self._cache[key]
                return None
            return entry.order.model_copy()

    def cleanup_expired(self) -> int:
        """
        Drop expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            expired = [k for k, e in self._cache.items() if e.is_expired]
            for key in expired:
                del self._cache[key]

        if expired:
            logger.debug(f"Removed {len(expired)} expired completed orders")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
