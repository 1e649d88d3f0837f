"""
Eviction and expiry policy.

Capacity is enforced synchronously before every insert. Expiry runs only
when the host application calls the cleanup operation.

Sandi Metz Principles:
- Single Responsibility: Decide what leaves the cache
- Dependency Injection: Store passed per call
"""

from dataclasses import dataclass

from embedcache.models.cache_entry import CacheEntry
from embedcache.repositories.base import CacheStore
from embedcache.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class EvictionConfig:
    """Eviction configuration."""

    max_entries: int = 10000
    headroom: int = 100
    ttl_ms: int = 7 * 24 * 60 * 60 * 1000


class EvictionPolicy:
    """
    LRU capacity bound plus TTL expiry.

    Headroom entries are evicted together with the overflow so that a full
    cache does not evict on every insert.
    """

    def __init__(self, config: EvictionConfig | None = None):
        """
        Initialize policy.

        Args:
            config: Eviction configuration (uses defaults if None)
        """
        self._config = config or EvictionConfig()

    @property
    def max_entries(self) -> int:
        """Get capacity."""
        return self._config.max_entries

    @property
    def ttl_ms(self) -> int:
        """Get entry time-to-live."""
        return self._config.ttl_ms

    async def make_room(self, store: CacheStore) -> int:
        """
        Evict least recently used entries if the store is at capacity.

        Args:
            store: Cache store

        Returns:
            Number of entries evicted

        Raises:
            CacheUnavailableError: If the store cannot be reached
        """
        evicted = await store.evict_if_needed(
            self._config.max_entries, self._config.headroom
        )
        if evicted:
            logger.info("Evicted LRU entries", count=evicted)
        return evicted

    async def sweep(self, store: CacheStore, now_ms: int) -> int:
        """
        Delete entries older than the TTL.

        Args:
            store: Cache store
            now_ms: Current time (epoch ms)

        Returns:
            Number of entries expired

        Raises:
            CacheUnavailableError: If the store cannot be reached
        """
        expired = await store.expire_older_than(self.expiry_threshold(now_ms))
        logger.info("Expired cache entries", count=expired, ttl_ms=self._config.ttl_ms)
        return expired

    def expiry_threshold(self, now_ms: int) -> int:
        """Get the creation time before which entries are stale."""
        return now_ms - self._config.ttl_ms

    def is_expired(self, entry: CacheEntry, now_ms: int) -> bool:
        """
        Check if an entry is older than the TTL.

        Args:
            entry: Cache entry
            now_ms: Current time (epoch ms)

        Returns:
            True if the entry should no longer be served
        """
        return entry.age_ms(now_ms) > self._config.ttl_ms
