"""
Redis cache store.

Layout (all keys share the configured prefix):
- ``entry:{key}``  hash with vector, model, created_at, last_accessed, access_count
- ``lru``          sorted set of keys scored by last_accessed
- ``created``      sorted set of keys scored by created_at
- ``metadata``     hash holding the durable metrics snapshot
- ``metrics``      list of JSON metric events, ``metrics:seq`` id counter

Sandi Metz Principles:
- Single Responsibility: Redis data access
- Small methods: Each operation isolated
- Dependency Injection: Redis pool injected
"""

import json
from typing import Dict, List, Optional

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from embedcache.cache.serialization import deserialize_vector, serialize_vector
from embedcache.config import EmbeddingConfig, config
from embedcache.exceptions import CacheUnavailableError
from embedcache.models.cache_entry import CacheEntry
from embedcache.models.statistics import MetricEvent, MetricsSnapshot
from embedcache.repositories.base import CacheStore
from embedcache.utils.logger import get_logger

logger = get_logger(__name__)

# Read-with-touch: bump access stats and LRU score, then return the hash.
TOUCH_SCRIPT = """
local created = redis.call('HGET', KEYS[1], 'created_at')
if not created then
  return nil
end
local accessed = ARGV[1]
if tonumber(created) > tonumber(accessed) then
  accessed = created
end
redis.call('HSET', KEYS[1], 'last_accessed', accessed)
redis.call('HINCRBY', KEYS[1], 'access_count', 1)
redis.call('ZADD', KEYS[2], accessed, ARGV[2])
return redis.call('HGETALL', KEYS[1])
"""

CHUNK_SIZE = 500


async def create_redis_pool(settings: Optional[EmbeddingConfig] = None) -> ConnectionPool:
    """
    Create Redis connection pool.

    Args:
        settings: Configuration (uses global config if None)

    Returns:
        Redis connection pool
    """
    settings = settings or config
    return ConnectionPool.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        decode_responses=False,
    )


class RedisCacheStore(CacheStore):
    """
    Cache store backed by Redis.

    Handles low-level Redis interactions. The pool must be created with
    ``decode_responses=False`` since vectors are stored as raw bytes.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        prefix: str = "embcache:",
        max_events: int = 10000,
    ):
        """
        Initialize repository.

        Args:
            pool: Redis connection pool
            prefix: Key prefix for every key this store owns
            max_events: Number of metric events retained
        """
        self._pool = pool
        self._prefix = prefix
        self._max_events = max_events

    async def lookup(self, key: str, now_ms: int) -> Optional[CacheEntry]:
        try:
            async with Redis(connection_pool=self._pool) as client:
                raw = await client.eval(
                    TOUCH_SCRIPT, 2, self._entry_key(key), self._lru_key, now_ms, key
                )
                if not raw:
                    return None
                return self._parse_entry(key, self._pairs_to_dict(raw))
        except (RedisError, ValueError) as e:
            logger.error("Redis lookup failed", key=key[:12], error=str(e))
            return None

    async def insert(self, entry: CacheEntry) -> None:
        try:
            async with Redis(connection_pool=self._pool) as client:
                pipe = client.pipeline(transaction=True)
                self._queue_insert(pipe, entry)
                await pipe.execute()
        except RedisError as e:
            raise self._unavailable("insert", e) from e

    async def evict_if_needed(self, max_entries: int, headroom: int) -> int:
        try:
            async with Redis(connection_pool=self._pool) as client:
                count = await client.zcard(self._lru_key)
                if count < max_entries:
                    return 0

                to_delete = count - max_entries + max(headroom, 1)
                keys = await client.zrange(self._lru_key, 0, to_delete - 1)
                await self._delete_keys(client, keys)
                logger.debug("Evicted LRU embeddings", deleted=len(keys), cache_size=count - len(keys))
                return len(keys)
        except RedisError as e:
            raise self._unavailable("evict", e) from e

    async def expire_older_than(self, threshold_ms: int) -> int:
        try:
            async with Redis(connection_pool=self._pool) as client:
                keys = await client.zrangebyscore(
                    self._created_key, "-inf", f"({threshold_ms}"
                )
                await self._delete_keys(client, keys)
                return len(keys)
        except RedisError as e:
            raise self._unavailable("expire", e) from e

    async def clear(self) -> int:
        try:
            async with Redis(connection_pool=self._pool) as client:
                keys = await client.zrange(self._lru_key, 0, -1)
                await self._delete_keys(client, keys)
                return len(keys)
        except RedisError as e:
            raise self._unavailable("clear", e) from e

    async def count(self) -> int:
        try:
            async with Redis(connection_pool=self._pool) as client:
                return await client.zcard(self._lru_key)
        except RedisError as e:
            raise self._unavailable("count", e) from e

    async def total_size_bytes(self) -> int:
        try:
            async with Redis(connection_pool=self._pool) as client:
                keys = await client.zrange(self._lru_key, 0, -1)
                total = 0
                for chunk in self._chunks(keys):
                    pipe = client.pipeline(transaction=False)
                    for key in chunk:
                        pipe.hstrlen(self._entry_key(self._decode(key)), "vector")
                    total += sum(await pipe.execute())
                return total
        except RedisError as e:
            raise self._unavailable("size", e) from e

    async def export_entries(self) -> List[CacheEntry]:
        try:
            async with Redis(connection_pool=self._pool) as client:
                keys = [self._decode(k) for k in await client.zrange(self._lru_key, 0, -1)]
                entries: List[CacheEntry] = []
                for chunk in self._chunks(keys):
                    pipe = client.pipeline(transaction=False)
                    for key in chunk:
                        pipe.hgetall(self._entry_key(key))
                    rows = await pipe.execute()
                    entries.extend(
                        self._parse_entry(key, row) for key, row in zip(chunk, rows) if row
                    )
                return entries
        except RedisError as e:
            raise self._unavailable("export", e) from e

    async def save_metrics_snapshot(self, snapshot: MetricsSnapshot) -> None:
        mapping = {
            "total_generated": snapshot.total_generated,
            "total_hits": snapshot.total_hits,
            "total_misses": snapshot.total_misses,
            "average_generation_time": snapshot.average_generation_time,
            "last_updated": snapshot.last_updated,
            "provider_usage": json.dumps(snapshot.provider_usage),
            "error_counts": json.dumps(snapshot.error_counts),
        }
        try:
            async with Redis(connection_pool=self._pool) as client:
                await client.hset(self._metadata_key, mapping=mapping)
        except RedisError as e:
            raise self._unavailable("save_metrics", e) from e

    async def load_metrics_snapshot(self) -> Optional[MetricsSnapshot]:
        try:
            async with Redis(connection_pool=self._pool) as client:
                raw = await client.hgetall(self._metadata_key)
        except RedisError as e:
            raise self._unavailable("load_metrics", e) from e

        if not raw:
            return None
        data = {self._decode(k): self._decode(v) for k, v in raw.items()}
        return MetricsSnapshot(
            total_generated=int(data.get("total_generated", 0)),
            total_hits=int(data.get("total_hits", 0)),
            total_misses=int(data.get("total_misses", 0)),
            average_generation_time=float(data.get("average_generation_time", 0.0)),
            last_updated=int(data.get("last_updated", 0)),
            provider_usage=json.loads(data.get("provider_usage", "{}")),
            error_counts=json.loads(data.get("error_counts", "{}")),
        )

    async def append_metric_event(self, event: MetricEvent) -> int:
        try:
            async with Redis(connection_pool=self._pool) as client:
                event_id = await client.incr(self._metrics_seq_key)
                payload = event.model_copy(update={"id": event_id}).model_dump_json()
                pipe = client.pipeline(transaction=True)
                pipe.rpush(self._metrics_key, payload)
                pipe.ltrim(self._metrics_key, -self._max_events, -1)
                await pipe.execute()
                return event_id
        except RedisError as e:
            raise self._unavailable("append_metric", e) from e

    async def get_metric_events(self, limit: int = 100) -> List[MetricEvent]:
        if limit <= 0:
            return []
        try:
            async with Redis(connection_pool=self._pool) as client:
                rows = await client.lrange(self._metrics_key, -limit, -1)
        except RedisError as e:
            raise self._unavailable("read_metrics", e) from e
        return [MetricEvent.model_validate_json(row) for row in rows]

    async def ping(self) -> bool:
        try:
            async with Redis(connection_pool=self._pool) as client:
                await client.ping()
                return True
        except RedisError as e:
            logger.error("Redis ping failed", error=str(e))
            return False

    async def close(self) -> None:
        await self._pool.disconnect()
        logger.info("Redis pool closed")

    def _queue_insert(self, pipe, entry: CacheEntry) -> None:
        """Queue the commands that replace-or-create one entry."""
        entry_key = self._entry_key(entry.key)
        pipe.delete(entry_key)
        pipe.hset(
            entry_key,
            mapping={
                "vector": serialize_vector(entry.vector),
                "model": entry.model,
                "created_at": entry.created_at,
                "last_accessed": entry.last_accessed,
                "access_count": entry.access_count,
            },
        )
        pipe.zadd(self._lru_key, {entry.key: entry.last_accessed})
        pipe.zadd(self._created_key, {entry.key: entry.created_at})

    async def _delete_keys(self, client: Redis, keys: List) -> None:
        """Delete entries and their index members."""
        for chunk in self._chunks([self._decode(k) for k in keys]):
            pipe = client.pipeline(transaction=True)
            pipe.delete(*[self._entry_key(k) for k in chunk])
            pipe.zrem(self._lru_key, *chunk)
            pipe.zrem(self._created_key, *chunk)
            await pipe.execute()

    def _parse_entry(self, key: str, row: Dict) -> CacheEntry:
        fields = {self._decode(k): v for k, v in row.items()}
        return CacheEntry(
            key=key,
            vector=deserialize_vector(fields["vector"]),
            model=self._decode(fields["model"]),
            created_at=int(fields["created_at"]),
            last_accessed=int(fields["last_accessed"]),
            access_count=int(fields["access_count"]),
        )

    @staticmethod
    def _pairs_to_dict(raw: List) -> Dict:
        return {raw[i]: raw[i + 1] for i in range(0, len(raw), 2)}

    @staticmethod
    def _decode(value) -> str:
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)

    @staticmethod
    def _chunks(items: List) -> List[List]:
        return [items[i : i + CHUNK_SIZE] for i in range(0, len(items), CHUNK_SIZE)]

    def _unavailable(self, operation: str, error: Exception) -> CacheUnavailableError:
        logger.error("Redis operation failed", operation=operation, error=str(error))
        return CacheUnavailableError(f"Redis {operation} failed: {error}")

    def _entry_key(self, key: str) -> str:
        return f"{self._prefix}entry:{key}"

    @property
    def _lru_key(self) -> str:
        return f"{self._prefix}lru"

    @property
    def _created_key(self) -> str:
        return f"{self._prefix}created"

    @property
    def _metadata_key(self) -> str:
        return f"{self._prefix}metadata"

    @property
    def _metrics_key(self) -> str:
        return f"{self._prefix}metrics"

    @property
    def _metrics_seq_key(self) -> str:
        return f"{self._prefix}metrics:seq"
