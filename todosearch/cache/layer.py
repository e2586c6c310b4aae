import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional

from cachetools import TTLCache
from redis.asyncio import Redis, RedisError

from todosearch.core.config import Settings

logger = logging.getLogger(__name__)


class CacheLayer:
    """
    Two-tier read cache for todo lookups.

    L1: Process-local TTLCache (fast, limited size)
    L2: Redis (shared, larger capacity), optional

    Features:
    - Stampede protection with per-key locks
    - Graceful degradation to L1 only when Redis is unavailable
    - Automatic key namespacing
    """

    def __init__(self, settings: Settings, redis: Redis | None = None):
        self._settings = settings
        self._redis = redis
        self.l1 = TTLCache(maxsize=settings.l1_maxsize, ttl=settings.l1_ttl_seconds)
        # one lock per key while a loader runs
        self._locks = TTLCache(maxsize=10_000, ttl=300)
        self._initialized = False

        self.stats = {"l1_hits": 0, "l2_hits": 0, "misses": 0, "errors": 0}

    async def init_cache(self):
        """Connect to Redis, falling back to L1 only on failure."""
        if self._initialized:
            return
        self._initialized = True

        if self._redis is None and self._settings.redis_dsn:
            self._redis = Redis.from_url(
                self._settings.redis_dsn,
                encoding="utf-8",
                decode_responses=True,
                max_connections=self._settings.redis_pool_size,
                socket_connect_timeout=5,
                socket_keepalive=True,
                health_check_interval=30,
            )

        if self._redis is None:
            logger.info("Cache layer initialized (L1 only)")
            return

        try:
            await self._redis.ping()
            logger.info("Redis connection established")
        except (RedisError, OSError) as e:
            logger.error(f"Redis initialization failed, using L1 only: {e}")
            await self._redis.aclose()
            self._redis = None

    def _l1_key(self, key: str) -> str:
        return f"{self._settings.cache_namespace}l1:{key}"

    def _l2_key(self, key: str) -> str:
        return f"{self._settings.cache_namespace}l2:{key}"

    def _get_lock(self, key: str) -> asyncio.Lock:
        return self._locks.setdefault(key, asyncio.Lock())

    async def _get_l2(self, key: str) -> Any:
        if not self._redis:
            return None
        try:
            raw = await self._redis.get(self._l2_key(key))
        except RedisError as e:
            logger.error(f"Redis GET error for {key}: {e}")
            self.stats["errors"] += 1
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return raw

    async def get(
        self,
        key: str,
        loader: Optional[Callable[[], Awaitable[Any]]] = None,
        l2_ttl: Optional[int] = None,
    ):
        """
        Retrieve value from cache hierarchy: L1 -> L2 -> loader.

        Args:
            key: Cache key (will be namespaced automatically)
            loader: Async function to load value on cache miss
            l2_ttl: TTL for L2 cache in seconds (uses default if None)

        Returns:
            Cached value or loaded value, or None if not found
        """
        await self.init_cache()
        l1_key = self._l1_key(key)

        if l1_key in self.l1:
            self.stats["l1_hits"] += 1
            return self.l1[l1_key]

        value = await self._get_l2(key)
        if value is not None:
            self.stats["l2_hits"] += 1
            self.l1[l1_key] = value
            return value

        if loader is None:
            self.stats["misses"] += 1
            return None

        async with self._get_lock(key):
            # another waiter may have loaded it
            if l1_key in self.l1:
                return self.l1[l1_key]

            self.stats["misses"] += 1
            value = await loader()
            if value is None:
                return None

            await self.set(key, value, l2_ttl)
            return value

    async def set(self, key: str, value: Any, l2_ttl: Optional[int] = None):
        await self.init_cache()
        self.l1[self._l1_key(key)] = value

        if self._redis:
            ttl = l2_ttl or self._settings.l2_ttl_seconds
            try:
                await self._redis.set(
                    self._l2_key(key), json.dumps(value, default=str), ex=ttl
                )
            except RedisError as e:
                logger.error(f"Redis SET error for {key}: {e}")
                self.stats["errors"] += 1

    async def delete(self, key: str):
        """Delete a key from both cache layers."""
        await self.init_cache()
        self.l1.pop(self._l1_key(key), None)

        if self._redis:
            try:
                await self._redis.delete(self._l2_key(key))
            except RedisError as e:
                logger.error(f"Redis DELETE error for {key}: {e}")
                self.stats["errors"] += 1

    async def delete_pattern(self, prefix: str):
        """Delete every key starting with ``prefix`` from both layers."""
        await self.init_cache()

        l1_prefix = self._l1_key(prefix)
        for l1_key in [k for k in list(self.l1.keys()) if k.startswith(l1_prefix)]:
            self.l1.pop(l1_key, None)

        if not self._redis:
            return

        try:
            deleted_count = 0
            cursor = 0
            while True:
                cursor, keys = await self._redis.scan(
                    cursor, match=f"{self._l2_key(prefix)}*", count=100
                )
                if keys:
                    await self._redis.delete(*keys)
                    deleted_count += len(keys)
                if cursor == 0:
                    break
            logger.info(f"Pattern delete {prefix}* removed {deleted_count} keys")
        except RedisError as e:
            logger.error(f"Pattern delete error for {prefix}: {e}")
            self.stats["errors"] += 1

    async def close(self):
        if self._redis:
            try:
                await self._redis.aclose()
                logger.info("Redis connection closed")
            except RedisError as e:
                logger.error(f"Error closing Redis: {e}")

    def get_stats(self) -> dict:
        total = self.stats["l1_hits"] + self.stats["l2_hits"] + self.stats["misses"]
        return {
            **self.stats,
            "l1_size": len(self.l1),
            "l1_maxsize": self.l1.maxsize,
            "l2_enabled": self._redis is not None,
            "hit_rate": (
                (self.stats["l1_hits"] + self.stats["l2_hits"]) / total
                if total > 0
                else 0
            ),
        }
