"""
Redis cache client.

Provides connection pooling, health checking, and basic cache operations
with TTL support and pattern-based deletion. When Redis is not connected or
a command fails, operations are served by an in-process MemoryCache so a
request is never blocked by the cache backend.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from backoffice.config.settings import (
    get_nested_config,
    get_redis_max_connections,
    get_redis_url,
    is_memory_fallback_enabled,
    is_redis_cache_enabled,
)
from backoffice.utils.cache.memory_cache import MemoryCache, as_glob
from backoffice.utils.cache.serialization import dumps

logger = logging.getLogger(__name__)

SCAN_BATCH_SIZE = 100


def _empty_stats() -> Dict[str, int]:
    return {
        "hits": 0,
        "misses": 0,
        "sets": 0,
        "deletes": 0,
        "errors": 0,
        "fallbacks": 0,
    }


class RedisCacheClient:
    """
    Async Redis cache client with connection pooling and in-process fallback.

    Features:
    - Connection pool management
    - Health checking
    - JSON serialization
    - TTL support
    - Pattern-based deletion (SCAN)
    - Memory fallback when Redis is unavailable or erroring

    Errors are logged and counted, never raised to the caller.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        max_connections: int = 10,
        socket_timeout: float = 1.0,
        socket_connect_timeout: float = 2.0,
        enabled: bool = True,
        fallback: Optional[MemoryCache] = None,
        client: Optional[redis.Redis] = None,
    ):
        """
        Initialize Redis cache client.

        Args:
            url: Redis connection URL (redis://host:port/db)
            max_connections: Maximum connections in pool
            socket_timeout: Command timeout in seconds
            socket_connect_timeout: Connect timeout in seconds
            enabled: Master switch; a disabled cache stores nothing
            fallback: In-process store used while Redis is unavailable
            client: Pre-built Redis client (skips pool creation in connect())
        """
        self.url = url
        self.max_connections = max_connections
        self.socket_timeout = socket_timeout
        self.socket_connect_timeout = socket_connect_timeout
        self.enabled = enabled
        self.fallback = fallback

        self.pool: Optional[ConnectionPool] = None
        self.client: Optional[redis.Redis] = client

        self.stats = _empty_stats()

        if not self.enabled:
            logger.warning("Cache is disabled in configuration")

    @classmethod
    def from_config(cls) -> "RedisCacheClient":
        """Build a client from config.yaml / environment settings."""
        fallback = None
        if is_memory_fallback_enabled():
            fallback = MemoryCache(
                default_ttl=int(get_nested_config('redis.memory_default_ttl', 5))
            )

        return cls(
            url=get_redis_url(),
            max_connections=get_redis_max_connections(),
            socket_timeout=float(get_nested_config('redis.socket_timeout', 1.0)),
            socket_connect_timeout=float(get_nested_config('redis.socket_connect_timeout', 2.0)),
            enabled=is_redis_cache_enabled(),
            fallback=fallback,
        )

    @property
    def backend(self) -> str:
        """Which store currently serves requests: redis, memory or disabled."""
        if not self.enabled:
            return "disabled"
        if self.client is not None:
            return "redis"
        if self.fallback is not None:
            return "memory"
        return "disabled"

    # ==================== Connection Management ====================

    async def connect(self) -> None:
        """
        Initialize Redis connection pool.

        Raises the connection error after logging it; the client keeps
        working on the memory fallback.
        """
        if not self.enabled:
            logger.info("Cache disabled, skipping Redis connection")
            return

        try:
            if self.client is None:
                self.pool = ConnectionPool.from_url(
                    self.url,
                    max_connections=self.max_connections,
                    socket_timeout=self.socket_timeout,
                    socket_connect_timeout=self.socket_connect_timeout,
                    decode_responses=False,  # We handle JSON encoding
                )
                self.client = redis.Redis(connection_pool=self.pool)

            await self.client.ping()
            logger.info(f"Redis cache connected: {self.url}")

        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            await self.disconnect()
            raise

    async def disconnect(self) -> None:
        """Close Redis connection pool."""
        if self.client is not None:
            try:
                await self.client.aclose()
            except Exception as e:
                logger.warning(f"Error closing Redis client: {e}")
            self.client = None
            logger.info("Redis cache disconnected")

        if self.pool is not None:
            await self.pool.disconnect()
            self.pool = None

    async def health_check(self) -> bool:
        """
        Check cache health.

        Returns:
            True if Redis answers PING, or if the memory fallback is serving
        """
        if not self.enabled:
            return False

        if self.client is None:
            return self.fallback is not None

        try:
            await self.client.ping()
            return True
        except Exception as e:
            logger.error(f"Redis health check failed: {e}")
            return False

    def _record_error(self, operation: str, target: str, error: Exception) -> None:
        self.stats["errors"] += 1
        if self.fallback is not None:
            self.stats["fallbacks"] += 1
        logger.error(f"Cache {operation} error for {target}: {error}")

    # ==================== Basic Operations ====================

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value (JSON deserialized) or None if not found
        """
        if not self.enabled:
            return None

        if self.client is not None:
            try:
                value = await self.client.get(key)
            except Exception as e:
                self._record_error("get", key, e)
            else:
                if value is None:
                    self.stats["misses"] += 1
                    logger.debug(f"Cache MISS: {key}")
                    return None

                try:
                    deserialized = json.loads(value)
                except json.JSONDecodeError as e:
                    logger.error(f"Failed to deserialize cache value for {key}: {e}")
                    self.stats["errors"] += 1
                    return None

                self.stats["hits"] += 1
                logger.debug(f"Cache HIT: {key}")
                return deserialized

        if self.fallback is None:
            self.stats["misses"] += 1
            return None

        value = self.fallback.get(key)
        if value is None:
            self.stats["misses"] += 1
            logger.debug(f"Cache MISS (memory): {key}")
            return None

        self.stats["hits"] += 1
        logger.debug(f"Cache HIT (memory): {key}")
        return value

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
    ) -> bool:
        """
        Set value in cache.

        Args:
            key: Cache key
            value: Value to cache (will be JSON serialized)
            ttl: Time-to-live in seconds (optional)

        Returns:
            True if stored (in Redis or the memory fallback), False otherwise
        """
        if not self.enabled:
            return False

        try:
            serialized = dumps(value)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize value for {key}: {e}")
            self.stats["errors"] += 1
            return False

        if self.client is not None:
            try:
                if ttl:
                    await self.client.setex(key, ttl, serialized)
                else:
                    await self.client.set(key, serialized)

                self.stats["sets"] += 1
                logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
                return True

            except Exception as e:
                self._record_error("set", key, e)

        if self.fallback is None:
            return False

        self.fallback.set(key, value, ttl)
        self.stats["sets"] += 1
        logger.debug(f"Cache SET (memory): {key} (TTL: {ttl}s)")
        return True

    async def delete(self, key: str) -> bool:
        """
        Delete key from Redis and the memory fallback.

        Returns:
            True if a key was deleted from either store
        """
        if not self.enabled:
            return False

        deleted = False

        if self.client is not None:
            try:
                deleted = bool(await self.client.delete(key))
            except Exception as e:
                self._record_error("delete", key, e)

        if self.fallback is not None:
            deleted = self.fallback.delete(key) or deleted

        if deleted:
            self.stats["deletes"] += 1
            logger.debug(f"Cache DELETE: {key}")
        return deleted

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching pattern.

        A pattern without glob characters is treated as a prefix, so
        "business-cards:" and "business-cards:*" are equivalent. Uses SCAN
        for safe iteration over large keysets.

        Args:
            pattern: Key pattern (e.g., "business-cards:list:*")

        Returns:
            Number of keys deleted
        """
        if not self.enabled:
            return 0

        glob = as_glob(pattern)
        deleted_count = 0

        if self.client is not None:
            try:
                batch: List[Any] = []
                async for key in self.client.scan_iter(match=glob, count=SCAN_BATCH_SIZE):
                    batch.append(key)
                    if len(batch) >= SCAN_BATCH_SIZE:
                        deleted_count += await self.client.delete(*batch)
                        batch = []
                if batch:
                    deleted_count += await self.client.delete(*batch)
            except Exception as e:
                self._record_error("delete pattern", glob, e)

        if self.fallback is not None:
            deleted_count += self.fallback.delete_pattern(glob)

        self.stats["deletes"] += deleted_count
        logger.debug(f"Cache DELETE pattern '{glob}': {deleted_count} keys")
        return deleted_count

    async def exists(self, key: str) -> bool:
        """Check if key exists in cache."""
        if not self.enabled:
            return False

        if self.client is not None:
            try:
                return bool(await self.client.exists(key))
            except Exception as e:
                self._record_error("exists", key, e)

        return self.fallback.exists(key) if self.fallback is not None else False

    async def ttl(self, key: str) -> int:
        """
        Get remaining TTL for key.

        Returns:
            TTL in seconds, -1 if no expiry, -2 if key doesn't exist
        """
        if not self.enabled:
            return -2

        if self.client is not None:
            try:
                return await self.client.ttl(key)
            except Exception as e:
                self._record_error("ttl", key, e)

        return self.fallback.ttl(key) if self.fallback is not None else -2

    async def increment(self, key: str, by: int = 1) -> Optional[int]:
        """
        Atomically increment an integer counter.

        Returns:
            New value, or None if the cache is disabled
        """
        if not self.enabled:
            return None

        if self.client is not None:
            try:
                return int(await self.client.incrby(key, by))
            except Exception as e:
                self._record_error("increment", key, e)

        if self.fallback is None:
            return None
        return self.fallback.increment(key, by)

    # ==================== Bulk Operations ====================

    async def get_many(self, keys: Sequence[str]) -> List[Optional[Any]]:
        """
        Get several values at once (MGET).

        Returns:
            Values in key order, None for misses
        """
        if not self.enabled or not keys:
            return [None] * len(keys)

        if self.client is not None:
            try:
                raw_values = await self.client.mget(list(keys))
            except Exception as e:
                self._record_error("get_many", f"{len(keys)} keys", e)
            else:
                results: List[Optional[Any]] = []
                for key, raw in zip(keys, raw_values):
                    if raw is None:
                        self.stats["misses"] += 1
                        results.append(None)
                        continue
                    try:
                        results.append(json.loads(raw))
                        self.stats["hits"] += 1
                    except json.JSONDecodeError as e:
                        logger.error(f"Failed to deserialize cache value for {key}: {e}")
                        self.stats["errors"] += 1
                        results.append(None)
                return results

        if self.fallback is None:
            self.stats["misses"] += len(keys)
            return [None] * len(keys)

        results = [self.fallback.get(key) for key in keys]
        hits = sum(1 for value in results if value is not None)
        self.stats["hits"] += hits
        self.stats["misses"] += len(keys) - hits
        return results

    async def set_many(self, items: Sequence[Dict[str, Any]]) -> bool:
        """
        Set several values in one pipeline.

        Args:
            items: Dicts with "key", "value" and optional "ttl"

        Returns:
            True if every item was stored
        """
        if not self.enabled:
            return False

        try:
            prepared = [(item["key"], dumps(item["value"]), item.get("ttl")) for item in items]
        except (TypeError, ValueError, KeyError) as e:
            logger.error(f"Failed to serialize values for set_many: {e}")
            self.stats["errors"] += 1
            return False

        if self.client is not None:
            try:
                async with self.client.pipeline(transaction=False) as pipe:
                    for key, serialized, ttl in prepared:
                        if ttl:
                            pipe.setex(key, ttl, serialized)
                        else:
                            pipe.set(key, serialized)
                    await pipe.execute()
                self.stats["sets"] += len(prepared)
                return True
            except Exception as e:
                self._record_error("set_many", f"{len(prepared)} keys", e)

        if self.fallback is None:
            return False

        for item in items:
            self.fallback.set(item["key"], item["value"], item.get("ttl"))
        self.stats["sets"] += len(items)
        return True

    async def clear_all(self) -> bool:
        """
        Clear all cache entries.

        WARNING: This flushes the entire Redis database.
        """
        if not self.enabled:
            return False

        success = True
        if self.client is not None:
            try:
                await self.client.flushdb()
                logger.warning("Cache cleared (FLUSHDB)")
            except Exception as e:
                self._record_error("clear", "*", e)
                success = False

        if self.fallback is not None:
            self.fallback.clear()
        return success

    # ==================== Statistics ====================

    def get_stats(self) -> dict:
        """
        Get cache statistics.

        Returns:
            Dict with hits, misses, sets, deletes, errors, fallbacks, hit_rate
        """
        total_requests = self.stats["hits"] + self.stats["misses"]
        hit_rate = (
            (self.stats["hits"] / total_requests * 100)
            if total_requests > 0
            else 0.0
        )

        return {
            **self.stats,
            "total_requests": total_requests,
            "hit_rate": round(hit_rate, 2),
            "enabled": self.enabled,
            "backend": self.backend,
        }

    def reset_stats(self) -> None:
        """Reset cache statistics."""
        self.stats = _empty_stats()
        logger.info("Cache statistics reset")


async def init_cache(client: RedisCacheClient) -> RedisCacheClient:
    """
    Connect a cache client, degrading to the memory fallback on failure.

    Returns:
        The same client, connected to Redis when possible
    """
    try:
        logger.info("Initializing Redis cache client...")
        await client.connect()
        logger.info("Redis cache client initialized")
    except Exception as e:
        logger.warning(f"Redis cache initialization failed: {e}")
        logger.warning(f"Server will continue with the '{client.backend}' cache backend")
    return client

