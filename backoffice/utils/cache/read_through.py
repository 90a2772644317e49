"""
Read-through access on top of the cache client.

On a hit the cached value is returned; on a miss (or a cache error) the
source of truth is called and its result written back. The fetch is the only
thing allowed to fail a request: population errors are logged and dropped.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, Set, Tuple, TypeVar

from backoffice.utils.cache.redis_cache import RedisCacheClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CacheLookup(Generic[T]):
    """Value plus whether it came from the cache."""
    value: T
    cached: bool


@dataclass
class PageLookup:
    """A list page and its total count."""
    items: List[Any]
    total: int
    cached: bool


class ReadThroughCache:
    """Cache-aside helper used by the list and statistics endpoints."""

    def __init__(self, cache: RedisCacheClient):
        self.cache = cache
        self._background: Set[asyncio.Task] = set()

    async def _safe_get(self, key: str) -> Optional[Any]:
        try:
            return await self.cache.get(key)
        except Exception as e:
            logger.error(f"Read-through get failed for {key}: {e}")
            return None

    async def _safe_set(self, key: str, value: Any, ttl: Optional[int]) -> bool:
        try:
            return await self.cache.set(key, value, ttl=ttl)
        except Exception as e:
            logger.error(f"Read-through populate failed for {key}: {e}")
            return False

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[T]],
        ttl: Optional[int] = None,
    ) -> CacheLookup[T]:
        """
        Return the cached value for key, fetching and caching it on a miss.

        Args:
            key: Cache key
            fetch: Coroutine factory reading from the source of truth
            ttl: Time-to-live in seconds for the populated entry

        Returns:
            CacheLookup with the value and a cached flag

        Raises:
            Whatever fetch() raises; nothing is cached in that case.
        """
        cached_value = await self._safe_get(key)
        if cached_value is not None:
            return CacheLookup(value=cached_value, cached=True)

        value = await fetch()
        if value is not None:
            await self._safe_set(key, value, ttl)
        return CacheLookup(value=value, cached=False)

    async def get_or_fetch_page(
        self,
        data_key: str,
        count_key: str,
        fetch_page: Callable[[], Awaitable[Tuple[List[Any], int]]],
        ttl: Optional[int] = None,
    ) -> PageLookup:
        """
        Read-through for a paginated list stored as two entries.

        The page is served from cache only when both the items and the total
        are present; otherwise both are fetched and written back in the
        background, so the response does not wait on the cache. An empty page
        is a valid hit.
        """
        items = await self._safe_get(data_key)
        total = await self._safe_get(count_key)

        if items is not None and total is not None:
            return PageLookup(items=items, total=int(total), cached=True)

        items, total = await fetch_page()
        self.warm(data_key, items, ttl)
        self.warm(count_key, total, ttl)
        return PageLookup(items=items, total=total, cached=False)

    def warm(self, key: str, value: Any, ttl: Optional[int] = None) -> asyncio.Task:
        """Populate key in the background without awaiting the write."""
        task = asyncio.create_task(self._safe_set(key, value, ttl))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def drain(self) -> None:
        """Wait for background writes still in flight (used at shutdown)."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
