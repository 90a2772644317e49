"""
Cache utilities.

Provides Redis-based caching with:
- Connection pooling and health checking
- In-process fallback store
- Deterministic key generation
- Read-through access
- Declarative cache invalidation
"""

from backoffice.utils.cache.redis_cache import (
    RedisCacheClient,
    init_cache,
)

from backoffice.utils.cache.memory_cache import MemoryCache

from backoffice.utils.cache.cache_keys import (
    CacheKeyBuilder,
    CacheNamespace,
    balance_key,
    balance_pattern,
    historical_balance_key,
)

from backoffice.utils.cache.read_through import (
    CacheLookup,
    PageLookup,
    ReadThroughCache,
)

from backoffice.utils.cache.invalidation import (
    CacheInvalidator,
    INVALIDATION_TABLE,
    InvalidationRule,
    MutationAction,
    MutationEvent,
)

__all__ = [
    # Stores
    "RedisCacheClient",
    "MemoryCache",
    "init_cache",
    # Cache keys
    "CacheKeyBuilder",
    "CacheNamespace",
    "balance_key",
    "balance_pattern",
    "historical_balance_key",
    # Read-through
    "CacheLookup",
    "PageLookup",
    "ReadThroughCache",
    # Invalidation
    "CacheInvalidator",
    "INVALIDATION_TABLE",
    "InvalidationRule",
    "MutationAction",
    "MutationEvent",
]
