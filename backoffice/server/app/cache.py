"""Cache administration: statistics and manual clearing."""

import logging
from typing import Optional

from fastapi import APIRouter, Query

from backoffice.server.utils.api import CacheClient, Invalidator, handle_api_exceptions
from backoffice.utils.cache.memory_cache import as_glob

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/cache", tags=["Cache"])


@router.get("/stats")
@handle_api_exceptions("retrieve cache stats", logger)
async def get_cache_stats(cache: CacheClient):
    """Hit/miss/error counters, hit rate, serving backend and a live health check."""
    return {**cache.get_stats(), "healthy": await cache.health_check()}


@router.post("/clear")
@handle_api_exceptions("clear cache", logger)
async def clear_cache(
    invalidator: Invalidator,
    pattern: Optional[str] = Query(
        None,
        description="Key pattern or prefix, e.g. 'business-cards:' or 'blockchain:balance:*'. Omit to clear everything.",
    ),
):
    if not pattern:
        return {"message": "Cleared all cache entries", "success": await invalidator.invalidate_all()}

    target = as_glob(pattern)
    deleted = sum((await invalidator.invalidate_patterns([target])).values())
    logger.info(f"Manual cache clear of {target} removed {deleted} entries")
    return {
        "message": f"Cleared {deleted} cache entries matching {target}",
        "deleted": deleted,
        "pattern": target,
    }
