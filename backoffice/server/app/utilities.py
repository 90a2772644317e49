"""
Health check endpoint.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from backoffice.server.utils.api import CacheClient

logger = logging.getLogger(__name__)

# Create router (health checks are unversioned at /health)
health_router = APIRouter(tags=["Health"])


@health_router.get("/health")
async def health_check(cache: CacheClient):
    """Liveness plus the cache backend currently serving requests."""
    cache_healthy = await cache.health_check()
    return {
        "status": "healthy" if cache_healthy else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": "0.1.0",
        "service": "backoffice-cache",
        "cache": {
            "backend": cache.backend,
            "healthy": cache_healthy,
        },
    }
