"""
Dashboard API Router.

- GET /api/v1/dashboard/summary - Cached dashboard statistics and short lists

The summary is invalidated by company, business card, calendar, note,
bank account and invoice mutations.
"""

import logging
import time

from fastapi import APIRouter

from backoffice.config.settings import get_cache_ttl
from backoffice.server.database.dashboard import get_dashboard_summary as db_get_dashboard_summary
from backoffice.server.utils.api import ReadThrough, handle_api_exceptions
from backoffice.utils.cache import CacheKeyBuilder, CacheNamespace

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/dashboard", tags=["Dashboard"])

# Bump the version when the summary shape changes
SUMMARY_VERSION = "v1"


@router.get("/summary")
@handle_api_exceptions("get dashboard summary", logger)
async def get_dashboard_summary(read_through: ReadThrough):
    started = time.perf_counter()
    key = CacheKeyBuilder(CacheNamespace.DASHBOARD).build("summary", scope=SUMMARY_VERSION)

    lookup = await read_through.get_or_fetch(
        key,
        db_get_dashboard_summary,
        ttl=get_cache_ttl(CacheNamespace.DASHBOARD, "summary"),
    )

    return {
        **lookup.value,
        "_cached": lookup.cached,
        "responseTime": int((time.perf_counter() - started) * 1000),
    }
