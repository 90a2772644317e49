"""
Cached, conditional list responses shared by the ``/fast`` endpoints.
"""

import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from fastapi import HTTPException, Request, Response

from backoffice.config.settings import get_cache_ttl
from backoffice.server.utils.http_cache import CachePolicy, build_conditional_response
from backoffice.utils.cache import CacheKeyBuilder, CacheInvalidator, ReadThroughCache
from backoffice.utils.cache.memory_cache import as_glob

logger = logging.getLogger(__name__)

FetchPage = Callable[[], Awaitable[Tuple[List[Any], int]]]
BuildBody = Callable[[List[Any], int], Dict[str, Any]]


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


async def cached_page_response(
    request: Request,
    read_through: ReadThroughCache,
    *,
    namespace: str,
    list_resource: str,
    params: Mapping[str, Any],
    count_params: Mapping[str, Any],
    fetch_page: FetchPage,
    build_body: BuildBody,
) -> Response:
    """
    Serve one list page through the cache with ETag handling.

    The page and the total are cached under separate keys: the list key
    includes the offset, the count key only the filters. The ETag covers the
    body built by build_body; ``_cached``, ``responseTime`` and ``dbTime``
    are added on top and never affect it.
    """
    started = time.perf_counter()
    builder = CacheKeyBuilder(namespace)
    data_key = builder.build(list_resource, params)
    count_key = builder.build("count", count_params)

    db_time: Dict[str, int] = {}

    async def timed_fetch() -> Tuple[List[Any], int]:
        db_started = time.perf_counter()
        result = await fetch_page()
        db_time["ms"] = _elapsed_ms(db_started)
        return result

    page = await read_through.get_or_fetch_page(
        data_key,
        count_key,
        timed_fetch,
        ttl=get_cache_ttl(namespace, list_resource),
    )

    content = build_body(page.items, page.total)
    payload = {**content, "_cached": page.cached, "responseTime": _elapsed_ms(started)}
    if "ms" in db_time:
        payload["dbTime"] = db_time["ms"]

    return build_conditional_response(
        request,
        payload,
        etag_source=content,
        policy=CachePolicy.for_result(page.cached),
    )


def page_pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    """Page-number pagination block."""
    skip = (page - 1) * limit
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": -(-total // limit) if limit else 0,
        "hasNext": skip + limit < total,
        "hasPrev": page > 1,
    }


async def invalidate_namespace_pattern(
    invalidator: CacheInvalidator,
    namespace: str,
    pattern: Optional[str],
) -> Dict[str, Any]:
    """
    Handle ``DELETE .../fast?pattern=`` for one namespace.

    Raises:
        HTTPException: 400 if the pattern reaches outside the namespace
    """
    target = as_glob(pattern or f"{namespace}:")
    if not target.startswith(f"{namespace}:"):
        raise HTTPException(
            status_code=400,
            detail=f"Pattern must start with '{namespace}:'",
        )

    results = await invalidator.invalidate_patterns([target])
    deleted = sum(results.values())
    logger.info(f"Invalidated {deleted} {namespace} cache entries matching {target}")
    return {
        "success": True,
        "message": f"Invalidated {deleted} {namespace} cache entries",
        "pattern": target,
        "deleted": deleted,
    }


def parse_company_filter(value: Optional[str]) -> Optional[int]:
    """``None``/``"all"`` mean no filter; anything else must be an integer id."""
    if value is None or value.strip().lower() in ("", "all"):
        return None
    try:
        return int(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid company id: {value}")


def parse_bool_filter(value: Optional[str]) -> Optional[bool]:
    """``"true"``/``"false"`` (any case); ``None``/``"all"`` mean no filter."""
    if value is None or value.strip().lower() in ("", "all"):
        return None
    return value.strip().lower() == "true"
