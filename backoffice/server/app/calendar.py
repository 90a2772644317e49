"""
Calendar API Router.

Endpoints (/api/v1/calendar):
- GET /events/fast - Cached, paginated event list with ETag support
- DELETE /events/fast - Invalidate cached calendar entries
- GET /statistics - Cached event statistics
- POST /events - Create event
- PUT /events/{event_id} - Update event
- DELETE /events/{event_id} - Delete event

Event mutations also invalidate the dashboard summary.
"""

import logging
import time
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Query, Request

from backoffice.config.settings import get_cache_ttl
from backoffice.server.database.calendar_events import (
    create_calendar_event as db_create_calendar_event,
    delete_calendar_event as db_delete_calendar_event,
    get_calendar_statistics as db_get_calendar_statistics,
    list_calendar_events as db_list_calendar_events,
    update_calendar_event as db_update_calendar_event,
)
from backoffice.server.models.records import CalendarEventCreate, CalendarEventUpdate
from backoffice.server.utils.api import (
    Invalidator,
    ReadThrough,
    handle_api_exceptions,
    raise_not_found,
)
from backoffice.server.utils.http_cache import CachePolicy, build_conditional_response
from backoffice.server.utils.listing import (
    cached_page_response,
    invalidate_namespace_pattern,
    page_pagination,
    parse_bool_filter,
    parse_company_filter,
)
from backoffice.utils.cache import CacheKeyBuilder, CacheNamespace, MutationAction, MutationEvent

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/calendar", tags=["Calendar"])

RESOURCE = "calendar_event"
MAX_PAGE_SIZE = 5000

SortBy = Literal["date", "createdAt", "priority", "title", "time"]
DateRange = Literal["today", "week", "month", "upcoming"]


def _upper_filter(value: Optional[str]) -> Optional[str]:
    if not value or value.lower() == "all":
        return None
    return value.upper()


def _today() -> date:
    return date.today()


@router.get("/events/fast")
@handle_api_exceptions("list calendar events", logger)
async def list_calendar_events_fast(
    request: Request,
    read_through: ReadThrough,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, description=f"Page size (capped at {MAX_PAGE_SIZE})"),
    company_id: Optional[str] = Query(None, alias="companyId"),
    event_type: Optional[str] = Query(None, alias="type"),
    priority: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    on_date: Optional[date] = Query(None, alias="date", description="Specific day (YYYY-MM-DD)"),
    date_range: Optional[DateRange] = Query(None, alias="dateRange"),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    sort_by: SortBy = Query("date", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    is_auto_generated: Optional[str] = Query(None, alias="isAutoGenerated"),
):
    """
    List calendar events through the read-through cache.

    Named ranges (today, week, month, upcoming) are resolved against the
    current date, so that date is part of the cache key and a page cached
    before midnight is not served the next day.
    """
    limit = min(limit, MAX_PAGE_SIZE)
    skip = (page - 1) * limit

    filters = {
        "companyId": parse_company_filter(company_id),
        "type": _upper_filter(event_type),
        "priority": _upper_filter(priority),
        "search": search or None,
        "date": on_date,
        "dateRange": date_range,
        "dateFrom": date_from,
        "dateTo": date_to,
        "asOf": _today() if date_range else None,
        "sortBy": sort_by,
        "sortOrder": sort_order,
        "isAutoGenerated": parse_bool_filter(is_auto_generated),
    }

    async def fetch_page():
        return await db_list_calendar_events(
            skip=skip,
            limit=limit,
            company_id=filters["companyId"],
            event_type=filters["type"],
            priority=filters["priority"],
            search=filters["search"],
            on_date=on_date,
            date_range=date_range,
            date_from=date_from,
            date_to=date_to,
            sort_by=sort_by,
            sort_order=sort_order,
            is_auto_generated=filters["isAutoGenerated"],
        )

    return await cached_page_response(
        request,
        read_through,
        namespace=CacheNamespace.CALENDAR,
        list_resource="events",
        params={**filters, "page": page, "limit": limit, "skip": skip},
        count_params=filters,
        fetch_page=fetch_page,
        build_body=lambda items, total: {
            "events": items,
            "pagination": page_pagination(page, limit, total),
        },
    )


@router.delete("/events/fast")
@handle_api_exceptions("invalidate calendar cache", logger)
async def invalidate_calendar_cache(
    invalidator: Invalidator,
    pattern: Optional[str] = Query(None, description="Key pattern within calendar:"),
):
    return await invalidate_namespace_pattern(invalidator, CacheNamespace.CALENDAR, pattern)


@router.get("/statistics")
@handle_api_exceptions("get calendar statistics", logger)
async def get_calendar_statistics(
    request: Request,
    read_through: ReadThrough,
    company_id: Optional[str] = Query(None, alias="companyId"),
):
    """Event counts by type and priority, cached with the statistics TTL."""
    started = time.perf_counter()
    company = parse_company_filter(company_id)
    key = CacheKeyBuilder(CacheNamespace.CALENDAR).build("stats", {"companyId": company})

    lookup = await read_through.get_or_fetch(
        key,
        lambda: db_get_calendar_statistics(company),
        ttl=get_cache_ttl(CacheNamespace.CALENDAR, "stats"),
    )

    content = {"statistics": lookup.value}
    payload = {
        **content,
        "_cached": lookup.cached,
        "responseTime": int((time.perf_counter() - started) * 1000),
    }
    return build_conditional_response(
        request,
        payload,
        etag_source=content,
        policy=CachePolicy.for_result(lookup.cached),
    )


@router.post("/events", status_code=201)
@handle_api_exceptions("create calendar event", logger)
async def create_calendar_event(payload: CalendarEventCreate, invalidator: Invalidator):
    event = await db_create_calendar_event(payload.model_dump(by_alias=True))

    await invalidator.invalidate(MutationEvent(
        RESOURCE, MutationAction.CREATED, entity_id=event["id"], company_id=event.get("companyId"),
    ))
    return event


@router.put("/events/{event_id}")
@handle_api_exceptions("update calendar event", logger)
async def update_calendar_event(event_id: str, payload: CalendarEventUpdate, invalidator: Invalidator):
    changes = payload.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    event = await db_update_calendar_event(event_id, changes)
    if not event:
        raise_not_found("Calendar event", event_id)

    await invalidator.invalidate(MutationEvent(
        RESOURCE, MutationAction.UPDATED, entity_id=event_id, company_id=event.get("companyId"),
    ))
    return event


@router.delete("/events/{event_id}")
@handle_api_exceptions("delete calendar event", logger)
async def delete_calendar_event(event_id: str, invalidator: Invalidator):
    deleted = await db_delete_calendar_event(event_id)
    if not deleted:
        raise_not_found("Calendar event", event_id)

    await invalidator.invalidate(MutationEvent(
        RESOURCE, MutationAction.DELETED, entity_id=event_id, company_id=deleted.get("companyId"),
    ))
    return {"success": True, "id": event_id}
