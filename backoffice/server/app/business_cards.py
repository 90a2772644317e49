"""
Business Cards API Router.

Endpoints (/api/v1/business-cards):
- GET /fast - Cached, paginated list with ETag support
- DELETE /fast - Invalidate cached business card lists
- POST / - Create business card
- PUT /{card_id} - Update business card
- DELETE /{card_id} - Delete business card

Every mutation invalidates the business-cards namespace, the dashboard
summary and the owning company's cached entries.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request

from backoffice.server.database.business_cards import (
    create_business_card as db_create_business_card,
    delete_business_card as db_delete_business_card,
    list_business_cards as db_list_business_cards,
    update_business_card as db_update_business_card,
)
from backoffice.server.models.records import BusinessCardCreate, BusinessCardUpdate
from backoffice.server.utils.api import (
    Invalidator,
    ReadThrough,
    handle_api_exceptions,
    raise_not_found,
)
from backoffice.server.utils.listing import (
    cached_page_response,
    invalidate_namespace_pattern,
    page_pagination,
    parse_bool_filter,
    parse_company_filter,
)
from backoffice.utils.cache import CacheNamespace, MutationAction, MutationEvent

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/business-cards", tags=["Business Cards"])

RESOURCE = "business_card"
MAX_PAGE_SIZE = 100


@router.get("/fast")
@handle_api_exceptions("list business cards", logger)
async def list_business_cards_fast(
    request: Request,
    read_through: ReadThrough,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, description=f"Page size (capped at {MAX_PAGE_SIZE})"),
    company_id: Optional[str] = Query(None, alias="companyId"),
    is_archived: Optional[str] = Query(None, alias="isArchived"),
    template: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
):
    """
    List business cards through the read-through cache.

    Returns 304 when If-None-Match matches the current content.
    """
    limit = min(limit, MAX_PAGE_SIZE)
    skip = (page - 1) * limit

    filters = {
        "companyId": parse_company_filter(company_id),
        "isArchived": parse_bool_filter(is_archived),
        "template": template.upper() if template and template.lower() != "all" else None,
        "search": search or None,
    }

    async def fetch_page():
        return await db_list_business_cards(
            skip=skip,
            limit=limit,
            company_id=filters["companyId"],
            is_archived=filters["isArchived"],
            template=filters["template"],
            search=filters["search"],
        )

    return await cached_page_response(
        request,
        read_through,
        namespace=CacheNamespace.BUSINESS_CARDS,
        list_resource="list",
        params={**filters, "page": page, "limit": limit, "skip": skip},
        count_params=filters,
        fetch_page=fetch_page,
        build_body=lambda items, total: {
            "businessCards": items,
            "pagination": page_pagination(page, limit, total),
        },
    )


@router.delete("/fast")
@handle_api_exceptions("invalidate business card cache", logger)
async def invalidate_business_cards_cache(
    invalidator: Invalidator,
    pattern: Optional[str] = Query(None, description="Key pattern within business-cards:"),
):
    return await invalidate_namespace_pattern(invalidator, CacheNamespace.BUSINESS_CARDS, pattern)


@router.post("", status_code=201)
@handle_api_exceptions("create business card", logger, conflict_on_value_error=True)
async def create_business_card(payload: BusinessCardCreate, invalidator: Invalidator):
    """
    Create a business card.

    Raises:
        409: Company does not exist
    """
    card = await db_create_business_card(payload.model_dump(by_alias=True))

    await invalidator.invalidate(MutationEvent(
        RESOURCE, MutationAction.CREATED, entity_id=card["id"], company_id=card["companyId"],
    ))
    return card


@router.put("/{card_id}")
@handle_api_exceptions("update business card", logger)
async def update_business_card(card_id: str, payload: BusinessCardUpdate, invalidator: Invalidator):
    """Partial update; only provided fields change."""
    changes = payload.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    card = await db_update_business_card(card_id, changes)
    if not card:
        raise_not_found("Business card", card_id)

    await invalidator.invalidate(MutationEvent(
        RESOURCE, MutationAction.UPDATED, entity_id=card_id, company_id=card.get("companyId"),
    ))
    return card


@router.delete("/{card_id}")
@handle_api_exceptions("delete business card", logger)
async def delete_business_card(card_id: str, invalidator: Invalidator):
    deleted = await db_delete_business_card(card_id)
    if not deleted:
        raise_not_found("Business card", card_id)

    await invalidator.invalidate(MutationEvent(
        RESOURCE, MutationAction.DELETED, entity_id=card_id, company_id=deleted.get("companyId"),
    ))
    return {"success": True, "id": card_id}
