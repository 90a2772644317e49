"""
Bank Accounts API Router.

Endpoints (/api/v1/bank-accounts):
- GET /fast - Cached, offset-paginated list of active accounts
- DELETE /fast - Invalidate cached bank account lists
- POST / - Register bank account
- PUT /{account_id} - Update bank account
- DELETE /{account_id} - Delete bank account
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Query, Request

from backoffice.server.database.bank_accounts import (
    create_bank_account as db_create_bank_account,
    delete_bank_account as db_delete_bank_account,
    list_bank_accounts as db_list_bank_accounts,
    update_bank_account as db_update_bank_account,
)
from backoffice.server.models.records import BankAccountCreate, BankAccountUpdate
from backoffice.server.utils.api import (
    Invalidator,
    ReadThrough,
    handle_api_exceptions,
    raise_not_found,
)
from backoffice.server.utils.listing import (
    cached_page_response,
    invalidate_namespace_pattern,
    parse_company_filter,
)
from backoffice.utils.cache import CacheNamespace, MutationAction, MutationEvent

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/bank-accounts", tags=["Bank Accounts"])

RESOURCE = "bank_account"
MAX_TAKE = 100

SortField = Literal["createdAt", "bankName", "accountName", "currency"]


@router.get("/fast")
@handle_api_exceptions("list bank accounts", logger)
async def list_bank_accounts_fast(
    request: Request,
    read_through: ReadThrough,
    skip: int = Query(0, ge=0),
    take: int = Query(20, ge=1),
    search: Optional[str] = Query(None),
    company: str = Query("all", description="Company id or 'all'"),
    currency: Optional[str] = Query(None),
    sort_field: SortField = Query("createdAt", alias="sortField"),
    sort_direction: Literal["asc", "desc"] = Query("desc", alias="sortDirection"),
):
    """List active bank accounts through the read-through cache."""
    take = min(take, MAX_TAKE)

    filters = {
        "search": search or None,
        "company": parse_company_filter(company),
        "currency": currency.upper() if currency else None,
        "sortField": sort_field,
        "sortDirection": sort_direction,
    }

    async def fetch_page():
        return await db_list_bank_accounts(
            skip=skip,
            take=take,
            search=filters["search"],
            company_id=filters["company"],
            currency=filters["currency"],
            sort_field=sort_field,
            sort_direction=sort_direction,
        )

    return await cached_page_response(
        request,
        read_through,
        namespace=CacheNamespace.BANK_ACCOUNTS,
        list_resource="list",
        params={**filters, "skip": skip, "take": take},
        count_params=filters,
        fetch_page=fetch_page,
        build_body=lambda items, total: {
            "data": items,
            "pagination": {
                "total": total,
                "skip": skip,
                "take": take,
                "hasMore": skip + take < total,
            },
        },
    )


@router.delete("/fast")
@handle_api_exceptions("invalidate bank account cache", logger)
async def invalidate_bank_accounts_cache(
    invalidator: Invalidator,
    pattern: Optional[str] = Query(None, description="Key pattern within bank-accounts:"),
):
    return await invalidate_namespace_pattern(invalidator, CacheNamespace.BANK_ACCOUNTS, pattern)


@router.post("", status_code=201)
@handle_api_exceptions("create bank account", logger, conflict_on_value_error=True)
async def create_bank_account(payload: BankAccountCreate, invalidator: Invalidator):
    """
    Register a bank account.

    Raises:
        409: IBAN already registered for the company
    """
    account = await db_create_bank_account(payload.model_dump(by_alias=True))

    await invalidator.invalidate(MutationEvent(
        RESOURCE, MutationAction.CREATED, entity_id=account["id"], company_id=account["companyId"],
    ))
    return account


@router.put("/{account_id}")
@handle_api_exceptions("update bank account", logger)
async def update_bank_account(account_id: str, payload: BankAccountUpdate, invalidator: Invalidator):
    changes = payload.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    account = await db_update_bank_account(account_id, changes)
    if not account:
        raise_not_found("Bank account", account_id)

    await invalidator.invalidate(MutationEvent(
        RESOURCE, MutationAction.UPDATED, entity_id=account_id, company_id=account.get("companyId"),
    ))
    return account


@router.delete("/{account_id}")
@handle_api_exceptions("delete bank account", logger)
async def delete_bank_account(account_id: str, invalidator: Invalidator):
    deleted = await db_delete_bank_account(account_id)
    if not deleted:
        raise_not_found("Bank account", account_id)

    await invalidator.invalidate(MutationEvent(
        RESOURCE, MutationAction.DELETED, entity_id=account_id, company_id=deleted.get("companyId"),
    ))
    return {"success": True, "id": account_id}
