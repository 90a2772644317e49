"""Database functions for company bank accounts."""

import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from psycopg.rows import dict_row

from backoffice.server.database.connection import get_db_connection
from backoffice.server.utils.db import UpdateQueryBuilder, WhereClauseBuilder, order_by_clause

logger = logging.getLogger(__name__)

ACCOUNT_COLUMNS = """
    ba.id, ba."companyId", ba."bankName", ba."bankAddress", ba.currency, ba.iban,
    ba."swiftCode", ba."accountNumber", ba."accountName", ba."isActive", ba.notes,
    ba."createdAt", ba."updatedAt",
    c."tradingName" AS "companyTradingName", c."legalName" AS "companyLegalName"
"""

SORTABLE_COLUMNS = {
    "createdAt": 'ba."createdAt"',
    "bankName": 'ba."bankName"',
    "accountName": 'ba."accountName"',
    "currency": "ba.currency",
}

SEARCH_COLUMNS = [
    'ba."bankName"', 'ba."accountName"', 'ba."accountNumber"',
    "ba.iban", 'ba."swiftCode"', "ba.currency",
]

WRITABLE_COLUMNS = {
    "companyId": '"companyId"',
    "bankName": '"bankName"',
    "bankAddress": '"bankAddress"',
    "currency": "currency",
    "iban": "iban",
    "swiftCode": '"swiftCode"',
    "accountNumber": '"accountNumber"',
    "accountName": '"accountName"',
    "isActive": '"isActive"',
    "notes": "notes",
}


async def list_bank_accounts(
    *,
    skip: int,
    take: int,
    search: Optional[str] = None,
    company_id: Optional[int] = None,
    currency: Optional[str] = None,
    sort_field: str = "createdAt",
    sort_direction: str = "desc",
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Get active bank accounts, one page, plus the total matching count.

    Returns:
        Tuple of (accounts, total)
    """
    where = WhereClauseBuilder()
    where.add_condition('ba."isActive" = TRUE')
    where.add_search(SEARCH_COLUMNS, search)
    where.add_equals('ba."companyId"', company_id)
    where.add_equals("ba.currency", currency or None)
    where_sql, params = where.build()

    order_sql = order_by_clause(sort_field, sort_direction, SORTABLE_COLUMNS, "createdAt")

    async with get_db_connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(f"""
                SELECT {ACCOUNT_COLUMNS}
                FROM bank_accounts ba
                JOIN companies c ON c.id = ba."companyId"
                {where_sql}
                {order_sql}, ba.id DESC
                OFFSET %s LIMIT %s
            """, (*params, skip, take))
            rows = await cur.fetchall()

            await cur.execute(f"""
                SELECT COUNT(*) AS total FROM bank_accounts ba {where_sql}
            """, params)
            count_row = await cur.fetchone()

    return [dict(row) for row in rows], int(count_row["total"])


async def create_bank_account(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Insert a bank account.

    Raises:
        ValueError: If the IBAN is already registered for the company
    """
    account_id = str(uuid4())
    fields = [name for name in WRITABLE_COLUMNS if data.get(name) is not None]
    columns = ", ".join(WRITABLE_COLUMNS[name] for name in fields)
    placeholders = ", ".join(["%s"] * len(fields))

    async with get_db_connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute("""
                SELECT id FROM bank_accounts
                WHERE "companyId" = %s AND iban = %s
            """, (data.get("companyId"), data.get("iban")))
            if await cur.fetchone():
                raise ValueError(f"Bank account with IBAN {data.get('iban')} already exists")

            await cur.execute(f"""
                INSERT INTO bank_accounts (id, {columns}, "createdAt", "updatedAt")
                VALUES (%s, {placeholders}, NOW(), NOW())
                RETURNING *
            """, (account_id, *(data[name] for name in fields)))
            row = await cur.fetchone()

    logger.info(f"Created bank account {account_id} for company {data.get('companyId')}")
    return dict(row)


async def update_bank_account(account_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    builder = UpdateQueryBuilder().add_fields(data, WRITABLE_COLUMNS)
    query, params = builder.build(
        table="bank_accounts",
        where_clause="id = %s",
        where_params=[account_id],
        returning_columns=["*"],
    )

    async with get_db_connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(query, params)
            row = await cur.fetchone()

    return dict(row) if row else None


async def delete_bank_account(account_id: str) -> Optional[Dict[str, Any]]:
    async with get_db_connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute("""
                DELETE FROM bank_accounts WHERE id = %s
                RETURNING id, "companyId"
            """, (account_id,))
            row = await cur.fetchone()

    return dict(row) if row else None
