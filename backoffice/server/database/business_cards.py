"""
Database functions for business cards.

Business cards belong to a company; list rows embed a small company summary
and resolve the QR value from the company's website or email.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from psycopg.rows import dict_row

from backoffice.server.database.connection import get_db_connection
from backoffice.server.utils.db import UpdateQueryBuilder, WhereClauseBuilder

logger = logging.getLogger(__name__)

CARD_COLUMNS = """
    bc.id, bc."companyId", bc."personName", bc.position, bc."personEmail",
    bc."personPhone", bc."qrType", bc."qrValue", bc.template, bc."isArchived",
    bc."createdAt", bc."updatedAt"
"""

COMPANY_COLUMNS = """
    c."legalName" AS "companyLegalName", c."tradingName" AS "companyTradingName",
    c.email AS "companyEmail", c.website AS "companyWebsite"
"""

# API field -> column, for inserts and partial updates
WRITABLE_COLUMNS = {
    "companyId": '"companyId"',
    "personName": '"personName"',
    "position": "position",
    "personEmail": '"personEmail"',
    "personPhone": '"personPhone"',
    "qrType": '"qrType"',
    "qrValue": '"qrValue"',
    "template": "template",
    "isArchived": '"isArchived"',
}


def _to_card(row: Dict[str, Any]) -> Dict[str, Any]:
    """Nest the company summary and resolve the QR value."""
    company = {
        "id": row["companyId"],
        "legalName": row.pop("companyLegalName", None),
        "tradingName": row.pop("companyTradingName", None),
        "email": row.pop("companyEmail", None),
        "website": row.pop("companyWebsite", None),
    }
    row["company"] = company
    row["qrValue"] = company["website"] if row.get("qrType") == "WEBSITE" else company["email"]
    return row


def _build_where(
    company_id: Optional[int],
    is_archived: Optional[bool],
    template: Optional[str],
    search: Optional[str],
) -> Tuple[str, Tuple[Any, ...]]:
    where = WhereClauseBuilder()
    where.add_equals('bc."companyId"', company_id)
    where.add_equals('bc."isArchived"', is_archived)
    if template and template.lower() != "all":
        where.add_equals("bc.template", template.upper())
    where.add_search(['bc."personName"', "bc.position"], search)
    return where.build()


async def list_business_cards(
    *,
    skip: int,
    limit: int,
    company_id: Optional[int] = None,
    is_archived: Optional[bool] = None,
    template: Optional[str] = None,
    search: Optional[str] = None,
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Get one page of business cards and the total matching count.

    Returns:
        Tuple of (cards, total)
    """
    where_sql, params = _build_where(company_id, is_archived, template, search)

    async with get_db_connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(f"""
                SELECT {CARD_COLUMNS}, {COMPANY_COLUMNS}
                FROM business_cards bc
                JOIN companies c ON c.id = bc."companyId"
                {where_sql}
                ORDER BY bc."createdAt" DESC, bc.id DESC
                OFFSET %s LIMIT %s
            """, (*params, skip, limit))
            rows = await cur.fetchall()

            await cur.execute(f"""
                SELECT COUNT(*) AS total FROM business_cards bc {where_sql}
            """, params)
            count_row = await cur.fetchone()

    return [_to_card(dict(row)) for row in rows], int(count_row["total"])


async def get_business_card(card_id: str) -> Optional[Dict[str, Any]]:
    async with get_db_connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(f"""
                SELECT {CARD_COLUMNS}, {COMPANY_COLUMNS}
                FROM business_cards bc
                JOIN companies c ON c.id = bc."companyId"
                WHERE bc.id = %s
            """, (card_id,))
            row = await cur.fetchone()

    return _to_card(dict(row)) if row else None


async def create_business_card(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Insert a business card.

    Args:
        data: API field -> value; must include companyId

    Returns:
        Created card row

    Raises:
        ValueError: If the company does not exist
    """
    card_id = str(uuid4())
    fields = [name for name in WRITABLE_COLUMNS if data.get(name) is not None]
    columns = ", ".join(WRITABLE_COLUMNS[name] for name in fields)
    placeholders = ", ".join(["%s"] * len(fields))

    async with get_db_connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                "SELECT id FROM companies WHERE id = %s", (data.get("companyId"),)
            )
            if not await cur.fetchone():
                raise ValueError(f"Company {data.get('companyId')} does not exist")

            await cur.execute(f"""
                INSERT INTO business_cards (id, {columns}, "createdAt", "updatedAt")
                VALUES (%s, {placeholders}, NOW(), NOW())
                RETURNING *
            """, (card_id, *(data[name] for name in fields)))
            row = await cur.fetchone()

    logger.info(f"Created business card {card_id} for company {data.get('companyId')}")
    return dict(row)


async def update_business_card(card_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Apply a partial update.

    Returns:
        Updated row, or None if the card does not exist
    """
    builder = UpdateQueryBuilder().add_fields(data, WRITABLE_COLUMNS)
    if not builder.has_updates():
        return await get_business_card(card_id)

    query, params = builder.build(
        table="business_cards",
        where_clause="id = %s",
        where_params=[card_id],
        returning_columns=["*"],
    )

    async with get_db_connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(query, params)
            row = await cur.fetchone()

    return dict(row) if row else None


async def delete_business_card(card_id: str) -> Optional[Dict[str, Any]]:
    """
    Delete a card.

    Returns:
        The deleted row (id and companyId), or None if it did not exist
    """
    async with get_db_connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute("""
                DELETE FROM business_cards WHERE id = %s
                RETURNING id, "companyId"
            """, (card_id,))
            row = await cur.fetchone()

    return dict(row) if row else None
