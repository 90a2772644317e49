"""
Database functions for calendar events.

Events may reference their company by id or, for older rows, only by the
company's trading/legal name; company filters match both.
"""

import json
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from psycopg.rows import dict_row

from backoffice.server.database.connection import get_db_connection
from backoffice.server.utils.db import UpdateQueryBuilder, WhereClauseBuilder, order_by_clause

logger = logging.getLogger(__name__)

EVENT_COLUMNS = """
    e.id, e.title, e.description, e.date, e.time, e.type, e.priority, e.company,
    e.participants, e."companyId", e."isAutoGenerated", e."syncStatus",
    e."googleCalendarId", e."googleEventId", e."createdAt", e."updatedAt"
"""

SORTABLE_COLUMNS = {
    "date": "e.date",
    "createdAt": 'e."createdAt"',
    "priority": "e.priority",
    "title": "e.title",
    "time": "e.time",
}

WRITABLE_COLUMNS = {
    "title": "title",
    "description": "description",
    "date": "date",
    "time": "time",
    "type": "type",
    "priority": "priority",
    "company": "company",
    "participants": "participants",
    "companyId": '"companyId"',
    "location": "location",
    "endTime": '"endTime"',
    "isAllDay": '"isAllDay"',
}


def resolve_date_window(
    on_date: Optional[date] = None,
    date_range: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    now: Optional[datetime] = None,
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Turn the date filters into a half-open [start, end) window.

    Precedence: a specific date, then a named range (today, week starting
    Sunday, month, upcoming), then explicit from/to bounds (to is inclusive
    of the whole day).
    """
    now = now or datetime.now()

    if on_date is not None:
        start = datetime.combine(on_date, datetime.min.time())
        return start, start + timedelta(days=1)

    if date_range == "today":
        start = datetime.combine(now.date(), datetime.min.time())
        return start, start + timedelta(days=1)
    if date_range == "week":
        days_since_sunday = (now.weekday() + 1) % 7
        start = datetime.combine(now.date() - timedelta(days=days_since_sunday), datetime.min.time())
        return start, start + timedelta(days=7)
    if date_range == "month":
        start = datetime(now.year, now.month, 1)
        end = datetime(now.year + 1, 1, 1) if now.month == 12 else datetime(now.year, now.month + 1, 1)
        return start, end
    if date_range == "upcoming":
        return now, None

    start = datetime.combine(date_from, datetime.min.time()) if date_from else None
    end = datetime.combine(date_to, datetime.min.time()) + timedelta(days=1) if date_to else None
    return start, end


def _parse_participants(row: Dict[str, Any]) -> Dict[str, Any]:
    raw = row.get("participants")
    if isinstance(raw, str):
        try:
            row["participants"] = json.loads(raw) if raw else []
        except json.JSONDecodeError:
            row["participants"] = [p.strip() for p in raw.split(",") if p.strip()]
    return row


async def list_calendar_events(
    *,
    skip: int,
    limit: int,
    company_id: Optional[int] = None,
    event_type: Optional[str] = None,
    priority: Optional[str] = None,
    search: Optional[str] = None,
    on_date: Optional[date] = None,
    date_range: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    sort_by: str = "date",
    sort_order: str = "desc",
    is_auto_generated: Optional[bool] = None,
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Get one page of calendar events and the total matching count.

    Returns:
        Tuple of (events, total)
    """
    where = WhereClauseBuilder()

    if company_id is not None:
        where.add_condition(
            """(e."companyId" = %s OR e.company IN (
                SELECT name FROM companies,
                LATERAL (VALUES ("tradingName"), ("legalName")) AS names(name)
                WHERE id = %s
            ))""",
            company_id, company_id,
        )
    if event_type and event_type.lower() != "all":
        where.add_equals("e.type", event_type.upper())
    if priority and priority.lower() != "all":
        where.add_equals("e.priority", priority.upper())
    where.add_equals('e."isAutoGenerated"', is_auto_generated)
    where.add_search(["e.title", "e.description", "e.company"], search)

    start, end = resolve_date_window(on_date, date_range, date_from, date_to)
    if start is not None:
        where.add_condition("e.date >= %s", start)
    if end is not None:
        where.add_condition("e.date < %s", end)

    where_sql, params = where.build()
    order_sql = order_by_clause(sort_by, sort_order, SORTABLE_COLUMNS, "date")
    tiebreak = 'e."createdAt" DESC' if sort_by not in SORTABLE_COLUMNS or sort_by == "date" else "e.date DESC"

    async with get_db_connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(f"""
                SELECT {EVENT_COLUMNS}
                FROM calendar_events e
                {where_sql}
                {order_sql}, {tiebreak}
                OFFSET %s LIMIT %s
            """, (*params, skip, limit))
            rows = await cur.fetchall()

            await cur.execute(f"""
                SELECT COUNT(*) AS total FROM calendar_events e {where_sql}
            """, params)
            count_row = await cur.fetchone()

    return [_parse_participants(dict(row)) for row in rows], int(count_row["total"])


async def get_calendar_statistics(company_id: Optional[int] = None) -> Dict[str, Any]:
    """
    Event counts overall, by type and priority, today and in the next 30 days.
    """
    where = WhereClauseBuilder()
    where.add_equals('"companyId"', company_id)
    where_sql, params = where.build()
    and_or_where = "AND" if where_sql else "WHERE"

    async with get_db_connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(f"""
                SELECT
                    COUNT(*) AS total,
                    COUNT(*) FILTER (WHERE date >= CURRENT_DATE
                                     AND date < CURRENT_DATE + INTERVAL '1 day') AS today,
                    COUNT(*) FILTER (WHERE date >= NOW()
                                     AND date <= NOW() + INTERVAL '30 days') AS upcoming,
                    COUNT(*) FILTER (WHERE date < NOW()) AS past,
                    COUNT(*) FILTER (WHERE "isAutoGenerated") AS "autoGenerated"
                FROM calendar_events {where_sql}
            """, params)
            totals = await cur.fetchone()

            await cur.execute(f"""
                SELECT type, COUNT(*) AS count FROM calendar_events {where_sql}
                GROUP BY type
            """, params)
            by_type = await cur.fetchall()

            await cur.execute(f"""
                SELECT priority, COUNT(*) AS count FROM calendar_events {where_sql}
                {and_or_where} date >= NOW()
                GROUP BY priority
            """, params)
            by_priority = await cur.fetchall()

    return {
        "total": int(totals["total"]),
        "today": int(totals["today"]),
        "upcoming": int(totals["upcoming"]),
        "past": int(totals["past"]),
        "autoGenerated": int(totals["autoGenerated"]),
        "byType": {row["type"]: int(row["count"]) for row in by_type},
        "upcomingByPriority": {row["priority"]: int(row["count"]) for row in by_priority},
    }


def _encode_participants(data: Dict[str, Any]) -> Dict[str, Any]:
    if isinstance(data.get("participants"), list):
        data = {**data, "participants": json.dumps(data["participants"])}
    return data


async def create_calendar_event(data: Dict[str, Any]) -> Dict[str, Any]:
    event_id = str(uuid4())
    data = _encode_participants(data)
    fields = [name for name in WRITABLE_COLUMNS if data.get(name) is not None]
    columns = ", ".join(WRITABLE_COLUMNS[name] for name in fields)
    placeholders = ", ".join(["%s"] * len(fields))

    async with get_db_connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(f"""
                INSERT INTO calendar_events (id, {columns}, "createdAt", "updatedAt")
                VALUES (%s, {placeholders}, NOW(), NOW())
                RETURNING *
            """, (event_id, *(data[name] for name in fields)))
            row = await cur.fetchone()

    logger.info(f"Created calendar event {event_id}")
    return _parse_participants(dict(row))


async def update_calendar_event(event_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    builder = UpdateQueryBuilder().add_fields(_encode_participants(data), WRITABLE_COLUMNS)
    query, params = builder.build(
        table="calendar_events",
        where_clause="id = %s",
        where_params=[event_id],
        returning_columns=["*"],
    )

    async with get_db_connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(query, params)
            row = await cur.fetchone()

    return _parse_participants(dict(row)) if row else None


async def delete_calendar_event(event_id: str) -> Optional[Dict[str, Any]]:
    async with get_db_connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute("""
                DELETE FROM calendar_events WHERE id = %s
                RETURNING id, "companyId"
            """, (event_id,))
            row = await cur.fetchone()

    return dict(row) if row else None
