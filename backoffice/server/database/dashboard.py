"""Aggregate queries backing the dashboard summary."""

import logging
from typing import Any, Dict

from psycopg.rows import dict_row

from backoffice.server.database.connection import get_db_connection

logger = logging.getLogger(__name__)


async def get_dashboard_summary() -> Dict[str, Any]:
    """
    Collect dashboard statistics and short lists.

    Returns:
        Dict with stats, recentActiveCompanies, nextUpcomingEvents, activeNotes
    """
    async with get_db_connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute("""
                SELECT
                    COUNT(*) FILTER (WHERE status IN ('Active', 'Passive')) AS "totalCompanies",
                    COUNT(*) FILTER (WHERE status = 'Active') AS "activeCompaniesCount",
                    COUNT(*) FILTER (WHERE status = 'Passive') AS "passiveCompaniesCount"
                FROM companies
            """)
            company_stats = await cur.fetchone()

            await cur.execute("""
                SELECT
                    COUNT(*) FILTER (WHERE NOT "isArchived") AS "activeBusinessCardsCount",
                    COUNT(*) FILTER (WHERE "isArchived") AS "archivedBusinessCardsCount"
                FROM business_cards
            """)
            card_stats = await cur.fetchone()

            await cur.execute("""
                SELECT COUNT(*) AS count FROM calendar_events
                WHERE date >= NOW() AND date <= NOW() + INTERVAL '30 days'
            """)
            upcoming_count = await cur.fetchone()

            await cur.execute("""
                SELECT COUNT(*) AS count FROM notes WHERE NOT "isCompleted"
            """)
            notes_count = await cur.fetchone()

            await cur.execute("""
                SELECT id, "legalName", "tradingName", logo, status, "createdAt", "updatedAt"
                FROM companies
                WHERE status = 'Active'
                ORDER BY "updatedAt" DESC
                LIMIT 3
            """)
            recent_companies = await cur.fetchall()

            await cur.execute("""
                SELECT id, title, date, time, type, priority, company, "companyId"
                FROM calendar_events
                WHERE date >= NOW() AND date <= NOW() + INTERVAL '30 days'
                ORDER BY date ASC, time ASC
                LIMIT 3
            """)
            upcoming_events = await cur.fetchall()

            await cur.execute("""
                SELECT id, title, content, priority, "isCompleted", "createdAt", "companyId"
                FROM notes
                WHERE NOT "isCompleted"
                ORDER BY "createdAt" DESC
                LIMIT 2
            """)
            active_notes = await cur.fetchall()

    stats = {key: int(value) for key, value in {**company_stats, **card_stats}.items()}
    stats["upcomingEventsCount"] = int(upcoming_count["count"])
    stats["activeNotesCount"] = int(notes_count["count"])

    return {
        "stats": stats,
        "recentActiveCompanies": [dict(row) for row in recent_companies],
        "nextUpcomingEvents": [dict(row) for row in upcoming_events],
        "activeNotes": [dict(row) for row in active_notes],
    }
