"""
PostgreSQL connection pool shared by the back-office queries.

The pool is created lazily and opened/closed by the application lifespan.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Dict

import psycopg.pq
from psycopg_pool import AsyncConnectionPool

logger = logging.getLogger(__name__)

# One pool per connection string, reused across requests
_db_pool_cache: Dict[str, AsyncConnectionPool] = {}


def get_db_connection_string() -> str:
    """
    Get PostgreSQL connection string from environment variables.

    Environment variables:
        DATABASE_URL: Full connection string (takes precedence)
        DB_HOST: PostgreSQL host (default: localhost)
        DB_PORT: PostgreSQL port (default: 5432)
        DB_NAME: Database name (default: backoffice)
        DB_USER: Database user (default: postgres)
        DB_PASSWORD: Database password (default: postgres)
    """
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    db_host = os.getenv("DB_HOST", "localhost")
    db_port = os.getenv("DB_PORT", "5432")
    db_name = os.getenv("DB_NAME", "backoffice")
    db_user = os.getenv("DB_USER", "postgres")
    db_password = os.getenv("DB_PASSWORD", "postgres")

    sslmode = os.getenv("DB_SSLMODE", "disable")
    return f"postgresql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}?sslmode={sslmode}"


async def _configure_connection(conn):
    """Set connection properties at creation, before the pool manages it."""
    conn.prepare_threshold = 0
    await conn.set_autocommit(True)


def get_or_create_pool() -> AsyncConnectionPool:
    """
    Get or create the shared connection pool.

    Returns:
        AsyncConnectionPool instance (not opened)
    """
    db_uri = get_db_connection_string()

    if db_uri not in _db_pool_cache:
        _db_pool_cache[db_uri] = AsyncConnectionPool(
            conninfo=db_uri,
            min_size=1,
            max_size=int(os.getenv("DB_POOL_MAX_SIZE", "10")),
            configure=_configure_connection,
            check=AsyncConnectionPool.check_connection,
            open=False,
        )

    return _db_pool_cache[db_uri]


async def open_db_pool() -> None:
    pool = get_or_create_pool()
    await pool.open()
    logger.info("Database pool opened")


async def close_db_pool() -> None:
    for db_uri, pool in list(_db_pool_cache.items()):
        await pool.close()
        del _db_pool_cache[db_uri]
    logger.info("Database pool closed")


async def _reset_connection_state(conn) -> None:
    """Return an interrupted connection to IDLE before it goes back to the pool."""
    status = conn.info.transaction_status
    if status == psycopg.pq.TransactionStatus.IDLE:
        return

    logger.warning(f"Connection not in IDLE state (status: {status.name}), cleaning up")
    try:
        if status == psycopg.pq.TransactionStatus.ACTIVE:
            await conn.cancel()
            await asyncio.sleep(0.01)
            await conn.rollback()
        elif status in (
            psycopg.pq.TransactionStatus.INTRANS,
            psycopg.pq.TransactionStatus.INERROR,
        ):
            await conn.rollback()
    except Exception as cleanup_error:
        logger.error(f"Error during connection state cleanup: {cleanup_error}", exc_info=True)


@asynccontextmanager
async def get_db_connection():
    """
    Pooled database connection.

    The pool must be opened in the application lifespan. Use row_factory per
    cursor:
        async with get_db_connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute("SELECT * FROM business_cards")
    """
    pool = get_or_create_pool()

    if pool.closed:
        raise RuntimeError(
            "Database pool is not open. Pool must be opened during server startup."
        )

    async with pool.connection() as conn:
        try:
            yield conn
        finally:
            await _reset_connection_state(conn)
