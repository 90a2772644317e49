"""
Back-office FastAPI application.

Startup order: logging, database pool, cache client, then the services that
sit on the cache (read-through accessor, invalidator, blockchain balances),
all stored on ``app.state`` for the dependency aliases in
``backoffice.server.utils.api``. Shutdown releases them in reverse.
"""

# ============================================================================
# Imports
# ============================================================================
import logging
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backoffice.config.logging_config import configure_logging
from backoffice.config.settings import get_allowed_origins
from backoffice.server.database.connection import close_db_pool, open_db_pool
from backoffice.server.services.blockchain_balance_cache import BlockchainBalanceCacheService
from backoffice.utils.cache import (
    CacheInvalidator,
    ReadThroughCache,
    RedisCacheClient,
    init_cache,
)

logger = logging.getLogger(__name__)

TRACE_HEADER = b"x-trace-id"


# ============================================================================
# Lifespan
# ============================================================================
async def _start_services(app: FastAPI) -> None:
    try:
        await open_db_pool()
    except Exception as e:
        # Endpoints answer 500 until the database is reachable; cached reads keep working
        logger.error(f"Database pool unavailable at startup: {e}")

    cache = await init_cache(RedisCacheClient.from_config())
    app.state.cache = cache
    app.state.read_through = ReadThroughCache(cache)
    app.state.invalidator = CacheInvalidator(cache)
    app.state.balance_service = BlockchainBalanceCacheService.from_config(cache)
    logger.info(f"Cache services started on the {cache.backend} backend")


async def _stop_services(app: FastAPI) -> None:
    steps = (
        ("pending cache writes", app.state.read_through.drain),
        ("blockchain providers", app.state.balance_service.close),
        ("database pool", close_db_pool),
        ("cache client", app.state.cache.disconnect),
    )
    for name, close in steps:
        try:
            await close()
        except Exception as e:
            logger.warning(f"Error closing {name}: {e}")
    logger.info("Back-office services stopped")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await _start_services(app)
    yield
    await _stop_services(app)


# ============================================================================
# Application and middleware
# ============================================================================
app = FastAPI(
    title="Back-office API",
    version="0.1.0",
    lifespan=lifespan,
)


class TraceIDMiddleware:
    """Tag each HTTP response with ``X-Trace-Id`` (pure ASGI, so streaming bodies are untouched)."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or scope.get("method") == "OPTIONS":
            await self.app(scope, receive, send)
            return

        incoming = dict(scope.get("headers") or []).get(TRACE_HEADER)
        trace_id = incoming.decode("latin-1") if incoming else uuid4().hex
        scope.setdefault("state", {})["trace_id"] = trace_id

        async def send_with_trace(message):
            if message["type"] == "http.response.start":
                message["headers"] = [*message.get("headers", []), (TRACE_HEADER, trace_id.encode("latin-1"))]
            await send(message)

        await self.app(scope, receive, send_with_trace)


# Registered first so it runs inside CORS
app.add_middleware(TraceIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    # Browser clients read these for conditional requests and diagnostics
    expose_headers=["ETag", "X-Compression-Ratio", "X-Trace-Id"],
)


# ============================================================================
# Routers
# ============================================================================
from backoffice.server.app.bank_accounts import router as bank_accounts_router  # noqa: E402
from backoffice.server.app.blockchain import router as blockchain_router  # noqa: E402
from backoffice.server.app.business_cards import router as business_cards_router  # noqa: E402
from backoffice.server.app.cache import router as cache_router  # noqa: E402
from backoffice.server.app.calendar import router as calendar_router  # noqa: E402
from backoffice.server.app.dashboard import router as dashboard_router  # noqa: E402
from backoffice.server.app.utilities import health_router  # noqa: E402

for router in (
    business_cards_router,
    bank_accounts_router,
    calendar_router,
    dashboard_router,
    blockchain_router,
    cache_router,
    health_router,
):
    app.include_router(router)
