"""Fixtures wiring the FastAPI app to in-memory cache services."""

from contextlib import asynccontextmanager

import httpx
import pytest
from fastapi.testclient import TestClient

from backoffice.data_sources.blockchain import TronGridProvider
from backoffice.server.app import app
from backoffice.server.services.blockchain_balance_cache import BlockchainBalanceCacheService

STATE_ATTRIBUTES = ("cache", "read_through", "invalidator", "balance_service")


def _trongrid_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "data": [{"balance": 7_000_000}]})


@asynccontextmanager
async def _no_lifespan(app):
    yield


@pytest.fixture
def trongrid_requests():
    """Requests seen by the mocked TronGrid API."""
    return []


@pytest.fixture
def balance_service(cache_client, trongrid_requests):
    def handler(request):
        trongrid_requests.append(request)
        return _trongrid_handler(request)

    provider = TronGridProvider(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    return BlockchainBalanceCacheService(cache_client, [provider])


@pytest.fixture
def client(cache_client, read_through, invalidator, balance_service, monkeypatch):
    """
    TestClient with app.state populated directly.

    The real lifespan is swapped out so no database or Redis connection is
    attempted. The client is entered as a context manager so one event loop
    serves every request and background cache writes complete between them.
    """
    monkeypatch.setattr(app.router, "lifespan_context", _no_lifespan)
    app.state.cache = cache_client
    app.state.read_through = read_through
    app.state.invalidator = invalidator
    app.state.balance_service = balance_service

    with TestClient(app) as test_client:
        yield test_client

    for name in STATE_ATTRIBUTES:
        if hasattr(app.state, name):
            delattr(app.state, name)
