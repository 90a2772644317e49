"""End-to-end tests for the cached list, statistics and dashboard endpoints."""

from datetime import date
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from backoffice.server.app.utilities import health_router

pytestmark = pytest.mark.integration

CARDS = [
    {"id": "card-1", "companyId": 1, "personName": "Ada Lovelace", "template": "MODERN"},
    {"id": "card-2", "companyId": 1, "personName": "Alan Turing", "template": "CLASSIC"},
]


@pytest.fixture
def list_cards(monkeypatch):
    mock = AsyncMock(return_value=(CARDS, 2))
    monkeypatch.setattr("backoffice.server.app.business_cards.db_list_business_cards", mock)
    return mock


class TestBusinessCardsFast:
    """GET/DELETE /api/v1/business-cards/fast and mutation invalidation."""

    def test_miss_then_hit(self, client, list_cards):
        first = client.get("/api/v1/business-cards/fast?page=1&limit=20")
        second = client.get("/api/v1/business-cards/fast?limit=20&page=1")

        assert first.status_code == 200
        assert first.json()["_cached"] is False
        assert "dbTime" in first.json()
        assert second.json()["_cached"] is True
        assert "dbTime" not in second.json()
        assert second.json()["businessCards"] == CARDS
        assert second.json()["pagination"] == {
            "page": 1, "limit": 20, "total": 2, "pages": 1, "hasNext": False, "hasPrev": False,
        }
        assert list_cards.await_count == 1

    def test_etag_stable_across_hit_and_miss(self, client, list_cards):
        first = client.get("/api/v1/business-cards/fast")
        second = client.get("/api/v1/business-cards/fast")

        assert first.headers["etag"] == second.headers["etag"]
        assert "max-age=60" in first.headers["cache-control"]
        assert "max-age=300" in second.headers["cache-control"]

    def test_if_none_match_returns_304(self, client, list_cards):
        etag = client.get("/api/v1/business-cards/fast").headers["etag"]

        response = client.get("/api/v1/business-cards/fast", headers={"If-None-Match": etag})

        assert response.status_code == 304
        assert response.content == b""
        assert response.headers["etag"] == etag

    def test_limit_is_capped(self, client, list_cards):
        response = client.get("/api/v1/business-cards/fast?limit=500")

        assert response.json()["pagination"]["limit"] == 100
        assert list_cards.await_args.kwargs["limit"] == 100

    def test_filters_reach_database(self, client, list_cards):
        client.get("/api/v1/business-cards/fast?page=2&limit=10&companyId=1&isArchived=false&search=ada")

        kwargs = list_cards.await_args.kwargs
        assert kwargs["skip"] == 10
        assert kwargs["company_id"] == 1
        assert kwargs["is_archived"] is False
        assert kwargs["search"] == "ada"

    def test_numeric_looking_searches_are_cached_separately(self, client, monkeypatch):
        async def by_search(**kwargs):
            return [{"id": f"match-{kwargs['search']}"}], 1

        mock = AsyncMock(side_effect=by_search)
        monkeypatch.setattr("backoffice.server.app.business_cards.db_list_business_cards", mock)

        first = client.get("/api/v1/business-cards/fast?search=007").json()
        second = client.get("/api/v1/business-cards/fast?search=7").json()

        assert first["businessCards"] == [{"id": "match-007"}]
        assert second["businessCards"] == [{"id": "match-7"}]
        assert second["_cached"] is False
        assert mock.await_count == 2

    def test_fallback_store_sheds_expired_searches(self, client, list_cards, memory_cache, clock):
        for i in range(50):
            client.get(f"/api/v1/business-cards/fast?search=term-{i}")
        client.get("/health")  # runs after the queued cache writes
        assert len(memory_cache) == 100

        clock.advance(3600)
        client.get("/api/v1/business-cards/fast?search=fresh")
        client.get("/health")

        assert len(memory_cache) <= 2

    def test_invalid_company_is_400(self, client, list_cards):
        assert client.get("/api/v1/business-cards/fast?companyId=abc").status_code == 400

    def test_create_invalidates_cached_lists(self, client, list_cards, monkeypatch):
        monkeypatch.setattr(
            "backoffice.server.app.business_cards.db_create_business_card",
            AsyncMock(return_value={"id": "card-3", "companyId": 1, "personName": "Grace"}),
        )
        client.get("/api/v1/business-cards/fast")

        created = client.post("/api/v1/business-cards", json={"companyId": 1, "personName": "Grace"})
        after = client.get("/api/v1/business-cards/fast")

        assert created.status_code == 201
        assert after.json()["_cached"] is False
        assert list_cards.await_count == 2

    def test_create_for_missing_company_is_409(self, client, monkeypatch):
        monkeypatch.setattr(
            "backoffice.server.app.business_cards.db_create_business_card",
            AsyncMock(side_effect=ValueError("Company 99 not found")),
        )

        response = client.post("/api/v1/business-cards", json={"companyId": 99})

        assert response.status_code == 409

    def test_update_without_fields_is_400(self, client):
        assert client.put("/api/v1/business-cards/card-1", json={}).status_code == 400

    def test_delete_unknown_is_404(self, client, monkeypatch):
        monkeypatch.setattr(
            "backoffice.server.app.business_cards.db_delete_business_card",
            AsyncMock(return_value=None),
        )

        response = client.delete("/api/v1/business-cards/nope")

        assert response.status_code == 404
        assert "nope" in response.json()["detail"]

    def test_manual_invalidation(self, client, list_cards):
        client.get("/api/v1/business-cards/fast")

        response = client.delete("/api/v1/business-cards/fast")

        assert response.status_code == 200
        assert response.json()["deleted"] == 2
        assert response.json()["pattern"] == "business-cards:*"
        assert client.get("/api/v1/business-cards/fast").json()["_cached"] is False

    def test_manual_invalidation_outside_namespace_is_400(self, client):
        response = client.delete("/api/v1/business-cards/fast?pattern=bank-accounts:*")

        assert response.status_code == 400

    def test_database_failure_is_500(self, client, monkeypatch):
        monkeypatch.setattr(
            "backoffice.server.app.business_cards.db_list_business_cards",
            AsyncMock(side_effect=RuntimeError("Database pool is not open")),
        )

        response = client.get("/api/v1/business-cards/fast")

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to list business cards"


class TestBankAccountsFast:
    def test_skip_take_pagination(self, client, monkeypatch):
        accounts = [{"id": "ba-1", "companyId": 1, "currency": "EUR"}]
        mock = AsyncMock(return_value=(accounts, 21))
        monkeypatch.setattr("backoffice.server.app.bank_accounts.db_list_bank_accounts", mock)

        body = client.get("/api/v1/bank-accounts/fast?skip=20&take=1&currency=eur").json()

        assert body["data"] == accounts
        assert body["pagination"] == {"total": 21, "skip": 20, "take": 1, "hasMore": False}
        assert mock.await_args.kwargs["currency"] == "EUR"


class TestCalendar:
    def test_named_range_is_cached_per_day(self, client, monkeypatch):
        events = AsyncMock(return_value=([{"id": "ev-1"}], 1))
        monkeypatch.setattr("backoffice.server.app.calendar.db_list_calendar_events", events)
        monkeypatch.setattr("backoffice.server.app.calendar._today", lambda: date(2024, 5, 1))

        first = client.get("/api/v1/calendar/events/fast?dateRange=today").json()
        same_day = client.get("/api/v1/calendar/events/fast?dateRange=today").json()
        monkeypatch.setattr("backoffice.server.app.calendar._today", lambda: date(2024, 5, 2))
        next_day = client.get("/api/v1/calendar/events/fast?dateRange=today").json()

        assert first["_cached"] is False
        assert same_day["_cached"] is True
        assert next_day["_cached"] is False
        assert events.await_count == 2

    def test_statistics_cached_with_etag(self, client, monkeypatch):
        stats = {"total": 4, "today": 1, "upcoming": 2, "past": 2, "autoGenerated": 0,
                 "byType": {"MEETING": 4}, "upcomingByPriority": {"HIGH": 2}}
        mock = AsyncMock(return_value=stats)
        monkeypatch.setattr("backoffice.server.app.calendar.db_get_calendar_statistics", mock)

        first = client.get("/api/v1/calendar/statistics?companyId=3")
        second = client.get(
            "/api/v1/calendar/statistics?companyId=3",
            headers={"If-None-Match": first.headers["etag"]},
        )

        assert first.json()["statistics"] == stats
        assert second.status_code == 304
        mock.assert_awaited_once_with(3)

    def test_event_mutation_clears_dashboard(self, client, cache_client, monkeypatch):
        monkeypatch.setattr(
            "backoffice.server.app.calendar.db_create_calendar_event",
            AsyncMock(return_value={"id": "ev-1", "companyId": 3}),
        )
        summary = AsyncMock(return_value={"stats": {"companies": 1}})
        monkeypatch.setattr("backoffice.server.app.dashboard.db_get_dashboard_summary", summary)

        client.get("/api/v1/dashboard/summary")
        client.post("/api/v1/calendar/events", json={"title": "Board meeting", "date": "2024-05-01T10:00:00", "time": "10:00"})
        body = client.get("/api/v1/dashboard/summary").json()

        assert body["_cached"] is False
        assert summary.await_count == 2


class TestDashboard:
    def test_summary_cached_without_etag(self, client, monkeypatch):
        summary = AsyncMock(return_value={"stats": {"companies": 5}, "activeNotes": []})
        monkeypatch.setattr("backoffice.server.app.dashboard.db_get_dashboard_summary", summary)

        first = client.get("/api/v1/dashboard/summary")
        second = client.get("/api/v1/dashboard/summary")

        assert first.json()["_cached"] is False
        assert second.json()["_cached"] is True
        assert second.json()["stats"] == {"companies": 5}
        assert "etag" not in second.headers
        assert summary.await_count == 1


class TestCacheAdmin:
    def test_stats_and_clear(self, client, list_cards):
        client.get("/api/v1/business-cards/fast")
        client.get("/api/v1/business-cards/fast")

        stats = client.get("/api/v1/cache/stats").json()
        assert stats["backend"] == "memory"
        assert stats["healthy"] is True
        assert stats["hits"] >= 2

        cleared = client.post("/api/v1/cache/clear?pattern=business-cards").json()
        assert cleared["pattern"] == "business-cards*"
        assert cleared["deleted"] == 2

        assert client.post("/api/v1/cache/clear").json()["success"] is True

    def test_health_reports_cache_backend(self, client):
        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["cache"] == {"backend": "memory", "healthy": True}

    def test_uninitialized_services_are_503(self):
        bare = FastAPI()
        bare.include_router(health_router)

        assert TestClient(bare).get("/health").status_code == 503
