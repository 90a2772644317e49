"""Tests for declarative cache invalidation."""

from unittest.mock import AsyncMock

import pytest

from backoffice.utils.cache import (
    CacheInvalidator,
    InvalidationRule,
    MutationAction,
    MutationEvent,
)


class TestPatternsFor:
    """Tests for mutation -> pattern resolution."""

    def test_business_card_with_company(self, invalidator):
        event = MutationEvent("business_card", MutationAction.CREATED, entity_id="c1", company_id=42)

        patterns = invalidator.patterns_for(event)

        assert patterns == [
            "business-cards:*",
            "dashboard:*",
            "companies:item:42",
            "companies:stats:42",
            "companies:list:*",
            "companies:count*",
        ]

    def test_company_cascade_skipped_without_company(self, invalidator):
        event = MutationEvent("business_card", MutationAction.DELETED, entity_id="c1")

        assert invalidator.patterns_for(event) == ["business-cards:*", "dashboard:*"]

    def test_bank_account_uses_hyphenated_namespace(self, invalidator):
        event = MutationEvent("bank_account", MutationAction.UPDATED, company_id=1)

        patterns = invalidator.patterns_for(event)

        assert patterns[0] == "bank-accounts:*"
        assert "cashflow:*" in patterns

    def test_calendar_and_notes_clear_dashboard(self, invalidator):
        calendar = invalidator.patterns_for(MutationEvent("calendar_event", MutationAction.CREATED))
        note = invalidator.patterns_for(MutationEvent("note", MutationAction.CREATED))

        assert "dashboard:*" in calendar
        assert note[:3] == ["notes:*", "calendar:stats*", "dashboard:*"]

    def test_company_clears_dependent_namespaces(self, invalidator):
        patterns = invalidator.patterns_for(MutationEvent("company", MutationAction.UPDATED, entity_id=7))

        assert patterns == [
            "companies:*",
            "business-cards:*",
            "bank-accounts:*",
            "digital-wallets:*",
            "calendar:*",
            "dashboard:*",
        ]

    def test_unknown_resource_clears_own_namespace(self, invalidator):
        patterns = invalidator.patterns_for(MutationEvent("widgets", MutationAction.CREATED))

        assert patterns == ["widgets:*"]

    def test_template_values_are_encoded(self, cache_client):
        table = {
            "thing": InvalidationRule(namespace="things", patterns=("things:item:{entity_id}",)),
        }
        invalidator = CacheInvalidator(cache_client, table=table, enabled=True)

        patterns = invalidator.patterns_for(
            MutationEvent("thing", MutationAction.UPDATED, entity_id="a*b")
        )

        assert patterns == ["things:*", "things:item:a%2Ab"]

    def test_duplicates_removed_in_order(self, cache_client):
        table = {
            "thing": InvalidationRule(namespace="things", related=("things", "other")),
        }
        invalidator = CacheInvalidator(cache_client, table=table, enabled=True)

        patterns = invalidator.patterns_for(MutationEvent("thing", MutationAction.CREATED))

        assert patterns == ["things:*", "other:*"]


class TestInvalidate:
    """Tests for invalidation against a cache."""

    @pytest.mark.asyncio
    async def test_mutation_clears_matching_entries_only(self, invalidator, cache_client):
        await cache_client.set("business-cards:list:page=1", [], ttl=60)
        await cache_client.set("business-cards:count:", 0, ttl=60)
        await cache_client.set("dashboard:summary:v1", {}, ttl=60)
        await cache_client.set("bank-accounts:list:skip=0", [], ttl=60)

        results = await invalidator.invalidate(
            MutationEvent("business_card", MutationAction.CREATED, company_id=1)
        )

        assert results["business-cards:*"] == 2
        assert results["dashboard:*"] == 1
        assert await cache_client.get("bank-accounts:list:skip=0") == []

    @pytest.mark.asyncio
    async def test_disabled_invalidator_does_nothing(self, cache_client):
        await cache_client.set("business-cards:list", [], ttl=60)
        invalidator = CacheInvalidator(cache_client, enabled=False)

        results = await invalidator.invalidate(
            MutationEvent("business_card", MutationAction.UPDATED)
        )

        assert results == {}
        assert await cache_client.exists("business-cards:list") is True

    @pytest.mark.asyncio
    async def test_delete_failure_counts_zero_and_continues(self):
        cache = AsyncMock()
        cache.enabled = True
        cache.delete_pattern.side_effect = [RuntimeError("boom"), 3]
        invalidator = CacheInvalidator(cache, enabled=True)

        results = await invalidator.invalidate_patterns(["a:*", "b:*"])

        assert results == {"a:*": 0, "b:*": 3}

    @pytest.mark.asyncio
    async def test_invalidate_all(self, invalidator, cache_client):
        await cache_client.set("notes:list", [], ttl=60)
        await cache_client.set("vendors:list", [], ttl=60)

        assert await invalidator.invalidate_all() is True
        assert await cache_client.get("notes:list") is None
        assert await cache_client.get("vendors:list") is None

    @pytest.mark.asyncio
    async def test_invalidate_all_failure_returns_false(self):
        cache = AsyncMock()
        cache.clear_all.side_effect = RuntimeError("flush failed")

        assert await CacheInvalidator(cache, enabled=True).invalidate_all() is False
