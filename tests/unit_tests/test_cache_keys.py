"""Tests for cache key generation."""

from datetime import date, datetime
from decimal import Decimal

from backoffice.utils.cache.cache_keys import (
    CacheKeyBuilder,
    CacheNamespace,
    balance_key,
    balance_pattern,
    historical_balance_key,
    normalize_value,
)


class TestNormalizeValue:
    """Tests for canonical value rendering."""

    def test_numeric_forms_share_a_rendering(self):
        assert normalize_value(1) == "1"
        assert normalize_value(1.0) == "1"
        assert normalize_value(Decimal("1.00")) == "1"
        assert normalize_value(Decimal("100")) == "100"

    def test_fractional_numbers_keep_their_fraction(self):
        assert normalize_value(2.5) == "2.5"
        assert normalize_value(Decimal("2.50")) == "2.5"

    def test_large_decimal_keeps_every_digit(self):
        assert normalize_value(Decimal("12345678901234567890.123")) == "12345678901234567890.123"

    def test_strings_render_verbatim(self):
        assert normalize_value("007") == "007"
        assert normalize_value("1.50") == "1.50"
        assert normalize_value(" 7") == " 7"

    def test_booleans_render_lowercase(self):
        assert normalize_value(True) == "true"
        assert normalize_value(False) == "false"

    def test_dates_render_iso(self):
        assert normalize_value(date(2024, 3, 1)) == "2024-03-01"
        assert normalize_value(datetime(2024, 3, 1, 12, 30)) == "2024-03-01T12:30:00"

    def test_mapping_is_order_independent(self):
        assert normalize_value({"b": 1, "a": 2}) == normalize_value({"a": 2, "b": 1})

    def test_non_numeric_strings_unchanged(self):
        assert normalize_value("Acme Corp") == "Acme Corp"


class TestCacheKeyBuilder:
    """Tests for CacheKeyBuilder."""

    def test_build_documented_layout(self):
        key = CacheKeyBuilder("business-cards").build("list", {"limit": 20, "page": 1})

        assert key == "business-cards:list:limit=20&page=1"

    def test_param_order_does_not_matter(self):
        builder = CacheKeyBuilder(CacheNamespace.BUSINESS_CARDS)

        first = builder.build("list", {"page": 1, "limit": 20, "search": "acme"})
        second = builder.build("list", {"search": "acme", "limit": 20, "page": 1})

        assert first == second

    def test_none_values_are_dropped(self):
        builder = CacheKeyBuilder(CacheNamespace.BANK_ACCOUNTS)

        assert builder.build("list", {"skip": 0, "currency": None}) == builder.build("list", {"skip": 0})

    def test_type_equivalent_values_share_a_key(self):
        builder = CacheKeyBuilder(CacheNamespace.BUSINESS_CARDS)

        assert builder.build("list", {"companyId": 1}) == builder.build("list", {"companyId": 1.0})
        assert builder.build("list", {"companyId": 1}) == builder.build("list", {"companyId": "1"})

    def test_numeric_looking_search_terms_stay_distinct(self):
        builder = CacheKeyBuilder(CacheNamespace.BUSINESS_CARDS)

        assert builder.build("list", {"search": "007"}) == "business-cards:list:search=007"
        assert builder.build("list", {"search": "007"}) != builder.build("list", {"search": "7"})
        assert builder.build("list", {"search": "1.50"}) != builder.build("list", {"search": "1.5"})

    def test_different_filters_produce_different_keys(self):
        builder = CacheKeyBuilder(CacheNamespace.BUSINESS_CARDS)

        assert builder.build("list", {"page": 1}) != builder.build("list", {"page": 2})

    def test_no_params_is_namespace_and_resource(self):
        assert CacheKeyBuilder("dashboard").build("summary") == "dashboard:summary"

    def test_scope_segment(self):
        key = CacheKeyBuilder("dashboard").build("summary", scope="v1")

        assert key == "dashboard:summary:v1"

    def test_glob_characters_in_values_are_encoded(self):
        key = CacheKeyBuilder(CacheNamespace.BUSINESS_CARDS).build("list", {"search": "a*b?[c]"})

        assert "*" not in key
        assert "?" not in key
        assert "[" not in key

    def test_use_hash_shortens_params(self):
        builder = CacheKeyBuilder(CacheNamespace.CALENDAR)
        params = {"search": "x" * 500, "page": 1}

        key = builder.build("events", params, use_hash=True)

        assert key.startswith("calendar:events:")
        assert len(key.split(":")[-1]) == 16
        assert key == builder.build("events", dict(reversed(list(params.items()))), use_hash=True)

    def test_pattern(self):
        builder = CacheKeyBuilder(CacheNamespace.BUSINESS_CARDS)

        assert builder.pattern() == "business-cards:*"
        assert builder.pattern("list") == "business-cards:list:*"


class TestBalanceKeys:
    """Tests for blockchain balance keys."""

    def test_balance_key_normalizes_chain_and_currency(self):
        key = balance_key("TXYZabc", "TRON", "usdt")

        assert key == "blockchain:balance:tron:TXYZabc:USDT"

    def test_balance_pattern_covers_every_currency(self):
        assert balance_pattern("0xabc", "ethereum") == "blockchain:balance:ethereum:0xabc:*"

    def test_historical_key_is_per_day(self):
        morning = historical_balance_key("0xabc", "bsc", "usdt", datetime(2024, 5, 1, 8, 0))
        evening = historical_balance_key("0xabc", "bsc", "usdt", datetime(2024, 5, 1, 22, 0))

        assert morning == evening == "blockchain:historical:bsc:0xabc:USDT:2024-05-01"
