"""Tests for SQL fragment builders and date window resolution."""

from datetime import date, datetime

import pytest

from backoffice.server.database.calendar_events import resolve_date_window
from backoffice.server.utils.db import UpdateQueryBuilder, WhereClauseBuilder, order_by_clause


class TestWhereClauseBuilder:
    def test_empty(self):
        assert WhereClauseBuilder().build() == ("", ())

    def test_none_filters_skipped(self):
        where = WhereClauseBuilder()
        where.add_equals('"companyId"', None)
        where.add_search(["title"], None)
        where.add_equals('"isArchived"', False)

        assert where.build() == ('WHERE "isArchived" = %s', (False,))

    def test_search_across_columns(self):
        clause, params = WhereClauseBuilder().add_search(["a", "b"], " acme ").build()

        assert clause == "WHERE (a ILIKE %s OR b ILIKE %s)"
        assert params == ("%acme%", "%acme%")

    def test_range(self):
        clause, params = WhereClauseBuilder().add_range("date", lower=1, upper=2).build()

        assert clause == "WHERE date >= %s AND date <= %s"
        assert params == (1, 2)


class TestOrderBy:
    ALLOWED = {"createdAt": 'b."createdAt"', "bankName": 'b."bankName"'}

    def test_known_field(self):
        assert order_by_clause("bankName", "asc", self.ALLOWED, "createdAt") == 'ORDER BY b."bankName" ASC'

    def test_unknown_field_uses_default(self):
        assert order_by_clause("password", "sideways", self.ALLOWED, "createdAt") == 'ORDER BY b."createdAt" DESC'


class TestUpdateQueryBuilder:
    def test_build_with_updated_at(self):
        builder = UpdateQueryBuilder().add_fields(
            {"personName": "Ada", "position": None, "unmapped": 1},
            {"personName": '"personName"', "position": "position"},
        )

        query, params = builder.build("business_cards", "id = %s", ["c1"], ["*"])

        assert query == (
            'UPDATE business_cards SET "personName" = %s, "updatedAt" = NOW() '
            "WHERE id = %s RETURNING *"
        )
        assert params == ("Ada", "c1")

    def test_no_fields_raises(self):
        with pytest.raises(ValueError):
            UpdateQueryBuilder().build("t", "id = %s", [1])

    def test_skip_updated_at(self):
        query, _ = UpdateQueryBuilder().add_field("name", "x").build(
            "t", "id = %s", [1], updated_at_column=None,
        )

        assert query == "UPDATE t SET name = %s WHERE id = %s"


class TestResolveDateWindow:
    NOW = datetime(2024, 5, 15, 14, 30)  # Wednesday

    def test_specific_date_wins(self):
        start, end = resolve_date_window(on_date=date(2024, 1, 2), date_range="month", now=self.NOW)

        assert (start, end) == (datetime(2024, 1, 2), datetime(2024, 1, 3))

    def test_week_starts_on_sunday(self):
        start, end = resolve_date_window(date_range="week", now=self.NOW)

        assert start == datetime(2024, 5, 12)
        assert end == datetime(2024, 5, 19)

    def test_month_rolls_over_december(self):
        start, end = resolve_date_window(date_range="month", now=datetime(2024, 12, 3))

        assert (start, end) == (datetime(2024, 12, 1), datetime(2025, 1, 1))

    def test_upcoming_is_open_ended(self):
        assert resolve_date_window(date_range="upcoming", now=self.NOW) == (self.NOW, None)

    def test_explicit_bounds_include_end_day(self):
        start, end = resolve_date_window(date_from=date(2024, 5, 1), date_to=date(2024, 5, 31), now=self.NOW)

        assert (start, end) == (datetime(2024, 5, 1), datetime(2024, 6, 1))
