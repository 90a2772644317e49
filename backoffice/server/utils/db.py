"""
Database utilities for PostgreSQL operations.

Provides builders for the dynamic WHERE / UPDATE fragments used by the
list and mutation queries. Column names always come from code, never from
request input; values are passed as psycopg parameters.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple


class WhereClauseBuilder:
    """
    Builder for AND-joined WHERE conditions with optional filters.

    Usage:
        where = WhereClauseBuilder()
        where.add_equals("company_id", company_id)
        where.add_search(["first_name", "last_name", "email"], search)

        clause, params = where.build()
        # ("WHERE company_id = %s AND (first_name ILIKE %s OR ...)", (...))
    """

    def __init__(self):
        self._conditions: List[str] = []
        self._params: List[Any] = []

    def add_condition(self, condition: str, *params: Any) -> "WhereClauseBuilder":
        """Add a raw condition with its parameters."""
        self._conditions.append(condition)
        self._params.extend(params)
        return self

    def add_equals(self, column: str, value: Any) -> "WhereClauseBuilder":
        """Add ``column = value`` if value is not None."""
        if value is not None:
            self.add_condition(f"{column} = %s", value)
        return self

    def add_search(self, columns: Sequence[str], term: Optional[str]) -> "WhereClauseBuilder":
        """Add a case-insensitive substring match across columns."""
        if term:
            pattern = f"%{term.strip()}%"
            ors = " OR ".join(f"{column} ILIKE %s" for column in columns)
            self.add_condition(f"({ors})", *([pattern] * len(columns)))
        return self

    def add_range(
        self,
        column: str,
        lower: Any = None,
        upper: Any = None,
    ) -> "WhereClauseBuilder":
        """Add inclusive lower/upper bounds, each only if given."""
        if lower is not None:
            self.add_condition(f"{column} >= %s", lower)
        if upper is not None:
            self.add_condition(f"{column} <= %s", upper)
        return self

    def build(self) -> Tuple[str, Tuple[Any, ...]]:
        """
        Returns:
            Tuple of ("WHERE ..." or "", parameters_tuple)
        """
        if not self._conditions:
            return "", ()
        return f"WHERE {' AND '.join(self._conditions)}", tuple(self._params)


def order_by_clause(
    sort_field: Optional[str],
    sort_direction: Optional[str],
    allowed: Dict[str, str],
    default: str,
) -> str:
    """
    Build an ORDER BY clause from whitelisted API field names.

    Args:
        sort_field: API field name (e.g., "createdAt")
        sort_direction: "asc" or "desc" (anything else is "desc")
        allowed: API field name -> column name
        default: API field name used when sort_field is unknown
    """
    column = allowed.get(sort_field or "", allowed[default])
    direction = "ASC" if (sort_direction or "").lower() == "asc" else "DESC"
    return f"ORDER BY {column} {direction}"


class UpdateQueryBuilder:
    """
    Builder for dynamic UPDATE queries with optional field updates.

    Supports:
    - Optional field updates (only non-None values are included)
    - Automatic "updatedAt" timestamp

    Usage:
        builder = UpdateQueryBuilder()
        builder.add_field('"personName"', person_name)
        builder.add_field("position", position)

        query, params = builder.build(
            table="business_cards",
            where_clause="id = %s",
            where_params=[card_id],
            returning_columns=["*"],
        )
    """

    def __init__(self):
        self._updates: List[str] = []
        self._params: List[Any] = []

    def add_field(
        self,
        column: str,
        value: Any,
    ) -> "UpdateQueryBuilder":
        """Add a field to update if value is not None."""
        if value is not None:
            self._updates.append(f"{column} = %s")
            self._params.append(value)
        return self

    def add_fields(self, values: Dict[str, Any], columns: Dict[str, str]) -> "UpdateQueryBuilder":
        """
        Add every mapped field present in values.

        Args:
            values: API field name -> value (e.g., a model_dump(exclude_unset=True))
            columns: API field name -> column name; unmapped fields are ignored
        """
        for field_name, column in columns.items():
            self.add_field(column, values.get(field_name))
        return self

    def has_updates(self) -> bool:
        return len(self._updates) > 0

    def build(
        self,
        table: str,
        where_clause: str,
        where_params: List[Any],
        returning_columns: Optional[List[str]] = None,
        *,
        updated_at_column: Optional[str] = '"updatedAt"',
    ) -> Tuple[str, Tuple[Any, ...]]:
        """
        Build the UPDATE query.

        Args:
            updated_at_column: Column stamped with NOW(), None to skip

        Returns:
            Tuple of (query_string, parameters_tuple)

        Raises:
            ValueError: If no fields were added for update
        """
        if not self._updates:
            raise ValueError("No fields to update")

        updates = self._updates.copy()
        params = self._params.copy()

        if updated_at_column:
            updates.append(f"{updated_at_column} = NOW()")

        params.extend(where_params)

        query = f"UPDATE {table} SET {', '.join(updates)} WHERE {where_clause}"

        if returning_columns:
            query += f" RETURNING {', '.join(returning_columns)}"

        return query, tuple(params)
