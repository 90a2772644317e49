"""Server utility functions."""

from .api import (
    BalanceService,
    CacheClient,
    Invalidator,
    ReadThrough,
    handle_api_exceptions,
    raise_not_found,
)
from .db import UpdateQueryBuilder, WhereClauseBuilder, order_by_clause

__all__ = [
    "BalanceService",
    "CacheClient",
    "Invalidator",
    "ReadThrough",
    "UpdateQueryBuilder",
    "WhereClauseBuilder",
    "handle_api_exceptions",
    "order_by_clause",
    "raise_not_found",
]
