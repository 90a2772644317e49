"""
Cache key generation utilities.

Provides consistent, deterministic key generation for caching
with support for pattern matching and bulk invalidation.

Key layout: ``{namespace}:{resource}[:{scope}][:{params}]``. Parameters are
URL-encoded, so glob characters from user input never reach a key.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional
from urllib.parse import quote, urlencode
from uuid import UUID


class CacheNamespace:
    """Namespace prefixes, one per cached resource type."""

    COMPANIES = "companies"
    BUSINESS_CARDS = "business-cards"
    BANK_ACCOUNTS = "bank-accounts"
    DIGITAL_WALLETS = "digital-wallets"
    CALENDAR = "calendar"
    NOTES = "notes"
    PRODUCTS = "products"
    VENDORS = "vendors"
    CLIENTS = "clients"
    INVOICES = "invoices"
    CASHFLOW = "cashflow"
    DASHBOARD = "dashboard"
    BLOCKCHAIN = "blockchain"


def _normalize_decimal(value: Decimal) -> str:
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), "f")


def normalize_value(value: Any) -> str:
    """
    Render a filter value in canonical string form.

    Numbers of different types share a rendering: ``1``, ``1.0`` and
    ``Decimal("1.00")`` all become ``"1"``, the same as the string ``"1"``.
    Strings are kept verbatim, so ``"007"`` and ``"7"`` stay distinct search
    terms. Booleans become ``"true"``/``"false"``. Mappings are encoded with
    sorted keys, sequences keep their order.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return normalize_value(value.value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, Decimal):
        return _normalize_decimal(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        canonical = {
            str(k): normalize_value(v) for k, v in value.items() if v is not None
        }
        return json.dumps(canonical, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    if isinstance(value, (list, tuple, set, frozenset)):
        items = sorted(value, key=str) if isinstance(value, (set, frozenset)) else value
        return ",".join(normalize_value(v) for v in items)
    return str(value)


class CacheKeyBuilder:
    """
    Builder for generating consistent cache keys.

    Features:
    - Namespace support
    - Deterministic key generation (sorted params, canonical values)
    - URL-safe encoding
    - Pattern matching support
    """

    def __init__(self, namespace: str):
        """
        Initialize key builder.

        Args:
            namespace: Key namespace prefix (see CacheNamespace)
        """
        self.namespace = namespace

    @staticmethod
    def _normalize_params(params: Mapping[str, Any]) -> str:
        """
        Normalize query parameters to consistent format.

        - Drops None values
        - Sorts keys alphabetically
        - Renders values canonically
        - Converts to URL-encoded string
        """
        filtered = {str(k): normalize_value(v) for k, v in params.items() if v is not None}
        return urlencode(sorted(filtered.items()))

    @staticmethod
    def _hash_params(params_str: str) -> str:
        """
        Generate short hash of parameters.

        Useful for very long parameter strings to keep keys manageable.

        Returns:
            MD5 hash (first 16 characters)
        """
        return hashlib.md5(params_str.encode()).hexdigest()[:16]

    def build(
        self,
        resource: str,
        params: Optional[Mapping[str, Any]] = None,
        scope: Optional[Any] = None,
        use_hash: bool = False,
    ) -> str:
        """
        Build cache key.

        Args:
            resource: Resource identifier (e.g., "list", "count", "item", "stats")
            params: Filter/pagination parameters
            scope: Optional owner segment (e.g., a company id or an item id)
            use_hash: Whether to hash params for shorter keys

        Returns:
            Cache key string

        Example:
            builder = CacheKeyBuilder("business-cards")
            key = builder.build("list", {"limit": 20, "page": 1})
            # Returns: "business-cards:list:limit=20&page=1"
        """
        parts = [self.namespace, resource]

        if scope is not None:
            parts.append(quote(normalize_value(scope), safe=""))

        if params:
            params_str = self._normalize_params(params)

            if use_hash:
                params_str = self._hash_params(params_str)

            if params_str:
                parts.append(params_str)

        return ":".join(parts)

    def pattern(self, resource: Optional[str] = None, prefix: str = "*") -> str:
        """
        Build pattern for matching multiple keys.

        Example:
            CacheKeyBuilder("business-cards").pattern("list")
            # Returns: "business-cards:list:*"
        """
        if resource:
            return f"{self.namespace}:{resource}:{prefix}"
        return f"{self.namespace}:{prefix}"


# =============================================================================
# Blockchain balance keys
# =============================================================================

def _segment(value: str) -> str:
    return quote(str(value).strip(), safe="")


def balance_key(address: str, blockchain: str, currency: str) -> str:
    """Key for a wallet's current balance in one currency."""
    return ":".join([
        CacheNamespace.BLOCKCHAIN, "balance",
        _segment(blockchain.lower()), _segment(address), _segment(currency.upper()),
    ])


def balance_pattern(address: str, blockchain: str) -> str:
    """Pattern covering every currency balance of one wallet."""
    return ":".join([
        CacheNamespace.BLOCKCHAIN, "balance",
        _segment(blockchain.lower()), _segment(address), "*",
    ])


def historical_balance_key(
    address: str,
    blockchain: str,
    currency: str,
    as_of: date,
) -> str:
    """Key for a point-in-time balance; one entry per calendar day."""
    day = as_of.date() if isinstance(as_of, datetime) else as_of
    return ":".join([
        CacheNamespace.BLOCKCHAIN, "historical",
        _segment(blockchain.lower()), _segment(address), _segment(currency.upper()),
        day.isoformat(),
    ])
