"""
Cache invalidation utilities.

Mutations are described by a MutationEvent and resolved against a
declarative table mapping each resource to the key patterns it makes stale:
its own namespace, related namespaces whose payloads embed it, and the
owning company's entries when a company id is known.
"""

import logging
import string
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import quote

from backoffice.config.settings import is_cache_invalidate_on_write_enabled
from backoffice.utils.cache.cache_keys import CacheNamespace, normalize_value
from backoffice.utils.cache.redis_cache import RedisCacheClient

logger = logging.getLogger(__name__)


class MutationAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class MutationEvent:
    """A write against the source of truth."""
    resource: str
    action: MutationAction
    entity_id: Optional[Any] = None
    company_id: Optional[Any] = None


@dataclass(frozen=True)
class InvalidationRule:
    """
    Patterns made stale by mutating one resource.

    Attributes:
        namespace: The resource's own key namespace, always cleared
        patterns: Extra pattern templates; {entity_id} and {company_id}
            are filled from the event, templates missing a value are skipped
        related: Namespaces cleared entirely alongside the resource
        company_cascade: Also clear the owning company's entries
    """
    namespace: str
    patterns: Tuple[str, ...] = ()
    related: Tuple[str, ...] = ()
    company_cascade: bool = False


# Company entries touched when a company-owned record changes
COMPANY_CASCADE_PATTERNS: Tuple[str, ...] = (
    f"{CacheNamespace.COMPANIES}:item:{{company_id}}",
    f"{CacheNamespace.COMPANIES}:stats:{{company_id}}",
    f"{CacheNamespace.COMPANIES}:list:*",
    f"{CacheNamespace.COMPANIES}:count*",
)

INVALIDATION_TABLE: Dict[str, InvalidationRule] = {
    "company": InvalidationRule(
        namespace=CacheNamespace.COMPANIES,
        related=(
            CacheNamespace.BUSINESS_CARDS,
            CacheNamespace.BANK_ACCOUNTS,
            CacheNamespace.DIGITAL_WALLETS,
            CacheNamespace.CALENDAR,
            CacheNamespace.DASHBOARD,
        ),
    ),
    "business_card": InvalidationRule(
        namespace=CacheNamespace.BUSINESS_CARDS,
        related=(CacheNamespace.DASHBOARD,),
        company_cascade=True,
    ),
    "bank_account": InvalidationRule(
        namespace=CacheNamespace.BANK_ACCOUNTS,
        related=(CacheNamespace.CASHFLOW, CacheNamespace.DASHBOARD),
        company_cascade=True,
    ),
    "digital_wallet": InvalidationRule(
        namespace=CacheNamespace.DIGITAL_WALLETS,
        related=(CacheNamespace.CASHFLOW, CacheNamespace.DASHBOARD),
        company_cascade=True,
    ),
    "calendar_event": InvalidationRule(
        namespace=CacheNamespace.CALENDAR,
        related=(CacheNamespace.DASHBOARD,),
        company_cascade=True,
    ),
    "note": InvalidationRule(
        namespace=CacheNamespace.NOTES,
        patterns=(f"{CacheNamespace.CALENDAR}:stats*",),
        related=(CacheNamespace.DASHBOARD,),
        company_cascade=True,
    ),
    "product": InvalidationRule(
        namespace=CacheNamespace.PRODUCTS,
        related=(CacheNamespace.INVOICES,),
        company_cascade=True,
    ),
    "vendor": InvalidationRule(
        namespace=CacheNamespace.VENDORS,
        related=(CacheNamespace.CASHFLOW,),
        company_cascade=True,
    ),
    "client": InvalidationRule(
        namespace=CacheNamespace.CLIENTS,
        related=(CacheNamespace.INVOICES,),
        company_cascade=True,
    ),
    "invoice": InvalidationRule(
        namespace=CacheNamespace.INVOICES,
        related=(CacheNamespace.CLIENTS, CacheNamespace.CASHFLOW, CacheNamespace.DASHBOARD),
        company_cascade=True,
    ),
}


def _template_fields(template: str) -> List[str]:
    return [name for _, name, _, _ in string.Formatter().parse(template) if name]


def _render(template: str, values: Mapping[str, Optional[Any]]) -> Optional[str]:
    """Fill a pattern template; None when a placeholder has no value."""
    fields = _template_fields(template)
    if any(values.get(name) is None for name in fields):
        return None
    encoded = {name: quote(normalize_value(values[name]), safe="") for name in fields}
    return template.format(**encoded)


def _dedupe(patterns: Iterable[str]) -> List[str]:
    seen = set()
    ordered = []
    for pattern in patterns:
        if pattern not in seen:
            seen.add(pattern)
            ordered.append(pattern)
    return ordered


class CacheInvalidator:
    """
    Cache invalidation manager.

    Features:
    - Declarative mutation -> pattern resolution
    - Pattern-based bulk deletion
    - Error handling and logging (never raises)
    """

    def __init__(
        self,
        cache: RedisCacheClient,
        table: Optional[Mapping[str, InvalidationRule]] = None,
        enabled: Optional[bool] = None,
    ):
        """
        Initialize cache invalidator.

        Args:
            cache: Cache client to delete from
            table: Resource -> rule mapping (defaults to INVALIDATION_TABLE)
            enabled: Override for redis.cache_invalidate_on_write
        """
        self.cache = cache
        self.table = INVALIDATION_TABLE if table is None else table
        self.enabled = (
            is_cache_invalidate_on_write_enabled() if enabled is None else enabled
        )

    def patterns_for(self, event: MutationEvent) -> List[str]:
        """
        Resolve the key patterns a mutation makes stale.

        Returns:
            Deduplicated patterns in table order
        """
        rule = self.table.get(event.resource)
        if rule is None:
            logger.warning(f"No invalidation rule for resource '{event.resource}'")
            return [f"{event.resource}:*"]

        values = {"entity_id": event.entity_id, "company_id": event.company_id}

        patterns = [f"{rule.namespace}:*"]
        for template in rule.patterns:
            rendered = _render(template, values)
            if rendered is not None:
                patterns.append(rendered)

        patterns.extend(f"{namespace}:*" for namespace in rule.related)

        if rule.company_cascade and event.company_id is not None:
            for template in COMPANY_CASCADE_PATTERNS:
                rendered = _render(template, values)
                if rendered is not None:
                    patterns.append(rendered)

        return _dedupe(patterns)

    async def invalidate(self, event: MutationEvent) -> Dict[str, int]:
        """
        Invalidate everything a mutation makes stale.

        Returns:
            Dict mapping pattern to number of keys deleted
        """
        if not self.enabled:
            logger.debug(f"Invalidation on write disabled, skipping {event.resource}")
            return {}

        results = await self.invalidate_patterns(self.patterns_for(event))
        action = event.action.value if isinstance(event.action, MutationAction) else event.action
        logger.info(
            f"Cache invalidated for {event.resource} {action}: "
            f"{sum(results.values())} keys across {len(results)} patterns"
        )
        return results

    async def invalidate_patterns(self, patterns: List[str]) -> Dict[str, int]:
        """
        Invalidate multiple cache key patterns.

        Args:
            patterns: List of cache key patterns to delete

        Returns:
            Dict mapping pattern to number of keys deleted
        """
        if not self.cache.enabled:
            logger.debug("Cache disabled, skipping invalidation")
            return {}

        results = {}

        for pattern in patterns:
            try:
                deleted_count = await self.cache.delete_pattern(pattern)
                results[pattern] = deleted_count

                if deleted_count > 0:
                    logger.debug(f"Invalidated {deleted_count} keys matching: {pattern}")

            except Exception as e:
                logger.error(f"Failed to invalidate pattern {pattern}: {e}")
                results[pattern] = 0

        return results

    async def invalidate_all(self) -> bool:
        """
        Clear every cached entry (FLUSHDB on Redis plus the memory store).

        Returns:
            False when the cache is disabled or the flush failed
        """
        logger.warning("Clearing ALL caches")
        try:
            cleared = await self.cache.clear_all()
        except Exception as e:
            logger.error(f"Failed to clear all caches: {e}")
            return False

        if cleared:
            logger.warning("All caches cleared")
        return cleared
