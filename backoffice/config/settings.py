"""
Typed accessors over config.yaml.

Every value has a default in ``InfrastructureConfig``; the helpers here
only coerce types and reject nonsensical values with a warning. Secrets
(DATABASE_URL, REDIS_URL, provider API keys) are read from the environment
by the modules that need them.
"""

import logging
import os
from typing import Any, Dict, List

from backoffice.config.core import get_infrastructure_config

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _settings() -> Dict[str, Any]:
    return get_infrastructure_config().model_dump()


def get_config(key: str, default: Any = None) -> Any:
    """Top-level value, ``default`` when absent or null."""
    value = _settings().get(key)
    return default if value is None else value


def get_nested_config(key_path: str, default: Any = None) -> Any:
    """
    Dotted lookup, e.g. ``get_nested_config("redis.ttl")``.

    Returns ``default`` as soon as a segment is missing.
    """
    node: Any = _settings()
    for part in key_path.split("."):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return default if node is None else node


# =============================================================================
# Logging
# =============================================================================

def get_log_level() -> str:
    level = str(get_config("log_level", "INFO")).upper()
    if level not in VALID_LOG_LEVELS:
        logger.warning(f"Unknown log_level {level!r}, falling back to INFO")
        return "INFO"
    return level


def get_log_format() -> str:
    return str(get_config("log_format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"))


def get_module_log_levels() -> Dict[str, str]:
    """Logger name (or ``group:<name>``) to upper-cased level."""
    levels = get_config("module_log_levels", {})
    if not isinstance(levels, dict):
        return {}
    return {name: str(level).upper() for name, level in levels.items()}


def get_allowed_origins() -> List[str]:
    """CORS origins; a comma-separated string is accepted too."""
    origins = get_config("allowed_origins", [])
    if isinstance(origins, str):
        return [origin.strip() for origin in origins.split(",") if origin.strip()]
    if isinstance(origins, list):
        return origins
    logger.warning(f"allowed_origins must be a list, got {type(origins).__name__}")
    return ["http://localhost:3000"]


# =============================================================================
# Redis cache
# =============================================================================

def is_redis_cache_enabled() -> bool:
    return bool(get_nested_config("redis.cache_enabled", True))


def get_redis_url(default: str = "redis://localhost:6379/0") -> str:
    """config.yaml ``redis.url`` first, then ``$REDIS_URL``."""
    return get_nested_config("redis.url") or os.getenv("REDIS_URL", default)


def get_redis_max_connections(default: int = 10) -> int:
    return int(get_nested_config("redis.max_connections", default))


def is_memory_fallback_enabled() -> bool:
    return bool(get_nested_config("redis.memory_fallback_enabled", True))


def is_cache_invalidate_on_write_enabled() -> bool:
    return bool(get_nested_config("redis.cache_invalidate_on_write", True))


def get_cache_ttl(namespace: str, resource: str, default: int = 300) -> int:
    """
    TTL in seconds for ``namespace``/``resource`` from ``redis.ttl``.

    Unconfigured pairs, non-numeric values and non-positive values all
    resolve to ``default``.

    Example:
        get_cache_ttl("business-cards", "list") -> 600
    """
    table = get_nested_config("redis.ttl", {})
    try:
        ttl = int(table.get(namespace, {}).get(resource, default))
    except (AttributeError, TypeError, ValueError) as e:
        logger.warning(f"Bad TTL for {namespace}:{resource} ({e}), using {default}s")
        return default

    if ttl <= 0:
        logger.warning(f"Non-positive TTL {ttl} for {namespace}:{resource}, using {default}s")
        return default
    return ttl


# =============================================================================
# HTTP caching
# =============================================================================

def get_http_cache_policy(hit: bool) -> Dict[str, int]:
    """Cache-Control values for a cache hit (longer) or a fresh fetch."""
    return dict(get_nested_config(f"http_cache.{'hit' if hit else 'miss'}", {}))


def get_compression_settings() -> Dict[str, int]:
    return {
        "threshold": int(get_nested_config("http_cache.compression_threshold", 512)),
        "level": int(get_nested_config("http_cache.compression_level", 6)),
    }


# =============================================================================
# Blockchain providers
# =============================================================================

def get_blockchain_config() -> Dict[str, Any]:
    return dict(get_config("blockchain", {}))
