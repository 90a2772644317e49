"""
Pydantic models for infrastructure configuration.

These models define the schema for config.yaml.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


def _default_cache_ttls() -> Dict[str, Dict[str, int]]:
    # Seconds, per namespace and resource
    return {
        "companies": {"list": 2, "item": 5, "stats": 10, "search": 2, "count": 2},
        "calendar": {"events": 5 * 60, "count": 5 * 60, "stats": 15 * 60},
        "notes": {"list": 10 * 60, "stats": 15 * 60},
        "business-cards": {"list": 10 * 60, "count": 10 * 60, "item": 30 * 60, "stats": 15 * 60},
        "products": {"list": 15 * 60, "item": 30 * 60, "stats": 30 * 60},
        "vendors": {"list": 20 * 60, "item": 45 * 60, "stats": 30 * 60},
        "clients": {"list": 10 * 60, "item": 30 * 60, "stats": 15 * 60},
        "invoices": {"list": 5 * 60, "item": 15 * 60, "stats": 10 * 60},
        "bank-accounts": {"list": 30 * 60, "count": 30 * 60, "item": 60 * 60},
        "digital-wallets": {"list": 30 * 60, "item": 60 * 60},
        "cashflow": {"list": 5 * 60, "item": 10 * 60, "summary": 5 * 60},
        "dashboard": {"summary": 5 * 60},
    }


class RedisConfig(BaseModel):
    """Redis cache configuration."""

    cache_enabled: bool = Field(default=True, description="Enable/disable caching globally")
    url: Optional[str] = Field(default=None, description="Redis URL (falls back to $REDIS_URL)")
    max_connections: int = Field(default=10, description="Connection pool size")
    socket_timeout: float = Field(default=1.0, description="Command timeout in seconds")
    socket_connect_timeout: float = Field(default=2.0, description="Connect timeout in seconds")
    memory_fallback_enabled: bool = Field(
        default=True, description="Serve from an in-process cache when Redis is unavailable"
    )
    memory_default_ttl: int = Field(
        default=5, description="TTL in seconds for in-process writes that carry no TTL"
    )
    cache_invalidate_on_write: bool = Field(
        default=True, description="Invalidate cache on writes"
    )
    ttl: Dict[str, Dict[str, int]] = Field(
        default_factory=_default_cache_ttls,
        description="TTL in seconds per namespace and resource",
    )


class HttpCachePolicyConfig(BaseModel):
    """Cache-Control directive values in seconds."""

    max_age: int = Field(default=60, description="Browser cache lifetime")
    s_maxage: int = Field(default=300, description="CDN cache lifetime")
    stale_while_revalidate: int = Field(default=180, description="Stale-while-revalidate window")


class HttpCacheConfig(BaseModel):
    """HTTP response caching: policies for cache hits vs fresh data, and compression."""

    hit: HttpCachePolicyConfig = Field(
        default_factory=lambda: HttpCachePolicyConfig(
            max_age=300, s_maxage=600, stale_while_revalidate=300
        )
    )
    miss: HttpCachePolicyConfig = Field(
        default_factory=lambda: HttpCachePolicyConfig(
            max_age=60, s_maxage=300, stale_while_revalidate=180
        )
    )
    compression_threshold: int = Field(
        default=512, description="Minimum body size in bytes before compressing"
    )
    compression_level: int = Field(default=6, description="gzip/deflate level (1-9)")


class BlockchainConfig(BaseModel):
    """Blockchain balance providers and balance cache TTLs."""

    current_balance_ttl: int = Field(default=5 * 60, description="Current balance TTL (5 minutes)")
    historical_balance_ttl: int = Field(
        default=60 * 60, description="Historical balance TTL (60 minutes)"
    )
    request_timeout: float = Field(default=10.0, description="Provider HTTP timeout in seconds")
    trongrid_base_url: str = Field(default="https://api.trongrid.io")
    etherscan_base_url: str = Field(default="https://api.etherscan.io/v2/api")


class InfrastructureConfig(BaseModel):
    """Root model for config.yaml."""

    # Application Settings
    debug: bool = Field(default=False, description="Debug mode flag")

    # General Application Logging
    log_level: str = Field(default="INFO", description="Root logger level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )
    module_log_levels: Dict[str, str] = Field(
        default_factory=dict, description="Module-specific log levels"
    )

    # CORS Settings
    allowed_origins: List[str] = Field(
        default_factory=lambda: ["*"], description="Allowed CORS origins"
    )

    # Caching
    redis: RedisConfig = Field(default_factory=RedisConfig)
    http_cache: HttpCacheConfig = Field(default_factory=HttpCacheConfig)

    # External providers
    blockchain: BlockchainConfig = Field(default_factory=BlockchainConfig)

    class Config:
        extra = "allow"  # Allow extra fields for forward compatibility
