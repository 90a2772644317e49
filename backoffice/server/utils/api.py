"""
API utilities for FastAPI routers.

Provides common patterns for exception handling and dependency injection of
the cache services created in the application lifespan.
"""

import functools
import inspect
import logging
from typing import Annotated, Any, Callable, Optional, TypeVar

from fastapi import Depends, HTTPException, Request

from backoffice.server.services.blockchain_balance_cache import BlockchainBalanceCacheService
from backoffice.utils.cache import CacheInvalidator, ReadThroughCache, RedisCacheClient

# Type variable for generic return type preservation
T = TypeVar("T")


def _app_state(request: Request, name: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail=f"{name} is not initialized")
    return service


def get_cache(request: Request) -> RedisCacheClient:
    """FastAPI dependency returning the application's cache client."""
    return _app_state(request, "cache")


def get_read_through(request: Request) -> ReadThroughCache:
    return _app_state(request, "read_through")


def get_invalidator(request: Request) -> CacheInvalidator:
    return _app_state(request, "invalidator")


def get_balance_service(request: Request) -> BlockchainBalanceCacheService:
    return _app_state(request, "balance_service")


# Annotated types for cleaner endpoint signatures
CacheClient = Annotated[RedisCacheClient, Depends(get_cache)]
ReadThrough = Annotated[ReadThroughCache, Depends(get_read_through)]
Invalidator = Annotated[CacheInvalidator, Depends(get_invalidator)]
BalanceService = Annotated[BlockchainBalanceCacheService, Depends(get_balance_service)]


def handle_api_exceptions(
    action: str,
    logger: logging.Logger,
    *,
    conflict_on_value_error: bool = False,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Map endpoint failures to HTTP errors.

    ``HTTPException`` passes through. ``ValueError`` becomes 409 when
    ``conflict_on_value_error`` is set (database functions raise it for a
    missing owning company), otherwise it propagates. Anything else is
    logged with its traceback and answered with 500 ``"Failed to {action}"``.
    Cache failures never reach here; the cache layer absorbs them.

    Usage:
        @router.post("/business-cards")
        @handle_api_exceptions("create business card", logger, conflict_on_value_error=True)
        async def create_business_card(...):
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except HTTPException:
                raise
            except ValueError as e:
                if not conflict_on_value_error:
                    raise
                raise HTTPException(status_code=409, detail=str(e))
            except Exception as e:
                logger.exception(f"Failed to {action}: {e}")
                raise HTTPException(status_code=500, detail=f"Failed to {action}")
        # FastAPI reads parameters from the signature
        wrapper.__signature__ = inspect.signature(func)
        return wrapper
    return decorator


def raise_not_found(resource: str, resource_id: Optional[str] = None) -> None:
    """
    Raise a 404 Not Found HTTPException.

    Args:
        resource: Name of the resource (e.g., "Business card")
        resource_id: Optional ID to include in the message

    Raises:
        HTTPException: 404 Not Found
    """
    detail = f"{resource} not found"
    if resource_id is not None:
        detail = f"{resource} {resource_id} not found"
    raise HTTPException(status_code=404, detail=detail)
