"""Protocol definitions for collaborators outside the core.

The configuration source (a relational store in production) is consumed
through ``IConfigProvider``; the core never fetches or caches configuration
on its own.
"""

from typing import Protocol, Optional, runtime_checkable

from cache_service.services.rate_limiter.models import RateLimitConfig
from cache_service.services.response_cache.models import CacheConfig


@runtime_checkable
class IConfigProvider(Protocol):
    """Interface for per-tenant configuration lookups."""

    async def get_cache_config(self, tenant_id: str) -> Optional[CacheConfig]:
        """Get the tenant's cache configuration, or None if it has none."""
        ...

    async def get_rate_limit_config(self, tenant_id: str) -> Optional[RateLimitConfig]:
        """Get the tenant's rate limit configuration, or None if it has none."""
        ...
