"""Per-tenant cache invalidation and rate limit endpoints."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from cache_service.api.deps import get_config_provider, get_rate_limiter, get_response_cache
from cache_service.core.interfaces import IConfigProvider
from cache_service.core.logging import get_logger
from cache_service.services.rate_limiter import RateLimiter, RateLimitResult
from cache_service.services.response_cache import ResponseCache

logger = get_logger(__name__)
router = APIRouter(tags=["tenants"])


class RateLimitResponse(BaseModel):
    """Rate limit decision."""
    allowed: bool
    remaining: Optional[int] = None
    reset_at_ms: int
    blocked_until_ms: Optional[int] = None
    retry_after_seconds: Optional[int] = None

    @classmethod
    def from_result(cls, result: RateLimitResult) -> "RateLimitResponse":
        return cls(
            allowed=result.allowed,
            remaining=result.remaining,
            reset_at_ms=result.reset_at_ms,
            blocked_until_ms=result.blocked_until_ms,
            retry_after_seconds=result.retry_after_seconds,
        )


def _identity(tenant_id: str, user_id: str) -> str:
    return f"{tenant_id}:{user_id}"


@router.delete("/tenants/{tenant_id}/cache")
async def clear_tenant_cache(
    tenant_id: str,
    response_cache: ResponseCache = Depends(get_response_cache),
    config_provider: IConfigProvider = Depends(get_config_provider),
) -> Dict[str, Any]:
    """Delete every cached response of a tenant."""
    config = await config_provider.get_cache_config(tenant_id)
    if config is None:
        raise HTTPException(status_code=404, detail=f"No cache configuration for tenant {tenant_id}")

    cleared = await response_cache.clear_cache(tenant_id, config)
    return {"status": "success", "tenant_id": tenant_id, "cleared_keys": cleared}


@router.post("/tenants/{tenant_id}/rate-limit/check", response_model=RateLimitResponse)
async def check_rate_limit(
    tenant_id: str,
    user_id: str = Query(..., min_length=1),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    config_provider: IConfigProvider = Depends(get_config_provider),
):
    """Count one request for a tenant user; 429 when it is not allowed."""
    config = await config_provider.get_rate_limit_config(tenant_id)
    result = await rate_limiter.check(_identity(tenant_id, user_id), config)
    body = RateLimitResponse.from_result(result)

    if result.allowed:
        return body

    headers = {"Retry-After": str(result.retry_after_seconds or 0)}
    return JSONResponse(status_code=429, content=body.model_dump(), headers=headers)


@router.get("/tenants/{tenant_id}/rate-limit/{user_id}")
async def rate_limit_status(
    tenant_id: str,
    user_id: str,
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    config_provider: IConfigProvider = Depends(get_config_provider),
) -> Dict[str, Any]:
    """Inspect window counters and block state without counting a request."""
    identity = _identity(tenant_id, user_id)
    config = await config_provider.get_rate_limit_config(tenant_id)

    counts = await rate_limiter.get_window_counts(identity, config) if config is not None else {}
    return {
        "identity": identity,
        "enabled": bool(config and config.enabled),
        "windows": counts,
        "blocked_until_ms": await rate_limiter.get_block(identity),
    }
