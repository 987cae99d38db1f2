"""Cache management endpoints for the admin API."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from cache_service.api.deps import get_container
from cache_service.core.container import ServiceContainer
from cache_service.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["admin"])


@router.get("/cache/status")
async def cache_status(container: ServiceContainer = Depends(get_container)) -> Dict[str, Any]:
    """Report backend availability, local store sizes and counters."""
    kv_store = container.kv_store
    response_store = container.response_cache.store
    remote = kv_store.remote

    return {
        "remote": {
            "configured": bool(remote and remote.configured),
            "available": kv_store.is_available(),
            "stats": remote.stats.to_dict() if remote else None,
        },
        "local": {
            "rate_limit_entries": kv_store.local.size(),
            "response_cache_entries": response_store.local.size(),
        },
        "stats": {
            "kv_store": kv_store.stats.to_dict(),
            "response_store": response_store.stats.to_dict(),
            "response_cache": container.response_cache.stats.to_dict(),
        },
    }


@router.post("/cache/reconnect")
async def reconnect(container: ServiceContainer = Depends(get_container)) -> Dict[str, Any]:
    """Retry the Redis connection after the service fell back to local storage."""
    available = await container.reconnect()
    return {"status": "success", "remote_available": available}
