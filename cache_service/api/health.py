"""Health check endpoint."""

import time
from typing import Any, Dict

from fastapi import APIRouter, Depends

from cache_service.api.deps import get_container
from cache_service.core.config import settings
from cache_service.core.container import ServiceContainer

router = APIRouter(tags=["health"])

# Track startup time
startup_time = time.time()


@router.get("/health")
async def health(container: ServiceContainer = Depends(get_container)) -> Dict[str, Any]:
    """Liveness plus the remote cache state.

    The service stays healthy without Redis; it reports "degraded" while
    running on the local fallback store.
    """
    remote_available = container.kv_store.is_available()
    return {
        "status": "healthy" if remote_available else "degraded",
        "version": settings.app_version,
        "uptime_seconds": time.time() - startup_time,
        "remote_cache_available": remote_available,
    }
