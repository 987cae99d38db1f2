"""Shared dependencies for API endpoints."""

from fastapi import Depends, Request

from cache_service.core import container as container_module
from cache_service.core.container import ServiceContainer
from cache_service.core.interfaces import IConfigProvider
from cache_service.services.rate_limiter import RateLimiter
from cache_service.services.response_cache import ResponseCache


def get_container(request: Request) -> ServiceContainer:
    """Get the service container."""
    # Lifespan-managed container first
    if hasattr(request.app.state, "container"):
        return request.app.state.container
    # Global container (apps mounted without the lifespan)
    return container_module.get_container()


async def get_response_cache(container: ServiceContainer = Depends(get_container)) -> ResponseCache:
    return container.response_cache


async def get_rate_limiter(container: ServiceContainer = Depends(get_container)) -> RateLimiter:
    return container.rate_limiter


async def get_config_provider(container: ServiceContainer = Depends(get_container)) -> IConfigProvider:
    return container.config_provider
