"""Startup and shutdown of the cache service."""
from contextlib import asynccontextmanager

from fastapi import FastAPI

from cache_service.core.config import settings
from cache_service.core.container import create_container, set_container
from cache_service.core.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the container before serving and tear it down afterwards.

    A missing or unreachable Redis does not stop startup; the service runs on
    its local stores until an admin reconnect succeeds.
    """
    container = create_container()
    await container.initialize(settings)
    set_container(container)
    app.state.container = container

    logger.info(
        "Cache service ready",
        extra={"remote_available": container.kv_store.is_available()},
    )
    try:
        yield
    finally:
        await container.shutdown()
        set_container(None)
        logger.info("Cache service stopped")
