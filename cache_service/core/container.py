"""Dependency injection container for service management.

This module owns the stateful pieces of the service (the Redis backend, the
local fallback maps, the response cache and the rate limiter). They are
created by an explicit ``initialize()`` call at startup instead of at import
time, and handed to consumers from here.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

from cache_service.core.logging import get_logger

if TYPE_CHECKING:
    from cache_service.core.config import Settings
    from cache_service.core.interfaces import IConfigProvider
    from cache_service.services.kv_store import KVStore, RedisBackend
    from cache_service.services.rate_limiter import RateLimiter
    from cache_service.services.response_cache import ResponseCache

logger = get_logger(__name__)


class ServiceNotInitializedError(Exception):
    """Raised when accessing a service that hasn't been initialized."""

    def __init__(self, service_name: str):
        super().__init__(f"Service '{service_name}' has not been initialized. "
                         f"Call container.initialize() first.")
        self.service_name = service_name


@dataclass
class ServiceContainer:
    """Centralized container for dependency injection.

    Usage:
        container = ServiceContainer()
        await container.initialize(settings)

        cache = container.response_cache
        limiter = container.rate_limiter

        await container.shutdown()
    """

    _remote: Optional[RedisBackend] = field(default=None, repr=False)
    _kv_store: Optional[KVStore] = field(default=None, repr=False)
    _response_cache: Optional[ResponseCache] = field(default=None, repr=False)
    _rate_limiter: Optional[RateLimiter] = field(default=None, repr=False)
    _config_provider: Optional[IConfigProvider] = field(default=None, repr=False)
    _cleanup_task: Optional[asyncio.Task] = field(default=None, repr=False)
    _initialized: bool = field(default=False, repr=True)
    _settings: Optional[Settings] = field(default=None, repr=False)

    async def initialize(
        self,
        settings: Settings,
        remote: Optional[RedisBackend] = None,
        config_provider: Optional[IConfigProvider] = None,
    ) -> None:
        """Initialize all services.

        Args:
            settings: Application settings.
            remote: Redis backend to use (built from settings when omitted).
            config_provider: Tenant configuration source (static defaults
                from settings when omitted).
        """
        if self._initialized:
            logger.warning("Container already initialized, skipping")
            return

        self._settings = settings
        logger.info("Initializing service container...")

        # Import here to avoid circular imports
        from cache_service.services.config_provider import StaticConfigProvider
        from cache_service.services.kv_store import KVStore, MemoryBackend, RedisBackend
        from cache_service.services.rate_limiter import RateLimiter
        from cache_service.services.response_cache import ResponseCache

        self._remote = remote or RedisBackend(settings=settings)
        self._kv_store = KVStore(
            self._remote,
            MemoryBackend(max_entries=settings.local_store_max_entries),
        )
        available = await self._kv_store.initialize()
        logger.info(f"Key/value store initialized (remote available: {available})")

        self._response_cache = ResponseCache(
            self._kv_store,
            namespace=settings.response_cache_namespace,
        )
        self._rate_limiter = RateLimiter(
            self._kv_store,
            key_prefix=settings.rate_limit_key_prefix,
        )
        self._config_provider = config_provider or StaticConfigProvider.from_settings(settings)

        if settings.local_store_cleanup_interval > 0:
            self._cleanup_task = asyncio.create_task(
                self._cleanup_local_stores(settings.local_store_cleanup_interval, settings.local_store_max_idle)
            )

        self._initialized = True
        logger.info("Service container initialized successfully")

    async def _cleanup_local_stores(self, interval: int, max_idle: int) -> None:
        """Periodically purge expired and idle entries from the local maps."""
        while True:
            await asyncio.sleep(interval)
            try:
                self.purge_local_stores(max_idle)
            except Exception as e:
                logger.error(f"Local store cleanup failed: {e}")

    def purge_local_stores(self, max_idle: Optional[float] = None) -> int:
        """Purge both local maps once.

        Returns:
            Number of entries removed.
        """
        removed = self.kv_store.local.purge_expired(max_idle)
        removed += self.response_cache.store.local.purge_expired(max_idle)
        if removed:
            logger.info(f"Purged {removed} entries from local stores")
        return removed

    async def reconnect(self) -> bool:
        """Retry the remote connection; the only way back from fallback mode."""
        available = await self.kv_store.initialize()
        logger.info(f"Remote reconnect attempted (available: {available})")
        return available

    async def shutdown(self) -> None:
        """Shutdown all services and cleanup resources."""
        logger.info("Shutting down service container...")

        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

        if self._kv_store:
            try:
                await self._kv_store.close()
                logger.info("Key/value store closed")
            except Exception as e:
                logger.error(f"Error closing key/value store: {e}")

        self._initialized = False
        logger.info("Service container shut down")

    @property
    def is_initialized(self) -> bool:
        """Check if the container is initialized."""
        return self._initialized

    @property
    def settings(self) -> Settings:
        """Get application settings."""
        if self._settings is None:
            raise ServiceNotInitializedError("settings")
        return self._settings

    @property
    def kv_store(self) -> KVStore:
        """Get the root key/value store (rate limit counters live here)."""
        if self._kv_store is None:
            raise ServiceNotInitializedError("kv_store")
        return self._kv_store

    @property
    def response_cache(self) -> ResponseCache:
        if self._response_cache is None:
            raise ServiceNotInitializedError("response_cache")
        return self._response_cache

    @property
    def rate_limiter(self) -> RateLimiter:
        if self._rate_limiter is None:
            raise ServiceNotInitializedError("rate_limiter")
        return self._rate_limiter

    @property
    def config_provider(self) -> IConfigProvider:
        if self._config_provider is None:
            raise ServiceNotInitializedError("config_provider")
        return self._config_provider


# Module-level container instance
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """Get the global service container instance.

    Returns:
        The global ServiceContainer instance.

    Raises:
        RuntimeError: If the container hasn't been created yet.
    """
    global _container
    if _container is None:
        raise RuntimeError(
            "Service container not created. Call set_container() first "
            "or use the FastAPI app.state.container."
        )
    return _container


def set_container(container: Optional[ServiceContainer]) -> None:
    """Set the global service container instance.

    Args:
        container: The ServiceContainer instance to use globally.
    """
    global _container
    _container = container


def create_container() -> ServiceContainer:
    """Create a new service container instance.

    This is useful for creating isolated containers in tests.

    Returns:
        A new ServiceContainer instance.
    """
    return ServiceContainer()
