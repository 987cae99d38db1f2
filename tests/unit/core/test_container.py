"""Tests for the ServiceContainer dependency injection system."""

import pytest

from cache_service.core.config import Settings
from cache_service.core.container import (
    ServiceContainer,
    ServiceNotInitializedError,
    create_container,
    get_container,
    set_container,
)
from cache_service.core.interfaces import IConfigProvider
from cache_service.services.config_provider import StaticConfigProvider
from cache_service.services.response_cache import CacheConfig


@pytest.fixture
def container_settings():
    return Settings(server_mode=True, redis_url=None, local_store_cleanup_interval=0)


class TestServiceContainer:
    """Tests for container lifecycle."""

    def test_uninitialized_access_raises(self):
        container = create_container()

        with pytest.raises(ServiceNotInitializedError):
            _ = container.response_cache
        with pytest.raises(ServiceNotInitializedError):
            _ = container.rate_limiter

    @pytest.mark.asyncio
    async def test_initialize_without_redis(self, container_settings):
        container = ServiceContainer()
        await container.initialize(container_settings)

        assert container.is_initialized is True
        assert container.kv_store.is_available() is False
        assert isinstance(container.config_provider, IConfigProvider)
        assert container.response_cache.store.namespace == "cache"

        await container.shutdown()
        assert container.is_initialized is False

    @pytest.mark.asyncio
    async def test_initialize_with_remote(self, container_settings, redis_backend, fake_redis):
        container = ServiceContainer()
        await container.initialize(container_settings, remote=redis_backend)

        assert container.kv_store.is_available() is True
        assert container.response_cache.store.is_available() is True

        await container.shutdown()
        assert fake_redis.closed is True

    @pytest.mark.asyncio
    async def test_initialize_twice_is_noop(self, container_settings):
        container = ServiceContainer()
        await container.initialize(container_settings)
        store = container.kv_store

        await container.initialize(container_settings)

        assert container.kv_store is store
        await container.shutdown()

    @pytest.mark.asyncio
    async def test_reconnect_after_failure(self, container_settings, redis_backend, fake_redis):
        container = ServiceContainer()
        await container.initialize(container_settings, remote=redis_backend)
        fake_redis.fail = True
        await container.kv_store.get("k")
        assert container.kv_store.is_available() is False

        fake_redis.fail = False
        assert await container.reconnect() is True
        await container.shutdown()

    @pytest.mark.asyncio
    async def test_purge_local_stores(self, container_settings):
        container = ServiceContainer()
        await container.initialize(container_settings)
        await container.kv_store.set("counter", "1")
        await container.response_cache.store.set("entry", "{}")

        assert container.purge_local_stores(max_idle=-1) == 2
        await container.shutdown()

    @pytest.mark.asyncio
    async def test_cleanup_task_started_and_cancelled(self):
        settings = Settings(server_mode=True, redis_url=None, local_store_cleanup_interval=60)
        container = ServiceContainer()
        await container.initialize(settings)

        task = container._cleanup_task
        assert task is not None and not task.done()

        await container.shutdown()
        assert task.cancelled()

    @pytest.mark.asyncio
    async def test_custom_config_provider(self, container_settings):
        provider = StaticConfigProvider(cache_configs={"bot1": {"ttlSeconds": 60}})
        container = ServiceContainer()
        await container.initialize(container_settings, config_provider=provider)

        assert await container.config_provider.get_cache_config("bot1") == CacheConfig(ttl_seconds=60)
        assert await container.config_provider.get_cache_config("bot2") is None
        await container.shutdown()


class TestGlobalContainer:
    """Tests for module-level container access."""

    def test_get_without_set_raises(self):
        set_container(None)
        with pytest.raises(RuntimeError):
            get_container()

    def test_set_and_get(self):
        container = create_container()
        set_container(container)
        try:
            assert get_container() is container
        finally:
            set_container(None)
