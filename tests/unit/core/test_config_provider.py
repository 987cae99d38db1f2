"""Tests for the static tenant configuration provider."""

import pytest

from cache_service.core.config import Settings
from cache_service.core.errors import ConfigurationError
from cache_service.services.config_provider import StaticConfigProvider
from cache_service.services.rate_limiter import RateLimitConfig
from cache_service.services.response_cache import CacheConfig, CacheStrategy


class TestStaticConfigProvider:
    """Tests for lookups and row validation."""

    @pytest.mark.asyncio
    async def test_camel_case_rows(self):
        provider = StaticConfigProvider(
            cache_configs={"bot1": {"enabled": True, "ttlSeconds": 120, "maxSize": 50, "strategy": "semantic"}},
            rate_limit_configs={"bot1": {"maxPerMinute": 10, "blockDurationSeconds": 60}},
        )

        cache = await provider.get_cache_config("bot1")
        limits = await provider.get_rate_limit_config("bot1")

        assert cache == CacheConfig(ttl_seconds=120, max_size=50, strategy=CacheStrategy.SEMANTIC)
        assert limits.max_per_minute == 10
        assert limits.max_per_hour is None
        assert limits.block_duration_seconds == 60

    @pytest.mark.asyncio
    async def test_unknown_tenant_without_defaults(self):
        provider = StaticConfigProvider()

        assert await provider.get_cache_config("bot1") is None
        assert await provider.get_rate_limit_config("bot1") is None

    @pytest.mark.asyncio
    async def test_defaults_from_settings(self):
        settings = Settings(default_cache_ttl=900, default_rate_limit_per_minute=30)
        provider = StaticConfigProvider.from_settings(settings)

        assert (await provider.get_cache_config("any")).ttl_seconds == 900
        assert (await provider.get_rate_limit_config("any")).max_per_minute == 30

    def test_invalid_row_raises_configuration_error(self):
        provider = StaticConfigProvider()

        with pytest.raises(ConfigurationError) as exc_info:
            provider.put_cache_config("bot1", {"ttlSeconds": 0})

        assert exc_info.value.details["field"] == "ttlSeconds"

    def test_models_are_stored_as_is(self):
        provider = StaticConfigProvider()
        config = RateLimitConfig(max_per_day=5)

        assert provider.put_rate_limit_config("bot1", config) is config
