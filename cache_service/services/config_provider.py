"""In-memory tenant configuration provider."""

from typing import Any, Dict, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from cache_service.core.config import Settings
from cache_service.core.errors import ConfigurationError
from cache_service.services.rate_limiter.models import RateLimitConfig
from cache_service.services.response_cache.models import CacheConfig, CacheStrategy


class StaticConfigProvider:
    """Serves tenant configuration from memory.

    Stands in for the relational configuration source during development and
    in tests. Rows may be given as models or as raw mappings (camelCase or
    snake_case), which are validated on registration.
    """

    def __init__(
        self,
        cache_configs: Optional[Mapping[str, Any]] = None,
        rate_limit_configs: Optional[Mapping[str, Any]] = None,
        default_cache: Optional[CacheConfig] = None,
        default_rate_limit: Optional[RateLimitConfig] = None,
    ):
        """Initialize the provider.

        Args:
            cache_configs: Tenant id to cache config (model or row).
            rate_limit_configs: Tenant id to rate limit config (model or row).
            default_cache: Returned for tenants without a cache config.
            default_rate_limit: Returned for tenants without a rate limit config.
        """
        self._cache: Dict[str, CacheConfig] = {}
        self._rate_limit: Dict[str, RateLimitConfig] = {}
        self._default_cache = default_cache
        self._default_rate_limit = default_rate_limit

        for tenant_id, row in (cache_configs or {}).items():
            self.put_cache_config(tenant_id, row)
        for tenant_id, row in (rate_limit_configs or {}).items():
            self.put_rate_limit_config(tenant_id, row)

    @classmethod
    def from_settings(cls, settings: Settings) -> "StaticConfigProvider":
        """Provider whose defaults come from the service settings."""
        return cls(
            default_cache=CacheConfig(
                ttl_seconds=settings.default_cache_ttl,
                max_size=settings.default_cache_max_size,
                strategy=CacheStrategy.EXACT,
            ),
            default_rate_limit=RateLimitConfig(
                max_per_minute=settings.default_rate_limit_per_minute,
                max_per_hour=settings.default_rate_limit_per_hour,
                max_per_day=settings.default_rate_limit_per_day,
                block_duration_seconds=settings.default_block_duration,
            ),
        )

    def put_cache_config(self, tenant_id: str, config: Any) -> CacheConfig:
        model = _validate(CacheConfig, config, tenant_id)
        self._cache[tenant_id] = model
        return model

    def put_rate_limit_config(self, tenant_id: str, config: Any) -> RateLimitConfig:
        model = _validate(RateLimitConfig, config, tenant_id)
        self._rate_limit[tenant_id] = model
        return model

    async def get_cache_config(self, tenant_id: str) -> Optional[CacheConfig]:
        return self._cache.get(tenant_id, self._default_cache)

    async def get_rate_limit_config(self, tenant_id: str) -> Optional[RateLimitConfig]:
        return self._rate_limit.get(tenant_id, self._default_rate_limit)


ModelT = TypeVar("ModelT", bound=BaseModel)


def _validate(model_cls: Type[ModelT], config: Any, tenant_id: str) -> ModelT:
    if isinstance(config, model_cls):
        return config
    try:
        return model_cls.model_validate(config)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise ConfigurationError(
            f"Invalid {model_cls.__name__} for tenant {tenant_id}: {first['msg']}",
            field=field,
        ) from e
