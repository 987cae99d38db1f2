"""Tenant response cache.

Usage:
    from cache_service.services.response_cache import ResponseCache, CacheConfig

    cache = ResponseCache(store)
    config = CacheConfig(strategy="semantic", ttl_seconds=600)

    await cache.set("bot1", "Hello, World!", {"answer": "Hi"}, config)
    entry = await cache.get("bot1", "hello world", config)
"""

from cache_service.services.response_cache.cache import ResponseCache
from cache_service.services.response_cache.key_generator import ResponseKeyGenerator
from cache_service.services.response_cache.models import CacheConfig, CacheEntry, CacheStrategy

__all__ = [
    "ResponseCache",
    "ResponseKeyGenerator",
    "CacheConfig",
    "CacheEntry",
    "CacheStrategy",
]
