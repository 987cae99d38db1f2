"""Key/value store with remote (Redis) and local (in-memory) backends.

Usage:
    from cache_service.services.kv_store import KVStore, RedisBackend

    store = KVStore(RedisBackend())
    await store.initialize()

    await store.set("key", "value", ttl=60)
    count = await store.incr("counter")
"""

from cache_service.services.kv_store.backends import (
    BackendStats,
    MemoryBackend,
    RedisBackend,
)
from cache_service.services.kv_store.store import KVStore

__all__ = [
    "KVStore",
    "RedisBackend",
    "MemoryBackend",
    "BackendStats",
]
