"""Key/value backend implementations.

Provides the two storage backends behind KVStore:
- RedisBackend: Remote Redis-based storage
- MemoryBackend: In-process fallback storage
"""

from cache_service.services.kv_store.backends.base import IKeyValueBackend, BackendStats
from cache_service.services.kv_store.backends.redis_backend import RedisBackend
from cache_service.services.kv_store.backends.memory_backend import MemoryBackend, MemoryEntry

__all__ = [
    "IKeyValueBackend",
    "BackendStats",
    "RedisBackend",
    "MemoryBackend",
    "MemoryEntry",
]
