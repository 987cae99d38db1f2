"""Tenant response cache on top of the fallback key/value store."""

import time
from typing import Any, Callable, Optional, Sequence

from cache_service.core.errors import CacheSerializationError
from cache_service.core.logging import get_logger
from cache_service.services.kv_store.backends.base import BackendStats
from cache_service.services.kv_store.store import KVStore
from cache_service.services.response_cache.key_generator import ResponseKeyGenerator
from cache_service.services.response_cache.models import CacheConfig, CacheEntry

logger = get_logger(__name__)

DEFAULT_NAMESPACE = "cache"


class ResponseCache:
    """Caches generated responses per tenant.

    Entries live in a namespaced KVStore: on Redis they are stored under
    ``cache:<key>``, in the local fallback map under the bare ``<key>``. The
    local map is bounded by the tenant's ``max_size``; when it is full the
    entries closest to expiry are evicted before a new one is inserted.

    A missing or disabled configuration turns every call into a pass-through
    (reads miss, writes are skipped).

    Usage:
        cache = ResponseCache(store)

        entry = await cache.get("bot1", "What are your hours?", config)
        if entry is None:
            response = await generate(...)
            await cache.set("bot1", "What are your hours?", response, config)
    """

    def __init__(
        self,
        store: KVStore,
        namespace: str = DEFAULT_NAMESPACE,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the response cache.

        Args:
            store: Backing store. A sibling store with ``namespace`` is
                derived from it unless it already carries that namespace.
            namespace: Storage namespace tag for the remote path.
            clock: Time source returning UNIX time in seconds.
        """
        if store.namespace != namespace:
            store = store.namespaced(namespace)
        self._store = store
        self._clock = clock
        self._stats = BackendStats()
        self.key_generator = ResponseKeyGenerator

    @property
    def store(self) -> KVStore:
        return self._store

    @property
    def stats(self) -> BackendStats:
        return self._stats

    def generate_key(
        self,
        tenant_id: str,
        message: str,
        config: CacheConfig,
        context: Optional[Sequence[str]] = None,
    ) -> str:
        return self.key_generator.generate(tenant_id, message, config, context)

    async def get(
        self,
        tenant_id: str,
        message: str,
        config: Optional[CacheConfig],
        context: Optional[Sequence[str]] = None,
    ) -> Optional[CacheEntry]:
        """Look up a cached response.

        Args:
            tenant_id: Tenant identifier.
            message: The user message.
            config: Tenant cache configuration (None means no caching).
            context: Optional conversation context items.

        Returns:
            The cached entry, or None on a miss, a malformed payload, or when
            caching is off.
        """
        if config is None or not config.enabled:
            return None

        key = self.generate_key(tenant_id, message, config, context)
        raw = await self._store.get(key)
        if raw is None:
            self._stats.record_miss()
            return None

        try:
            entry = CacheEntry.from_json(raw, key=key)
        except CacheSerializationError as e:
            logger.debug(f"Treating malformed cache entry as a miss: {e.message}")
            self._stats.record_error()
            self._stats.record_miss()
            return None

        self._stats.record_hit()
        return entry

    async def set(
        self,
        tenant_id: str,
        message: str,
        response: Any,
        config: Optional[CacheConfig],
        context: Optional[Sequence[str]] = None,
    ) -> None:
        """Cache a response for a tenant message.

        Args:
            tenant_id: Tenant identifier.
            message: The user message.
            response: JSON-serialisable response payload.
            config: Tenant cache configuration (None means no caching).
            context: Optional conversation context items.
        """
        if config is None or not config.enabled:
            return

        key = self.generate_key(tenant_id, message, config, context)
        entry = CacheEntry(response=response, timestamp=int(self._clock() * 1000))

        await self._store.set(
            key,
            entry.to_json(),
            ttl=config.ttl_seconds,
            local_capacity=config.max_size,
        )

    async def clear_cache(self, tenant_id: str, config: CacheConfig) -> int:
        """Delete every cached response of a tenant.

        Returns:
            Number of entries removed.
        """
        pattern = f"{self.key_generator.tenant_prefix(tenant_id, config)}*"
        deleted = await self._store.delete_pattern(pattern)
        logger.info(f"Cleared {deleted} cached responses for tenant {tenant_id}")
        return deleted
