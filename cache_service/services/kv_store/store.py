"""Key/value store with automatic remote/local fallback.

Every operation prefers the Redis backend while it is available. When a
remote call fails the store logs a warning, flips to the local in-memory
backend for the same call, and keeps using the local backend for every later
call until ``initialize()`` reconnects. There is no background reconnection.
"""

from typing import Optional, Union

from cache_service.core.errors import BackendUnreachableError
from cache_service.core.logging import get_logger
from cache_service.services.kv_store.backends.base import BackendStats
from cache_service.services.kv_store.backends.memory_backend import MemoryBackend
from cache_service.services.kv_store.backends.redis_backend import RedisBackend

logger = get_logger(__name__)


class KVStore:
    """Dual-backend key/value store.

    A store may carry a namespace. The namespace tag is applied to keys and
    patterns on the remote path only; the local backend of a namespaced store
    is a map of its own and keeps bare keys. Sibling stores created with
    ``namespaced()`` share the remote backend, so a remote failure observed by
    one of them is observed by all.

    Usage:
        store = KVStore(RedisBackend())
        await store.initialize()

        await store.set("key", "value", ttl=60)
        value = await store.get("key")

        responses = store.namespaced("cache")
    """

    def __init__(
        self,
        remote: Optional[RedisBackend] = None,
        local: Optional[MemoryBackend] = None,
        namespace: Optional[str] = None,
    ):
        """Initialize the store.

        Args:
            remote: Redis backend; None runs purely on the local backend.
            local: Local fallback backend (a fresh one when omitted).
            namespace: Tag prefixed to keys on the remote path.
        """
        self._remote = remote
        self._local = local or MemoryBackend()
        self._namespace = namespace
        self._stats = BackendStats()

    @property
    def local(self) -> MemoryBackend:
        return self._local

    @property
    def remote(self) -> Optional[RedisBackend]:
        return self._remote

    @property
    def namespace(self) -> Optional[str]:
        return self._namespace

    @property
    def stats(self) -> BackendStats:
        return self._stats

    def namespaced(self, namespace: str, local: Optional[MemoryBackend] = None) -> "KVStore":
        """Create a sibling store sharing this store's remote backend.

        Args:
            namespace: Tag applied to keys on the remote path.
            local: Local backend for the sibling (a fresh map when omitted).
        """
        if local is None:
            local = MemoryBackend(max_entries=self._local.max_entries)
        return KVStore(self._remote, local, namespace)

    async def initialize(self) -> bool:
        """Connect (or reconnect) the remote backend. Never raises.

        Returns:
            True if the remote backend is available afterwards.
        """
        if self._remote is None:
            logger.info("No remote backend configured, using in-memory store")
            return False
        return await self._remote.connect()

    async def close(self) -> None:
        if self._remote is not None:
            await self._remote.close()

    def is_available(self) -> bool:
        """Last known remote availability. Never triggers a connection."""
        return self._remote is not None and self._remote.available

    def _remote_key(self, key: str) -> str:
        if self._namespace:
            return f"{self._namespace}:{key}"
        return key

    def _fall_back(self, operation: str, error: BackendUnreachableError) -> None:
        self._stats.record_fallback()
        logger.warning(
            f"Redis {operation} failed, falling back to in-memory store: {error.message}",
            extra={"operation": operation, "namespace": self._namespace},
        )

    async def get(self, key: str) -> Optional[str]:
        """Get a value, or None if absent or expired."""
        if self.is_available():
            try:
                value = await self._remote.get(self._remote_key(key))
                self._record_read(value)
                return value
            except BackendUnreachableError as e:
                self._fall_back("get", e)

        value = await self._local.get(key)
        self._record_read(value)
        return value

    def _record_read(self, value: Optional[str]) -> None:
        if value is None:
            self._stats.record_miss()
        else:
            self._stats.record_hit()

    async def set(
        self,
        key: str,
        value: Union[str, int],
        ttl: Optional[int] = None,
        local_capacity: Optional[int] = None,
    ) -> None:
        """Store a value with an optional TTL in seconds.

        Args:
            key: The key.
            value: The value.
            ttl: Time-to-live in seconds.
            local_capacity: When the write lands on the local backend, evict
                soonest-expiring entries first so the local map stays within
                this many entries.
        """
        if self.is_available():
            try:
                await self._remote.set(self._remote_key(key), str(value), ttl)
                return
            except BackendUnreachableError as e:
                self._fall_back("set", e)

        if local_capacity is not None:
            self._local.evict_soonest_expiring(local_capacity, key)
        await self._local.set(key, value, ttl)

    async def delete(self, key: str) -> bool:
        if self.is_available():
            try:
                return await self._remote.delete(self._remote_key(key))
            except BackendUnreachableError as e:
                self._fall_back("delete", e)

        return await self._local.delete(key)

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys matching a glob pattern.

        The remote backend supports full Redis glob syntax. The local backend
        only understands a literal key or a trailing ``*`` prefix; any other
        pattern deletes nothing locally (a warning is logged).

        Returns:
            Number of keys deleted.
        """
        if self.is_available():
            try:
                return await self._remote.delete_pattern(self._remote_key(pattern))
            except BackendUnreachableError as e:
                self._fall_back("delete_pattern", e)

        return await self._local.delete_pattern(pattern)

    async def incr(self, key: str) -> int:
        """Atomically increment a counter (remote) or best-effort (local)."""
        if self.is_available():
            try:
                return await self._remote.incr(self._remote_key(key))
            except BackendUnreachableError as e:
                self._fall_back("incr", e)

        return await self._local.incr(key)

    async def expire(self, key: str, seconds: int) -> bool:
        if self.is_available():
            try:
                return await self._remote.expire(self._remote_key(key), seconds)
            except BackendUnreachableError as e:
                self._fall_back("expire", e)

        return await self._local.expire(key, seconds)
