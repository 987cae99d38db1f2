"""Redis key/value backend implementation."""

import asyncio
from datetime import timedelta
from typing import Callable, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from cache_service.core.config import Settings, settings as default_settings
from cache_service.core.errors import BackendUnreachableError
from cache_service.core.logging import get_logger
from cache_service.core.runtime import BuildSafetyGuard
from cache_service.services.kv_store.backends.base import IKeyValueBackend, BackendStats

logger = get_logger(__name__)

_REDIS_ERRORS = (RedisError, OSError, asyncio.TimeoutError)

ClientFactory = Callable[[str], "redis.Redis"]


class RedisBackend(IKeyValueBackend):
    """Redis-based backend.

    The backend tracks its own availability: a failed connection attempt or a
    failed operation marks it unavailable until ``connect()`` succeeds again.
    Operations never swallow failures; they raise ``BackendUnreachableError``
    so the owning store can fall back to local storage.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        settings: Optional[Settings] = None,
        guard: Optional[BuildSafetyGuard] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        """Initialize Redis backend.

        Args:
            redis_url: Redis connection URL. If not provided, uses settings.redis_url.
            settings: Settings used for timeouts and the build guard.
            guard: Build/serving classifier consulted before connecting.
            client_factory: Builds a client from a URL (tests inject fakes here).
        """
        self._settings = settings or default_settings
        self._redis_url = redis_url or self._settings.redis_url
        self._guard = guard or BuildSafetyGuard(self._settings)
        self._client_factory = client_factory or self._default_client_factory
        self._client: Optional[redis.Redis] = None
        self._available = False
        self._stats = BackendStats()

        # First classification happens when the backend is created
        self._build_context = self._guard.is_build_context()
        if self._build_context:
            logger.debug("Build context detected, Redis connections disabled")

    @property
    def available(self) -> bool:
        """Check if Redis is connected and has not failed since."""
        return self._available and self._client is not None

    @property
    def configured(self) -> bool:
        return bool(self._redis_url)

    @property
    def stats(self) -> BackendStats:
        return self._stats

    @property
    def client(self) -> Optional[redis.Redis]:
        """Get the Redis client (for advanced operations)."""
        return self._client

    def _default_client_factory(self, url: str) -> redis.Redis:
        return redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=self._settings.redis_connect_timeout,
            socket_timeout=self._settings.redis_socket_timeout,
        )

    async def connect(self) -> bool:
        """Connect to Redis. Never raises.

        Returns:
            True if the backend is available afterwards.
        """
        if not self._redis_url:
            logger.info("Redis URL not configured, using in-memory store")
            self._available = False
            return False

        # Re-check right before any network activity
        self._build_context = self._guard.is_build_context()
        if self._build_context:
            self._available = False
            await self._discard_client()
            return False

        await self._discard_client()

        try:
            self._client = self._client_factory(self._redis_url)
            await self._client.ping()
            self._available = True
            logger.info("Connected to Redis cache")
        except Exception as e:
            logger.warning(f"Redis connection failed, using in-memory store: {e}")
            self._stats.record_error()
            self._available = False
            await self._discard_client()

        return self._available

    async def close(self) -> None:
        """Disconnect from Redis."""
        if self._client is not None:
            await self._discard_client()
            logger.info("Disconnected from Redis cache")
        self._available = False

    async def _discard_client(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.aclose()
        except Exception as e:
            logger.debug(f"Ignoring error while closing Redis client: {e}")

    def _require_client(self, operation: str) -> redis.Redis:
        if not self.available:
            raise BackendUnreachableError("Redis is not connected", operation=operation)
        return self._client

    def _failure(self, operation: str, error: Exception, client: redis.Redis) -> BackendUnreachableError:
        # A failure on a client replaced by a later connect() says nothing about the new one
        if client is self._client:
            self._available = False
        self._stats.record_error()
        return BackendUnreachableError(f"Redis {operation} failed: {error}", operation=operation)

    async def get(self, key: str) -> Optional[str]:
        """Get a value from Redis."""
        client = self._require_client("GET")
        try:
            value = await client.get(key)
        except _REDIS_ERRORS as e:
            raise self._failure("GET", e, client) from e

        if value is None:
            self._stats.record_miss()
        else:
            self._stats.record_hit()
        return value

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """Set a value in Redis, with a native expiry when ttl is given."""
        client = self._require_client("SET")
        try:
            if ttl:
                await client.setex(key, timedelta(seconds=ttl), value)
            else:
                await client.set(key, value)
        except _REDIS_ERRORS as e:
            raise self._failure("SET", e, client) from e

    async def delete(self, key: str) -> bool:
        """Delete a key from Redis."""
        client = self._require_client("DEL")
        try:
            return await client.delete(key) > 0
        except _REDIS_ERRORS as e:
            raise self._failure("DEL", e, client) from e

    async def delete_pattern(self, pattern: str) -> int:
        """Scan for keys matching pattern server-side and delete them in one pipeline."""
        client = self._require_client("SCAN")
        try:
            keys = [key async for key in client.scan_iter(match=pattern, count=500)]
            if not keys:
                return 0

            async with client.pipeline(transaction=False) as pipe:
                for key in keys:
                    pipe.delete(key)
                results = await pipe.execute()
        except _REDIS_ERRORS as e:
            raise self._failure("SCAN/DEL", e, client) from e

        deleted = sum(int(result) for result in results)
        logger.debug(f"Deleted {deleted} Redis keys matching {pattern}")
        return deleted

    async def incr(self, key: str) -> int:
        client = self._require_client("INCR")
        try:
            return int(await client.incr(key))
        except _REDIS_ERRORS as e:
            raise self._failure("INCR", e, client) from e

    async def expire(self, key: str, seconds: int) -> bool:
        client = self._require_client("EXPIRE")
        try:
            return bool(await client.expire(key, seconds))
        except _REDIS_ERRORS as e:
            raise self._failure("EXPIRE", e, client) from e
