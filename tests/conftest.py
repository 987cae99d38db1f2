"""Shared test fixtures for cache service tests."""

import fnmatch
import time
from datetime import timedelta
from typing import Dict, List, Optional

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from cache_service.core.config import Settings
from cache_service.core.runtime import BuildSafetyGuard
from cache_service.services.kv_store import KVStore, MemoryBackend, RedisBackend


# ============================================================================
# Fakes
# ============================================================================

class FakeClock:
    """Controllable time source returning UNIX seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePipeline:
    """Buffers DEL commands like a non-transactional redis pipeline."""

    def __init__(self, client: "FakeRedis"):
        self._client = client
        self._keys: List[str] = []

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc) -> None:
        self._keys = []

    def delete(self, key: str) -> "FakePipeline":
        self._keys.append(key)
        return self

    async def execute(self) -> List[int]:
        self._client.check()
        return [await self._client.delete(key) for key in self._keys]


class FakeRedis:
    """Dict-backed stand-in for ``redis.asyncio.Redis`` with decode_responses=True.

    Set ``fail = True`` to make every command raise a connection error.
    """

    def __init__(self, clock=time.time):
        self.data: Dict[str, str] = {}
        self.expiry: Dict[str, float] = {}
        self.fail = False
        self.closed = False
        self.commands: List[str] = []
        self._clock = clock

    def check(self) -> None:
        if self.fail:
            raise RedisConnectionError("Connection refused")

    def _purge(self, key: str) -> None:
        expires_at = self.expiry.get(key)
        if expires_at is not None and self._clock() >= expires_at:
            self.data.pop(key, None)
            self.expiry.pop(key, None)

    def ttl_of(self, key: str) -> Optional[float]:
        expires_at = self.expiry.get(key)
        return None if expires_at is None else expires_at - self._clock()

    async def ping(self) -> bool:
        self.commands.append("PING")
        self.check()
        return True

    async def get(self, key: str) -> Optional[str]:
        self.commands.append("GET")
        self.check()
        self._purge(key)
        return self.data.get(key)

    async def set(self, key: str, value: str) -> bool:
        self.commands.append("SET")
        self.check()
        self.data[key] = str(value)
        self.expiry.pop(key, None)
        return True

    async def setex(self, key: str, ttl, value: str) -> bool:
        self.commands.append("SETEX")
        self.check()
        seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else ttl
        self.data[key] = str(value)
        self.expiry[key] = self._clock() + seconds
        return True

    async def delete(self, *keys: str) -> int:
        self.commands.append("DEL")
        self.check()
        removed = 0
        for key in keys:
            self._purge(key)
            if self.data.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed

    async def incr(self, key: str) -> int:
        self.commands.append("INCR")
        self.check()
        self._purge(key)
        value = int(self.data.get(key, "0")) + 1
        self.data[key] = str(value)
        return value

    async def expire(self, key: str, seconds: int) -> bool:
        self.commands.append("EXPIRE")
        self.check()
        self._purge(key)
        if key not in self.data:
            return False
        self.expiry[key] = self._clock() + seconds
        return True

    async def scan_iter(self, match: Optional[str] = None, count: Optional[int] = None):
        self.commands.append("SCAN")
        self.check()
        for key in list(self.data):
            self._purge(key)
            if key in self.data and (match is None or fnmatch.fnmatchcase(key, match)):
                yield key

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    async def aclose(self) -> None:
        self.closed = True


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def serving_settings():
    """Settings that declare the process a live server."""
    return Settings(server_mode=True, redis_url="redis://cache.test:6379/0")


@pytest.fixture
def fake_redis(clock):
    return FakeRedis(clock=clock)


@pytest.fixture
def redis_backend(serving_settings, fake_redis):
    """Redis backend wired to the fake client (not yet connected)."""
    return RedisBackend(
        settings=serving_settings,
        guard=BuildSafetyGuard(serving_settings),
        client_factory=lambda url: fake_redis,
    )


@pytest.fixture
def local_backend(clock):
    return MemoryBackend(clock=clock)


@pytest.fixture
async def connected_store(redis_backend, local_backend):
    """KVStore whose remote backend is connected."""
    store = KVStore(redis_backend, local_backend)
    assert await store.initialize() is True
    yield store
    await store.close()


@pytest.fixture
def local_store(local_backend):
    """KVStore with no remote backend at all."""
    return KVStore(None, local_backend)
