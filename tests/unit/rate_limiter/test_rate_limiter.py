"""Tests for the multi-window rate limiter."""

import json

import pytest

from cache_service.services.kv_store import KVStore, MemoryBackend
from cache_service.services.rate_limiter import RateLimitConfig, RateLimiter


@pytest.fixture
def limiter(clock):
    return RateLimiter(KVStore(None, MemoryBackend(clock=clock)), clock=clock)


@pytest.fixture
def remote_limiter(connected_store, clock):
    return RateLimiter(connected_store, clock=clock)


def minute_start(clock) -> float:
    """Move the clock to the start of the next minute window."""
    seconds = clock.now
    clock.now = (int(seconds) // 60 + 1) * 60.0
    return clock.now


class TestMinuteBlocking:
    """Tests for the per-minute threshold and blocks."""

    @pytest.mark.asyncio
    async def test_threshold_then_block(self, limiter, clock):
        config = RateLimitConfig(max_per_minute=3, block_duration_seconds=60)
        now_ms = int(clock.now * 1000)

        remaining = [(await limiter.check("bot1:u1", config)).remaining for _ in range(3)]
        assert remaining == [2, 1, 0]

        denied = await limiter.check("bot1:u1", config)
        assert denied.allowed is False
        assert denied.remaining == 0
        assert denied.blocked_until_ms == now_ms + 60_000
        assert denied.retry_after_seconds == 60

        again = await limiter.check("bot1:u1", config)
        assert again.allowed is False
        assert again.blocked_until_ms == denied.blocked_until_ms
        assert await limiter.get_window_counts("bot1:u1", config) == {"minute": 4}

    @pytest.mark.asyncio
    async def test_block_leaves_every_window_untouched(self, limiter):
        config = RateLimitConfig(max_per_minute=2, max_per_hour=100, max_per_day=1000)
        for _ in range(3):
            await limiter.check("bot1:u1", config)
        before = await limiter.get_window_counts("bot1:u1", config)

        result = await limiter.check("bot1:u1", config)

        assert result.allowed is False
        assert before == {"minute": 3, "hour": 2, "day": 2}
        assert await limiter.get_window_counts("bot1:u1", config) == before

    @pytest.mark.asyncio
    async def test_blocked_check_sends_no_increments(self, remote_limiter, fake_redis):
        config = RateLimitConfig(max_per_minute=1, max_per_hour=100, max_per_day=1000)
        await remote_limiter.check("bot1:u1", config)
        await remote_limiter.check("bot1:u1", config)
        before = await remote_limiter.get_window_counts("bot1:u1", config)
        fake_redis.commands.clear()

        result = await remote_limiter.check("bot1:u1", config)

        assert result.allowed is False
        assert "INCR" not in fake_redis.commands
        assert "EXPIRE" not in fake_redis.commands
        assert await remote_limiter.get_window_counts("bot1:u1", config) == before

    @pytest.mark.asyncio
    async def test_block_record_format(self, remote_limiter, fake_redis, clock):
        config = RateLimitConfig(max_per_minute=1, block_duration_seconds=300)
        await remote_limiter.check("bot1:u1", config)
        await remote_limiter.check("bot1:u1", config)

        record = json.loads(fake_redis.data["ratelimit:bot1:u1:blocked"])
        assert record == {"blockedUntil": int(clock.now * 1000) + 300_000}
        assert fake_redis.ttl_of("ratelimit:bot1:u1:blocked") == pytest.approx(300)

    @pytest.mark.asyncio
    async def test_block_expires(self, limiter, clock):
        config = RateLimitConfig(max_per_minute=1, block_duration_seconds=120)
        await limiter.check("bot1:u1", config)
        await limiter.check("bot1:u1", config)

        clock.advance(121)

        result = await limiter.check("bot1:u1", config)
        assert result.allowed is True
        assert await limiter.get_block("bot1:u1") is None

    @pytest.mark.asyncio
    async def test_identities_are_independent(self, limiter):
        config = RateLimitConfig(max_per_minute=1)
        await limiter.check("bot1:u1", config)
        await limiter.check("bot1:u1", config)

        assert (await limiter.check("bot1:u2", config)).allowed is True

    @pytest.mark.asyncio
    async def test_malformed_block_record_ignored(self, limiter):
        config = RateLimitConfig(max_per_minute=5)
        await limiter.store.set(limiter.block_key("bot1:u1"), "garbage")

        assert (await limiter.check("bot1:u1", config)).allowed is True


class TestLongerWindows:
    """Tests for hour/day thresholds, which deny without blocking."""

    @pytest.mark.asyncio
    async def test_hour_breach_denies_without_block(self, limiter, clock):
        config = RateLimitConfig(max_per_hour=2)
        await limiter.check("bot1:u1", config)
        await limiter.check("bot1:u1", config)

        denied = await limiter.check("bot1:u1", config)

        assert denied.allowed is False
        assert denied.blocked_until_ms is None
        assert denied.reset_at_ms % 3_600_000 == 0
        assert await limiter.get_block("bot1:u1") is None

    @pytest.mark.asyncio
    async def test_day_breach_denies(self, limiter):
        config = RateLimitConfig(max_per_day=1)
        await limiter.check("bot1:u1", config)

        assert (await limiter.check("bot1:u1", config)).allowed is False

    @pytest.mark.asyncio
    async def test_remaining_is_most_constrained_window(self, limiter):
        config = RateLimitConfig(max_per_minute=10, max_per_hour=3, max_per_day=100)

        result = await limiter.check("bot1:u1", config)

        assert result.remaining == 2
        assert result.reset_at_ms % 3_600_000 == 0

    @pytest.mark.asyncio
    async def test_minute_breach_stops_before_longer_windows(self, limiter):
        config = RateLimitConfig(max_per_minute=1, max_per_hour=100)
        await limiter.check("bot1:u1", config)
        await limiter.check("bot1:u1", config)

        counts = await limiter.get_window_counts("bot1:u1", config)
        assert counts == {"minute": 2, "hour": 1}


class TestWindows:
    """Tests for window rollover."""

    @pytest.mark.asyncio
    async def test_new_minute_resets_counter(self, limiter, clock):
        config = RateLimitConfig(max_per_minute=2)
        minute_start(clock)
        await limiter.check("bot1:u1", config)
        await limiter.check("bot1:u1", config)

        clock.advance(60)

        result = await limiter.check("bot1:u1", config)
        assert result.allowed is True
        assert result.remaining == 1

    @pytest.mark.asyncio
    async def test_boundary_burst_is_admitted(self, limiter, clock):
        """Fixed windows allow up to twice the limit across a window edge."""
        config = RateLimitConfig(max_per_minute=3)
        minute_start(clock)
        clock.advance(59)

        first = [await limiter.check("bot1:u1", config) for _ in range(3)]
        clock.advance(1)
        second = [await limiter.check("bot1:u1", config) for _ in range(3)]

        assert all(result.allowed for result in first + second)

    @pytest.mark.asyncio
    async def test_window_counter_expires_with_window(self, remote_limiter, fake_redis, clock):
        config = RateLimitConfig(max_per_minute=5)
        await remote_limiter.check("bot1:u1", config)
        await remote_limiter.check("bot1:u1", config)

        keys = [key for key in fake_redis.data if key.endswith(tuple("0123456789"))]
        assert len(keys) == 1
        assert keys[0].startswith("ratelimit:bot1:u1:minute:")
        assert fake_redis.ttl_of(keys[0]) == pytest.approx(60)


class TestDisabled:
    """Tests for disabled or missing configuration."""

    @pytest.mark.asyncio
    async def test_disabled(self, limiter):
        config = RateLimitConfig(enabled=False, max_per_minute=1)
        for _ in range(5):
            result = await limiter.check("bot1:u1", config)
            assert result.allowed is True
            assert result.remaining is None

    @pytest.mark.asyncio
    async def test_no_config(self, limiter):
        result = await limiter.check("bot1:u1", None)
        assert result.allowed is True
        assert result.remaining is None

    @pytest.mark.asyncio
    async def test_no_thresholds(self, limiter):
        result = await limiter.check("bot1:u1", RateLimitConfig())
        assert result.allowed is True
        assert result.remaining is None


class TestFallback:
    """Tests for counting through a remote failure."""

    @pytest.mark.asyncio
    async def test_counts_continue_locally(self, remote_limiter, fake_redis):
        config = RateLimitConfig(max_per_minute=5)
        await remote_limiter.check("bot1:u1", config)
        fake_redis.fail = True

        result = await remote_limiter.check("bot1:u1", config)

        assert result.allowed is True
        assert result.remaining == 4
        assert remote_limiter.store.is_available() is False
