"""Fixed-window rate limiter with blocking.

Each identity (e.g. ``tenant:user``) gets one counter per configured window,
keyed by the window index ``now // window_size`` and expiring with the
window. Breaching the per-minute threshold also writes a block record that
denies every request until it expires; breaching the hour or day threshold
only denies the request at hand.

Fixed windows admit bursts of up to twice the limit across a window edge
(the end of one window plus the start of the next).
"""

import json
import math
import time
from typing import Callable, Dict, List, Optional, Tuple

from cache_service.core.logging import get_logger
from cache_service.services.kv_store.store import KVStore
from cache_service.services.rate_limiter.models import RateLimitConfig, RateLimitResult, Window, WINDOWS

logger = get_logger(__name__)


class RateLimiter:
    """Per-identity minute/hour/day quotas on top of the fallback store.

    The limiter never retries store operations; if Redis fails mid-check the
    store itself continues on local counters.
    """

    def __init__(
        self,
        store: KVStore,
        key_prefix: str = "ratelimit",
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the rate limiter.

        Args:
            store: Backing key/value store.
            key_prefix: Leading segment of every rate limit key.
            clock: Time source returning UNIX time in seconds.
        """
        self._store = store
        self._key_prefix = key_prefix
        self._clock = clock

    @property
    def store(self) -> KVStore:
        return self._store

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def block_key(self, identity: str) -> str:
        return f"{self._key_prefix}:{identity}:blocked"

    def window_key(self, identity: str, window: Window, window_index: int) -> str:
        return f"{self._key_prefix}:{identity}:{window.granularity}:{window_index}"

    @staticmethod
    def _active_windows(config: RateLimitConfig) -> List[Tuple[Window, int]]:
        active = []
        for window in WINDOWS:
            threshold = getattr(config, window.config_field)
            if threshold is not None:
                active.append((window, threshold))
        return active

    async def _read_block(self, identity: str, now_ms: int) -> Optional[int]:
        raw = await self._store.get(self.block_key(identity))
        if raw is None:
            return None

        try:
            blocked_until = int(json.loads(raw)["blockedUntil"])
        except (json.JSONDecodeError, KeyError, TypeError, ValueError):
            logger.debug(f"Ignoring malformed block record for {identity}")
            return None

        if blocked_until <= now_ms:
            return None
        return blocked_until

    async def get_block(self, identity: str) -> Optional[int]:
        """Return the end of the active block (epoch ms), or None."""
        return await self._read_block(identity, self._now_ms())

    async def check(self, identity: str, config: Optional[RateLimitConfig]) -> RateLimitResult:
        """Count a request and decide whether it is allowed.

        Args:
            identity: Rate limited subject, e.g. "tenant:user".
            config: Quotas for the tenant (None means unlimited).

        Returns:
            RateLimitResult with the decision and window metadata.
        """
        now_ms = self._now_ms()

        if config is None or not config.enabled:
            return RateLimitResult(allowed=True, remaining=None, reset_at_ms=now_ms)

        # An active block short-circuits before any counter is touched
        blocked_until = await self._read_block(identity, now_ms)
        if blocked_until is not None:
            return self._denied(now_ms, blocked_until, blocked_until)

        remaining: Optional[int] = None
        reset_at_ms = now_ms

        for window, threshold in self._active_windows(config):
            window_index = now_ms // window.size_ms
            key = self.window_key(identity, window, window_index)

            count = await self._store.incr(key)
            if count == 1:
                await self._store.expire(key, window.size_seconds)

            window_reset_ms = (window_index + 1) * window.size_ms

            if count > threshold:
                if window.blocks_on_breach:
                    blocked_until = now_ms + config.block_duration_seconds * 1000
                    await self._store.set(
                        self.block_key(identity),
                        json.dumps({"blockedUntil": blocked_until}),
                        ttl=config.block_duration_seconds,
                    )
                    logger.warning(
                        f"Rate limit exceeded for {identity} ({window.granularity}), "
                        f"blocked for {config.block_duration_seconds}s",
                        extra={"identity": identity, "window": window.granularity, "count": count},
                    )
                    return self._denied(now_ms, blocked_until, blocked_until)

                logger.info(
                    f"Rate limit exceeded for {identity} ({window.granularity})",
                    extra={"identity": identity, "window": window.granularity, "count": count},
                )
                return self._denied(now_ms, window_reset_ms, None)

            left = threshold - count
            if remaining is None or left < remaining:
                remaining = left
                reset_at_ms = window_reset_ms

        return RateLimitResult(allowed=True, remaining=remaining, reset_at_ms=reset_at_ms)

    @staticmethod
    def _denied(now_ms: int, reset_at_ms: int, blocked_until_ms: Optional[int]) -> RateLimitResult:
        retry_after = max(0, int(math.ceil((reset_at_ms - now_ms) / 1000)))
        return RateLimitResult(
            allowed=False,
            remaining=0,
            reset_at_ms=reset_at_ms,
            blocked_until_ms=blocked_until_ms,
            retry_after_seconds=retry_after,
        )

    async def get_window_counts(self, identity: str, config: RateLimitConfig) -> Dict[str, int]:
        """Read the current window counters without counting a request.

        Returns:
            Mapping of granularity to count for every configured window.
        """
        now_ms = self._now_ms()
        counts: Dict[str, int] = {}
        for window, _ in self._active_windows(config):
            raw = await self._store.get(self.window_key(identity, window, now_ms // window.size_ms))
            try:
                counts[window.granularity] = int(raw) if raw is not None else 0
            except ValueError:
                counts[window.granularity] = 0
        return counts
