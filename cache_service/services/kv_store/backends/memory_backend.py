"""In-memory key/value backend used as the local fallback store."""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union

from cache_service.core.errors import UnsupportedPatternError
from cache_service.core.logging import get_logger
from cache_service.services.kv_store.backends.base import IKeyValueBackend, BackendStats

logger = get_logger(__name__)

Value = Union[str, int]

_GLOB_CHARS = ("?", "[")


@dataclass
class MemoryEntry:
    """A stored value with optional expiration."""

    value: Value
    expires_at: Optional[float] = None
    last_accessed: float = 0.0

    def is_expired(self, now: float) -> bool:
        """Check if the entry has expired."""
        if self.expires_at is None:
            return False
        return now > self.expires_at


def parse_prefix_pattern(pattern: str) -> Tuple[str, bool]:
    """Split a delete pattern into a literal and a prefix flag.

    Only two shapes are supported: a literal key, or a literal prefix followed
    by a single trailing ``*``.

    Returns:
        Tuple of (literal, is_prefix).

    Raises:
        UnsupportedPatternError: For wildcards anywhere but the end.
    """
    if any(char in pattern for char in _GLOB_CHARS):
        raise UnsupportedPatternError(pattern)

    stars = pattern.count("*")
    if stars == 0:
        return pattern, False
    if stars == 1 and pattern.endswith("*"):
        return pattern[:-1], True
    raise UnsupportedPatternError(pattern)


class MemoryBackend(IKeyValueBackend):
    """In-memory backend that mimics the subset of Redis the service uses.

    Features:
    - Lazy TTL expiry on read, plus an explicit purge for periodic cleanup
    - Global capacity with least-recently-accessed eviction
    - Soonest-to-expire eviction on demand (used by the response cache)
    - Trailing-wildcard prefix deletes only

    All access to the map goes through one lock. Compound sequences issued by
    callers (read, compare, write) are not atomic.
    """

    def __init__(
        self,
        max_entries: Optional[int] = 10000,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize memory backend.

        Args:
            max_entries: Maximum number of keys (None for unlimited).
            clock: Time source returning UNIX time in seconds.
        """
        self._storage: Dict[str, MemoryEntry] = {}
        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.RLock()
        self._stats = BackendStats()

    @property
    def available(self) -> bool:
        return True

    @property
    def stats(self) -> BackendStats:
        return self._stats

    @property
    def max_entries(self) -> Optional[int]:
        return self._max_entries

    def _live_entry(self, key: str, now: float) -> Optional[MemoryEntry]:
        entry = self._storage.get(key)
        if entry is None:
            return None
        if entry.is_expired(now):
            del self._storage[key]
            self._stats.evictions += 1
            return None
        return entry

    def _make_room_for(self, key: str) -> None:
        if self._max_entries is None or key in self._storage:
            return
        if len(self._storage) < self._max_entries:
            return

        oldest_key = min(self._storage, key=lambda k: self._storage[k].last_accessed)
        del self._storage[oldest_key]
        self._stats.evictions += 1

    async def get(self, key: str) -> Optional[str]:
        now = self._clock()
        with self._lock:
            entry = self._live_entry(key, now)
            if entry is None:
                self._stats.record_miss()
                return None

            entry.last_accessed = now
            self._stats.record_hit()
            return entry.value if isinstance(entry.value, str) else str(entry.value)

    async def set(self, key: str, value: Value, ttl: Optional[int] = None) -> None:
        now = self._clock()
        expires_at = now + ttl if ttl else None
        with self._lock:
            self._make_room_for(key)
            self._storage[key] = MemoryEntry(value=value, expires_at=expires_at, last_accessed=now)

    async def delete(self, key: str) -> bool:
        with self._lock:
            return self._storage.pop(key, None) is not None

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys by literal or trailing-wildcard prefix.

        Other glob shapes are rejected: a warning is logged and nothing is
        deleted.
        """
        try:
            literal, is_prefix = parse_prefix_pattern(pattern)
        except UnsupportedPatternError as e:
            logger.warning(f"Skipping local delete: {e.message}")
            return 0

        with self._lock:
            if not is_prefix:
                return 1 if self._storage.pop(literal, None) is not None else 0

            doomed = [key for key in self._storage if key.startswith(literal)]
            for key in doomed:
                del self._storage[key]
            return len(doomed)

    async def incr(self, key: str) -> int:
        """Increment a counter; missing, expired or non-numeric values count as 0."""
        now = self._clock()
        with self._lock:
            entry = self._live_entry(key, now)
            if entry is None:
                self._make_room_for(key)
                entry = MemoryEntry(value=0)
                self._storage[key] = entry

            try:
                current = int(entry.value)
            except (TypeError, ValueError):
                current = 0

            entry.value = current + 1
            entry.last_accessed = now
            return entry.value

    async def expire(self, key: str, seconds: int) -> bool:
        now = self._clock()
        with self._lock:
            entry = self._live_entry(key, now)
            if entry is None:
                return False
            entry.expires_at = now + seconds
            return True

    def evict_soonest_expiring(self, capacity: int, incoming_key: str) -> int:
        """Make room for ``incoming_key`` in a store bounded by ``capacity``.

        When the store is full and the key is new, evicts the 10% of entries
        (rounded down) closest to expiry, or more if that is not enough to
        stay within capacity. Entries without expiry go last.

        Returns:
            Number of entries evicted.
        """
        with self._lock:
            size = len(self._storage)
            if incoming_key in self._storage or size < capacity:
                return 0

            count = max(size // 10, size - capacity + 1)
            ordered = sorted(
                self._storage.items(),
                key=lambda item: (item[1].expires_at is None, item[1].expires_at or 0.0),
            )
            for key, _ in ordered[:count]:
                del self._storage[key]

            self._stats.evictions += count
            logger.debug(f"Evicted {count} soonest-expiring entries (capacity {capacity})")
            return count

    def purge_expired(self, max_idle: Optional[float] = None) -> int:
        """Remove expired entries, and idle entries without TTL.

        Args:
            max_idle: Seconds after which an entry without TTL that has not
                been accessed is dropped. None keeps such entries.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        with self._lock:
            doomed: List[str] = []
            for key, entry in self._storage.items():
                if entry.is_expired(now):
                    doomed.append(key)
                elif entry.expires_at is None and max_idle is not None and now - entry.last_accessed > max_idle:
                    doomed.append(key)

            for key in doomed:
                del self._storage[key]
            self._stats.evictions += len(doomed)

        if doomed:
            logger.debug(f"Purged {len(doomed)} local entries, {self.size()} remaining")
        return len(doomed)

    def size(self) -> int:
        """Number of stored entries, expired ones included until purged."""
        with self._lock:
            return len(self._storage)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._storage.keys())

    def get_raw_entry(self, key: str) -> Optional[MemoryEntry]:
        """Get a raw entry without expiry checks (testing utility)."""
        with self._lock:
            return self._storage.get(key)

    def clear(self) -> None:
        with self._lock:
            self._storage.clear()
