"""Base interface for key/value backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict


@dataclass
class BackendStats:
    """Statistics for backend monitoring."""

    hits: int = 0
    misses: int = 0
    errors: int = 0
    evictions: int = 0
    fallbacks: int = 0

    @property
    def total_requests(self) -> int:
        """Total number of read requests."""
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Calculate read hit rate."""
        if self.total_requests == 0:
            return 0.0
        return self.hits / self.total_requests

    def record_hit(self) -> None:
        self.hits += 1

    def record_miss(self) -> None:
        self.misses += 1

    def record_error(self) -> None:
        self.errors += 1

    def record_fallback(self) -> None:
        self.fallbacks += 1

    def to_dict(self) -> Dict[str, float]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "errors": self.errors,
            "evictions": self.evictions,
            "fallbacks": self.fallbacks,
            "hit_rate": self.hit_rate,
        }


class IKeyValueBackend(ABC):
    """Abstract base class for key/value backends.

    Values are strings (or integers for counters). Serialization of richer
    payloads is the caller's concern.
    """

    @property
    @abstractmethod
    def available(self) -> bool:
        """Whether the backend can currently serve requests."""
        ...

    @property
    @abstractmethod
    def stats(self) -> BackendStats:
        """Get backend statistics."""
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Get a value.

        Args:
            key: The key.

        Returns:
            The stored value, or None if absent or expired.
        """
        ...

    @abstractmethod
    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """Store a value.

        Args:
            key: The key.
            value: The value to store.
            ttl: Time-to-live in seconds (None for no expiration).
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key.

        Returns:
            True if a key was removed.
        """
        ...

    @abstractmethod
    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern.

        Returns:
            Number of keys removed.
        """
        ...

    @abstractmethod
    async def incr(self, key: str) -> int:
        """Increment an integer counter, creating it at 0 when absent.

        Returns:
            The counter value after the increment.
        """
        ...

    @abstractmethod
    async def expire(self, key: str, seconds: int) -> bool:
        """Set a time-to-live on an existing key.

        Returns:
            True if the key existed and the TTL was applied.
        """
        ...
