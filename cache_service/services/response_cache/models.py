"""Data models for the response cache."""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from cache_service.core.errors import CacheSerializationError


class CacheStrategy(str, Enum):
    """Normalization applied to a message before it is hashed into a key."""
    EXACT = "exact"
    SEMANTIC = "semantic"
    FUZZY = "fuzzy"


class CacheConfig(BaseModel):
    """Per-tenant response cache configuration.

    Rows coming from the configuration source use camelCase names, which are
    accepted as aliases.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    enabled: bool = True
    ttl_seconds: int = Field(3600, ge=1, description="How long cached responses are valid")
    max_size: int = Field(1000, ge=1, description="Entry bound for the local fallback store")
    strategy: CacheStrategy = CacheStrategy.EXACT
    include_context: bool = False
    key_prefix: Optional[str] = None


@dataclass
class CacheEntry:
    """A cached response and its creation time (epoch milliseconds)."""

    response: Any
    timestamp: int

    def to_json(self) -> str:
        return json.dumps({"response": self.response, "timestamp": self.timestamp})

    @classmethod
    def from_json(cls, raw: str, key: Optional[str] = None) -> "CacheEntry":
        """Decode a stored payload.

        Raises:
            CacheSerializationError: If the payload is not a valid entry.
        """
        try:
            data: Dict[str, Any] = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise CacheSerializationError(f"Invalid cached payload: {e}", key=key) from e

        if not isinstance(data, dict) or "response" not in data:
            raise CacheSerializationError("Cached payload has no response field", key=key)

        timestamp = data.get("timestamp")
        if not isinstance(timestamp, (int, float)) or isinstance(timestamp, bool):
            raise CacheSerializationError("Cached payload has no valid timestamp", key=key)

        return cls(response=data["response"], timestamp=int(timestamp))
