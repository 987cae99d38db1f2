"""Data models for the rate limiter."""

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RateLimitConfig(BaseModel):
    """Per-tenant request quotas.

    A window without a threshold is not enforced. Rows coming from the
    configuration source use camelCase names, which are accepted as aliases.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    enabled: bool = True
    max_per_minute: Optional[int] = Field(None, ge=1)
    max_per_hour: Optional[int] = Field(None, ge=1)
    max_per_day: Optional[int] = Field(None, ge=1)
    block_duration_seconds: int = Field(300, ge=1)


@dataclass(frozen=True)
class Window:
    """A fixed counting window."""

    granularity: str
    size_seconds: int
    config_field: str
    # Only the minute window starts a block when breached
    blocks_on_breach: bool = False

    @property
    def size_ms(self) -> int:
        return self.size_seconds * 1000


WINDOWS = (
    Window("minute", 60, "max_per_minute", blocks_on_breach=True),
    Window("hour", 3600, "max_per_hour"),
    Window("day", 86400, "max_per_day"),
)


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a rate limit check.

    Attributes:
        allowed: Whether the request may proceed.
        remaining: Requests left in the most constrained window, None when no
            limit applies.
        reset_at_ms: Epoch milliseconds at which the constraining window (or
            the block) ends.
        blocked_until_ms: End of the active block, if any.
        retry_after_seconds: Seconds to wait before retrying, for denials.
    """

    allowed: bool
    remaining: Optional[int]
    reset_at_ms: int
    blocked_until_ms: Optional[int] = None
    retry_after_seconds: Optional[int] = None
