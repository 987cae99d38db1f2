"""Multi-window rate limiter.

Usage:
    from cache_service.services.rate_limiter import RateLimiter, RateLimitConfig

    limiter = RateLimiter(store)
    result = await limiter.check("bot1:user42", RateLimitConfig(max_per_minute=60))
    if not result.allowed:
        ...
"""

from cache_service.services.rate_limiter.limiter import RateLimiter
from cache_service.services.rate_limiter.models import RateLimitConfig, RateLimitResult, Window, WINDOWS

__all__ = [
    "RateLimiter",
    "RateLimitConfig",
    "RateLimitResult",
    "Window",
    "WINDOWS",
]
