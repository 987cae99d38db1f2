"""Tenant cache service: fallback key/value store, response cache and rate limiter."""

__version__ = "1.0.0"
