"""Cache key generation for tenant responses.

Key format: [{key_prefix}:]{tenant_id}:{message_hash}[:ctx:{context_hash}]

Examples:
    bot1:5d41402abc4b2a76b9719d911017c592...
    support:bot1:7c211433f02071597741e6ff5a8ea34...:ctx:9e107d9d372bb6826bd81d3542a4...

Keys depend only on their inputs (SHA-256, no salt), so they are stable
across processes and restarts.
"""

import hashlib
import re
from typing import Optional, Sequence

from cache_service.services.response_cache.models import CacheConfig, CacheStrategy

_NON_WORD = re.compile(r"[^\w\s]", re.ASCII)

FUZZY_TOKEN_COUNT = 10


class ResponseKeyGenerator:
    """Builds deterministic response cache keys."""

    @classmethod
    def hash_content(cls, content: str) -> str:
        """SHA-256 hex digest of arbitrary text."""
        return hashlib.sha256(content.encode("utf-8")).hexdigest()

    @classmethod
    def normalize(cls, message: str, strategy: CacheStrategy) -> str:
        """Apply a cache strategy to a message.

        Args:
            message: The user message.
            strategy: exact (unchanged), semantic (lower-cased, punctuation
                stripped, trimmed) or fuzzy (first 10 tokens).

        Returns:
            The text that gets hashed.
        """
        if strategy == CacheStrategy.SEMANTIC:
            return _NON_WORD.sub("", message.lower()).strip()
        if strategy == CacheStrategy.FUZZY:
            return " ".join(message.split()[:FUZZY_TOKEN_COUNT])
        return message

    @classmethod
    def tenant_prefix(cls, tenant_id: str, config: CacheConfig) -> str:
        """Leading part shared by every key of a tenant (ends with ':')."""
        prefix = f"{config.key_prefix}:" if config.key_prefix else ""
        return f"{prefix}{tenant_id}:"

    @classmethod
    def generate(
        cls,
        tenant_id: str,
        message: str,
        config: CacheConfig,
        context: Optional[Sequence[str]] = None,
    ) -> str:
        """Generate the cache key for a tenant message.

        Args:
            tenant_id: Tenant (chatbot) identifier.
            message: The user message.
            config: Tenant cache configuration.
            context: Optional conversation context items.

        Returns:
            Cache key string.
        """
        key = cls.tenant_prefix(tenant_id, config)
        key += cls.hash_content(cls.normalize(message, config.strategy))

        if config.include_context and context:
            key += f":ctx:{cls.hash_content('|'.join(context))}"

        return key
