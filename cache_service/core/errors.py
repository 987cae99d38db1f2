"""Custom error types for the cache service."""

from typing import Optional, Dict, Any
from enum import Enum
from datetime import datetime, timezone


class ErrorCategory(Enum):
    """Categories of errors for better handling."""
    BACKEND = "backend"
    SERIALIZATION = "serialization"
    CONFIGURATION = "configuration"
    PATTERN = "pattern"
    UNKNOWN = "unknown"


class CacheServiceError(Exception):
    """Base exception for cache service errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        """Initialize cache service error."""
        super().__init__(message)
        self.message = message
        self.category = category
        self.details = details or {}
        self.recoverable = recoverable
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/response."""
        return {
            "error": self.message,
            "category": self.category.value,
            "details": self.details,
            "recoverable": self.recoverable,
            "timestamp": self.timestamp.isoformat(),
        }


class BackendUnreachableError(CacheServiceError):
    """The remote cache backend failed to connect or to execute an operation."""

    def __init__(self, message: str, operation: Optional[str] = None):
        details = {}
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            category=ErrorCategory.BACKEND,
            details=details,
            recoverable=True  # The local store takes over
        )


class CacheSerializationError(CacheServiceError):
    """A stored payload could not be decoded."""

    def __init__(self, message: str, key: Optional[str] = None):
        details = {}
        if key:
            details["key"] = key

        super().__init__(
            message=message,
            category=ErrorCategory.SERIALIZATION,
            details=details,
            recoverable=True  # Treated as a cache miss
        )


class UnsupportedPatternError(CacheServiceError):
    """A delete-by-pattern request the local store cannot express."""

    def __init__(self, pattern: str):
        super().__init__(
            message=f"Local store only supports a single trailing '*' wildcard, got {pattern!r}",
            category=ErrorCategory.PATTERN,
            details={"pattern": pattern},
            recoverable=False
        )


class ConfigurationError(CacheServiceError, ValueError):
    """Invalid configuration shape supplied by the caller."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {}
        if field:
            details["field"] = field

        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            details=details,
            recoverable=False  # Requires fixing the configuration
        )
