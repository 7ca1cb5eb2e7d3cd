"""
Cache Domain Exceptions

Domain-specific exceptions for cache operations.
Errors raised by fetchers are never wrapped: they reach the caller as-is.
"""

from typing import Optional, Any, Dict


class CacheException(Exception):
    """Base exception for cache-related errors.

    Carries a machine-readable error code and structured details so
    callers can log or report the failure without parsing the message.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class InvalidKeyError(CacheException, ValueError):
    """Raised when a cache key is empty, too long or contains whitespace."""

    def __init__(self, message: str, key: Optional[str] = None):
        details = {}
        if key is not None:
            details["key"] = key[:100]
            details["key_length"] = len(key)

        super().__init__(
            message=message, error_code="CACHE_INVALID_KEY", details=details
        )


class InvalidTTLError(CacheException, ValueError):
    """Raised when a TTL is not positive or exceeds the allowed maximum."""

    def __init__(self, message: str, ttl: Optional[Any] = None):
        details = {}
        if ttl is not None:
            details["ttl"] = str(ttl)

        super().__init__(
            message=message, error_code="CACHE_INVALID_TTL", details=details
        )


class CacheFetchTimeoutError(CacheException, TimeoutError):
    """Raised when a fetcher does not complete within its timeout."""

    def __init__(
        self,
        key: str,
        timeout_seconds: float,
        original_error: Optional[Exception] = None,
    ):
        details = {"key": key, "timeout_seconds": timeout_seconds}

        super().__init__(
            message=f"Fetch for cache key '{key}' timed out after {timeout_seconds}s",
            error_code="CACHE_FETCH_TIMEOUT",
            details=details,
        )
        # Preserve exception context for debugging (exception chaining)
        if original_error:
            self.__cause__ = original_error
