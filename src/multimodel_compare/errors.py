from __future__ import annotations


class CompareError(Exception):
    """Base error for this package."""


class InvalidArgumentError(CompareError, ValueError):
    """Malformed caller input (empty or oversized prompt)."""


class ConfigurationError(CompareError):
    pass


class ProviderError(CompareError):
    """Base error for upstream provider failures."""

    def __init__(self, message: str = "", *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(ProviderError):
    pass


class RateLimitError(ProviderError):
    def __init__(self, retry_after_seconds: int | None = None, message: str = "Rate limited"):
        super().__init__(message, status_code=429)
        self.retry_after_seconds = retry_after_seconds


class UpstreamProtocolError(ProviderError):
    """Unexpected upstream response shape or non-retryable status."""


class UpstreamUnavailableError(ProviderError):
    """5xx responses and transport failures."""


class CircuitBreakerOpenError(ProviderError):
    def __init__(self, retry_after_seconds: int | None = None, message: str = "Upstream temporarily unavailable"):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class RequestTimeoutError(ProviderError):
    """Per-call deadline exceeded."""
