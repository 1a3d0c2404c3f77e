from __future__ import annotations

import asyncio
from dataclasses import dataclass

import httpx

from .contracts import ErrorKind, ProviderKind
from .errors import (
    AuthenticationError,
    CircuitBreakerOpenError,
    ProviderError,
    RateLimitError,
    RequestTimeoutError,
    UpstreamUnavailableError,
)


@dataclass(frozen=True)
class NormalizedError:
    kind: ErrorKind
    message: str


def _status_of(fault: BaseException) -> int | None:
    if isinstance(fault, ProviderError) and fault.status_code is not None:
        return fault.status_code
    if isinstance(fault, httpx.HTTPStatusError):
        return fault.response.status_code
    # Third-party client exceptions expose the HTTP status under one of these names.
    for attr in ("status_code", "status"):
        value = getattr(fault, attr, None)
        if isinstance(value, int):
            return value
    return None


def classify_fault(fault: BaseException) -> ErrorKind:
    if isinstance(fault, AuthenticationError):
        return ErrorKind.INVALID_CREDENTIAL
    if isinstance(fault, RateLimitError):
        return ErrorKind.RATE_LIMITED
    if isinstance(
        fault,
        (
            UpstreamUnavailableError,
            CircuitBreakerOpenError,
            RequestTimeoutError,
            asyncio.TimeoutError,
            httpx.TransportError,
        ),
    ):
        return ErrorKind.PROVIDER_UNAVAILABLE

    status = _status_of(fault)
    if status in (401, 403):
        return ErrorKind.INVALID_CREDENTIAL
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if status is not None and status >= 500:
        return ErrorKind.PROVIDER_UNAVAILABLE
    return ErrorKind.UNKNOWN


def normalize(fault: BaseException, provider: ProviderKind) -> NormalizedError:
    """Map any provider fault onto the four-way error vocabulary shared by all providers."""
    kind = classify_fault(fault)
    name = provider.value
    if kind is ErrorKind.INVALID_CREDENTIAL:
        message = f"Invalid API key for {name}"
    elif kind is ErrorKind.RATE_LIMITED:
        message = f"Rate limit exceeded for {name}"
    elif kind is ErrorKind.PROVIDER_UNAVAILABLE:
        message = f"{name} server error"
    else:
        message = str(fault) or f"Unknown error with {name}"
    return NormalizedError(kind=kind, message=message)
