import asyncio

import httpx
import pytest

from multimodel_compare.contracts import ErrorKind, ProviderKind
from multimodel_compare.errors import (
    AuthenticationError,
    CircuitBreakerOpenError,
    RateLimitError,
    RequestTimeoutError,
    UpstreamProtocolError,
    UpstreamUnavailableError,
)
from multimodel_compare.normalize import normalize


class SdkStyleError(Exception):
    def __init__(self, message, status):
        super().__init__(message)
        self.status = status


@pytest.mark.parametrize(
    ("fault", "kind"),
    [
        (AuthenticationError("bad key", status_code=401), ErrorKind.INVALID_CREDENTIAL),
        (SdkStyleError("forbidden", 403), ErrorKind.INVALID_CREDENTIAL),
        (RateLimitError(retry_after_seconds=3), ErrorKind.RATE_LIMITED),
        (SdkStyleError("slow down", 429), ErrorKind.RATE_LIMITED),
        (UpstreamUnavailableError("Upstream error 503.", status_code=503), ErrorKind.PROVIDER_UNAVAILABLE),
        (CircuitBreakerOpenError(retry_after_seconds=5), ErrorKind.PROVIDER_UNAVAILABLE),
        (RequestTimeoutError("too slow"), ErrorKind.PROVIDER_UNAVAILABLE),
        (asyncio.TimeoutError(), ErrorKind.PROVIDER_UNAVAILABLE),
        (httpx.ConnectError("refused"), ErrorKind.PROVIDER_UNAVAILABLE),
        (SdkStyleError("overloaded", 529), ErrorKind.PROVIDER_UNAVAILABLE),
        (UpstreamProtocolError("Upstream error 400.", status_code=400), ErrorKind.UNKNOWN),
        (ValueError("odd"), ErrorKind.UNKNOWN),
    ],
)
def test_normalize_kinds(fault, kind):
    assert normalize(fault, ProviderKind.OPENAI).kind is kind


def test_normalize_reads_httpx_status_error():
    request = httpx.Request("POST", "https://example.test")
    response = httpx.Response(401, request=request)
    fault = httpx.HTTPStatusError("unauthorized", request=request, response=response)
    assert normalize(fault, ProviderKind.GOOGLE).kind is ErrorKind.INVALID_CREDENTIAL


def test_normalize_messages_name_the_provider():
    assert normalize(AuthenticationError("x"), ProviderKind.ANTHROPIC).message == "Invalid API key for anthropic"
    assert normalize(RateLimitError(), ProviderKind.GOOGLE).message == "Rate limit exceeded for google"
    assert normalize(UpstreamUnavailableError("x"), ProviderKind.OPENAI).message == "openai server error"


def test_normalize_unknown_keeps_raw_message_or_generic_text():
    assert normalize(ValueError("model not found"), ProviderKind.OPENAI).message == "model not found"
    assert normalize(ValueError(), ProviderKind.OPENAI).message == "Unknown error with openai"
