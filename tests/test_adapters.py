import asyncio

import httpx
import pytest

from multimodel_compare.adapters import (
    MAX_OUTPUT_TOKENS,
    TEMPERATURE,
    AnthropicAdapter,
    GoogleAdapter,
    OpenAIAdapter,
    build_adapters,
)
from multimodel_compare.anthropic_session import AnthropicSession
from multimodel_compare.config import OrchestratorConfig
from multimodel_compare.contracts import ErrorKind, ProviderKind, RawCompletion, TokenUsage
from multimodel_compare.errors import AuthenticationError, RateLimitError


class FakeSession:
    def __init__(self, text="ok", *, delay=0.0, fault=None, usage=None):
        self.text = text
        self.delay = delay
        self.fault = fault
        self.usage = usage or TokenUsage(prompt_tokens=1, completion_tokens=2, total_tokens=3)
        self.calls = []

    def has_credential(self):
        return True

    async def complete(self, **kwargs):
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fault is not None:
            raise self.fault
        return RawCompletion(text=self.text, usage=self.usage)

    async def close(self):
        return None


def _no_keys_config(**overrides):
    values = dict(openai_api_key=None, anthropic_api_key=None, google_api_key=None, fernet_key=None)
    values.update(overrides)
    return OrchestratorConfig(**values)


@pytest.mark.asyncio
async def test_invoke_success_uses_fixed_sampling_policy():
    session = FakeSession("hello")
    adapter = OpenAIAdapter(session)

    result = await adapter.invoke("hi", "gpt-4o-mini")

    assert session.calls == [
        {"prompt": "hi", "model": "gpt-4o-mini", "temperature": TEMPERATURE, "max_output_tokens": MAX_OUTPUT_TOKENS}
    ]
    assert TEMPERATURE == 0.7
    assert MAX_OUTPUT_TOKENS == 2048
    assert result.ok
    assert result.provider is ProviderKind.OPENAI
    assert result.text == "hello"
    assert result.token_usage.total_tokens == 3
    assert result.is_fallback is False
    assert result.response_time_ms >= 0


@pytest.mark.asyncio
async def test_invoke_measures_real_elapsed_time():
    adapter = GoogleAdapter(FakeSession(delay=0.05))
    result = await adapter.invoke("hi", "gemini-pro")
    assert result.response_time_ms >= 45


@pytest.mark.asyncio
async def test_invoke_converts_auth_failure_to_error_result():
    adapter = AnthropicAdapter(FakeSession(fault=AuthenticationError("bad key", status_code=401)))

    result = await adapter.invoke("hi", "claude-3-haiku-20240307")

    assert result.error_kind is ErrorKind.INVALID_CREDENTIAL
    assert result.error_message == "Invalid API key for anthropic"
    assert result.text == ""
    assert result.token_usage == TokenUsage()
    assert result.is_fallback is False


@pytest.mark.asyncio
async def test_invoke_converts_rate_limit_to_error_result():
    adapter = OpenAIAdapter(FakeSession(fault=RateLimitError(retry_after_seconds=1)))
    result = await adapter.invoke("hi", "gpt-4o")
    assert result.error_kind is ErrorKind.RATE_LIMITED


@pytest.mark.asyncio
async def test_invoke_applies_per_call_timeout():
    adapter = GoogleAdapter(FakeSession(delay=1.0), timeout_seconds=0.01)

    result = await adapter.invoke("hi", "gemini-pro")

    assert result.error_kind is ErrorKind.PROVIDER_UNAVAILABLE
    assert result.text == ""
    assert result.response_time_ms < 1000


@pytest.mark.asyncio
async def test_invoke_unknown_fault_keeps_message():
    adapter = OpenAIAdapter(FakeSession(fault=ValueError("unexpected payload")))
    result = await adapter.invoke("hi", "gpt-4o")
    assert result.error_kind is ErrorKind.UNKNOWN
    assert result.error_message == "unexpected payload"


@pytest.mark.asyncio
async def test_adapter_over_real_session_maps_http_401():
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"type": "authentication_error"}})

    session = AnthropicSession(api_key="bad", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    adapter = AnthropicAdapter(session)
    try:
        result = await adapter.invoke("hi", "claude-3-haiku-20240307")
        assert result.error_kind is ErrorKind.INVALID_CREDENTIAL
    finally:
        await adapter.close()


@pytest.mark.asyncio
async def test_from_config_wires_key_and_base_url():
    cfg = _no_keys_config(openai_api_key="sk-1", openai_base_url="https://proxy.test/v1", provider_timeout_seconds=5)
    adapter = OpenAIAdapter.from_config(cfg)
    try:
        assert adapter.has_credential()
        assert adapter.session.api_key == "sk-1"
        assert adapter.session._base_url == "https://proxy.test/v1"
        assert adapter._timeout_seconds == 5
    finally:
        await adapter.close()


@pytest.mark.asyncio
async def test_build_adapters_only_for_configured_providers():
    adapters = build_adapters(_no_keys_config(google_api_key="gk"))
    try:
        assert list(adapters) == [ProviderKind.GOOGLE]
        assert isinstance(adapters[ProviderKind.GOOGLE], GoogleAdapter)
    finally:
        for adapter in adapters.values():
            await adapter.close()
