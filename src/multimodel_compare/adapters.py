from __future__ import annotations

import asyncio
import time
from typing import Protocol

import httpx
import structlog

from .anthropic_session import AnthropicSession
from .config import OrchestratorConfig
from .contracts import CompletionResult, ProviderKind, RawCompletion, TokenUsage
from .errors import RequestTimeoutError
from .gemini_session import GeminiSession
from .metrics import provider_latency_seconds, provider_requests_total
from .normalize import normalize
from .openai_session import OpenAISession
from .upstream import UpstreamSession

log = structlog.get_logger()

# Sampling policy for every live call; not caller-configurable.
TEMPERATURE = 0.7
MAX_OUTPUT_TOKENS = 2048


class CompletionCapability(Protocol):
    def has_credential(self) -> bool: ...

    async def complete(
        self, *, prompt: str, model: str, temperature: float, max_output_tokens: int
    ) -> RawCompletion: ...

    async def close(self) -> None: ...


def _elapsed_ms(start: float) -> int:
    return max(0, int(round((time.monotonic() - start) * 1000)))


class ProviderAdapter:
    kind: ProviderKind
    session_cls: type[UpstreamSession]

    def __init__(self, session: CompletionCapability, *, timeout_seconds: float | None = 60.0):
        self.session = session
        self._timeout_seconds = timeout_seconds if timeout_seconds and timeout_seconds > 0 else None

    @classmethod
    def from_config(cls, cfg: OrchestratorConfig, *, client: httpx.AsyncClient | None = None) -> "ProviderAdapter":
        session = cls.session_cls(
            cfg.resolved_api_key(cls.kind),
            client=client,
            base_url=cfg.base_url_for(cls.kind),
            timeout_seconds=cfg.upstream_timeout_seconds,
            max_attempts=cfg.upstream_max_attempts,
            backoff_initial_seconds=cfg.upstream_backoff_initial_seconds,
            backoff_max_seconds=cfg.upstream_backoff_max_seconds,
            circuit_breaker_failures=cfg.upstream_circuit_breaker_failures,
            circuit_breaker_reset_seconds=cfg.upstream_circuit_breaker_reset_seconds,
        )
        return cls(session, timeout_seconds=cfg.provider_timeout_seconds)

    def has_credential(self) -> bool:
        return self.session.has_credential()

    async def close(self) -> None:
        await self.session.close()

    async def _call(self, prompt: str, model_name: str) -> RawCompletion:
        call = self.session.complete(
            prompt=prompt,
            model=model_name,
            temperature=TEMPERATURE,
            max_output_tokens=MAX_OUTPUT_TOKENS,
        )
        try:
            return await asyncio.wait_for(call, timeout=self._timeout_seconds)
        except asyncio.TimeoutError as e:
            raise RequestTimeoutError(f"{self.kind.value} call exceeded {self._timeout_seconds}s.") from e

    async def invoke(self, prompt: str, model_name: str) -> CompletionResult:
        """Run one live completion. Never raises; failures come back as error results."""
        provider = self.kind.value
        start = time.monotonic()
        try:
            with provider_latency_seconds.labels(provider=provider).time():
                raw = await self._call(prompt, model_name)
        except Exception as e:
            elapsed = _elapsed_ms(start)
            err = normalize(e, self.kind)
            provider_requests_total.labels(provider=provider, outcome="error").inc()
            log.warning(
                "provider_call_failed",
                provider=provider,
                model=model_name,
                error_kind=err.kind.value,
                error=str(e),
                response_time_ms=elapsed,
            )
            return CompletionResult(
                provider=self.kind,
                model=model_name,
                text="",
                response_time_ms=elapsed,
                token_usage=TokenUsage(),
                error_kind=err.kind,
                error_message=err.message,
            )

        elapsed = _elapsed_ms(start)
        provider_requests_total.labels(provider=provider, outcome="success").inc()
        log.info(
            "provider_call_ok",
            provider=provider,
            model=model_name,
            response_time_ms=elapsed,
            total_tokens=raw.usage.total_tokens,
        )
        return CompletionResult(
            provider=self.kind,
            model=model_name,
            text=raw.text,
            response_time_ms=elapsed,
            token_usage=raw.usage,
        )


class OpenAIAdapter(ProviderAdapter):
    kind = ProviderKind.OPENAI
    session_cls = OpenAISession


class AnthropicAdapter(ProviderAdapter):
    kind = ProviderKind.ANTHROPIC
    session_cls = AnthropicSession


class GoogleAdapter(ProviderAdapter):
    kind = ProviderKind.GOOGLE
    session_cls = GeminiSession


ADAPTER_TYPES: dict[ProviderKind, type[ProviderAdapter]] = {
    ProviderKind.OPENAI: OpenAIAdapter,
    ProviderKind.ANTHROPIC: AnthropicAdapter,
    ProviderKind.GOOGLE: GoogleAdapter,
}


def build_adapters(cfg: OrchestratorConfig) -> dict[ProviderKind, ProviderAdapter]:
    """Construct adapters for every provider that has a credential configured."""
    adapters: dict[ProviderKind, ProviderAdapter] = {}
    for kind, adapter_cls in ADAPTER_TYPES.items():
        if not cfg.resolved_api_key(kind):
            continue
        adapters[kind] = adapter_cls.from_config(cfg)
    return adapters
