"""
Fan one prompt out to several providers and gather the answers in request order.

Each resolved model becomes an independent asyncio task that writes its result into
a pre-allocated slot, so the single `gather` barrier is the only synchronization point
and completion order never leaks into the output. Providers with a live credential go
through their adapter; providers without one get labeled fallback content instead.
"""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

import structlog

from .adapters import ProviderAdapter, build_adapters
from .catalog import DEFAULT_MODELS
from .classifier import resolve_selection
from .config import OrchestratorConfig
from .contracts import (
    BatchAggregate,
    BatchResult,
    CompletionResult,
    ErrorKind,
    InferenceRequest,
    ModelResolution,
    ProviderKind,
)
from .errors import InvalidArgumentError
from .fallback import generate_fallback
from .metrics import batch_latency_seconds, provider_requests_total

log = structlog.get_logger()

MAX_PROMPT_CHARS = 5000


def validate_prompt(prompt: Any) -> str:
    """Return the trimmed prompt or raise `InvalidArgumentError`."""
    if not isinstance(prompt, str) or not prompt.strip():
        raise InvalidArgumentError("Valid prompt is required")
    if len(prompt) > MAX_PROMPT_CHARS:
        raise InvalidArgumentError(f"Prompt cannot exceed {MAX_PROMPT_CHARS} characters")
    return prompt.strip()


def resolve_models(selections: Iterable[Any] | None) -> list[ModelResolution]:
    """Resolve selections in order, substituting the defaults for an empty list."""
    chosen = list(selections or ())
    if not chosen:
        chosen = list(DEFAULT_MODELS)
    resolved: list[ModelResolution] = []
    for selection in chosen:
        resolution = resolve_selection(selection)
        if resolution is None:
            log.info("model_unresolved", selection=str(selection))
            continue
        resolved.append(resolution)
    return resolved


class Orchestrator:
    def __init__(
        self,
        cfg: OrchestratorConfig | None = None,
        *,
        adapters: Mapping[ProviderKind, ProviderAdapter] | None = None,
        sleeper: Callable[[float], Awaitable[None]] | None = None,
        rng: random.Random | None = None,
    ):
        self.cfg = cfg or OrchestratorConfig()
        self.adapters: dict[ProviderKind, ProviderAdapter] = (
            dict(adapters) if adapters is not None else build_adapters(self.cfg)
        )
        self._sleep: Callable[[float], Awaitable[None]] = sleeper or asyncio.sleep
        self._rng = rng or random.Random()

    def live_adapter(self, kind: ProviderKind) -> ProviderAdapter | None:
        adapter = self.adapters.get(kind)
        if adapter is None or not adapter.has_credential():
            return None
        return adapter

    async def aclose(self) -> None:
        for adapter in self.adapters.values():
            await adapter.close()

    async def _fallback(self, resolution: ModelResolution, prompt: str) -> CompletionResult:
        result = generate_fallback(resolution.provider, resolution.model_name, prompt, rng=self._rng)
        provider_requests_total.labels(provider=resolution.provider.value, outcome="fallback").inc()
        log.info("fallback_used", provider=resolution.provider.value, model=resolution.model_name)
        if self.cfg.fallback_simulate_latency:
            await self._sleep(result.response_time_ms / 1000)
        return result

    async def _dispatch(self, resolution: ModelResolution, prompt: str) -> CompletionResult:
        adapter = self.live_adapter(resolution.provider)
        if adapter is None:
            return await self._fallback(resolution, prompt)
        return await adapter.invoke(prompt, resolution.model_name)

    async def _run_unit(
        self,
        slots: list[CompletionResult | None],
        index: int,
        resolution: ModelResolution,
        prompt: str,
    ) -> None:
        started = time.monotonic()
        try:
            slots[index] = await self._dispatch(resolution, prompt)
        except Exception as e:
            log.exception(
                "dispatch_unit_failed",
                provider=resolution.provider.value,
                model=resolution.model_name,
            )
            slots[index] = CompletionResult(
                provider=resolution.provider,
                model=resolution.model_name,
                text="",
                response_time_ms=int((time.monotonic() - started) * 1000),
                error_kind=ErrorKind.UNKNOWN,
                error_message=str(e) or f"Unknown error with {resolution.provider.value}",
            )

    async def run(self, prompt: str, model_identifiers: Iterable[Any] | None = None) -> BatchResult:
        text = validate_prompt(prompt)
        resolutions = resolve_models(model_identifiers)

        slots: list[CompletionResult | None] = [None] * len(resolutions)
        log.info(
            "batch_dispatched",
            prompt=text,
            models=[r.model_name for r in resolutions],
        )

        start = time.monotonic()
        await asyncio.gather(
            *(self._run_unit(slots, i, resolution, text) for i, resolution in enumerate(resolutions))
        )
        elapsed = time.monotonic() - start
        batch_latency_seconds.observe(elapsed)

        results = [r for r in slots if r is not None]
        total_ms = int(round(elapsed * 1000))
        log.info(
            "batch_completed",
            total_response_time_ms=total_ms,
            results=len(results),
            errors=sum(1 for r in results if r.error_kind is not None),
            fallbacks=sum(1 for r in results if r.is_fallback),
        )
        return BatchResult(
            results=results,
            aggregate=BatchAggregate(
                total_response_time_ms=total_ms,
                timestamp=datetime.now(timezone.utc),
            ),
        )

    async def run_request(self, request: InferenceRequest) -> BatchResult:
        return await self.run(request.prompt, request.model_identifiers)
