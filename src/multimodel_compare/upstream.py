from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from .contracts import ProviderKind, RawCompletion
from .errors import (
    AuthenticationError,
    CircuitBreakerOpenError,
    ProviderError,
    RateLimitError,
    UpstreamProtocolError,
    UpstreamUnavailableError,
)
from .metrics import upstream_circuit_breaker_events_total

log = structlog.get_logger()

# Failures worth another attempt; everything else is final on first sight.
RETRYABLE_ERRORS = (RateLimitError, UpstreamUnavailableError)


@dataclass(frozen=True)
class UpstreamRequest:
    url: str
    payload: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)


def usage_count(usage: Any, key: str) -> int:
    """Read one usage counter, treating anything missing or malformed as 0."""
    if not isinstance(usage, Mapping):
        return 0
    value = usage.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value


def retry_after_seconds(resp: httpx.Response) -> int | None:
    value = resp.headers.get("retry-after")
    if value and value.isdigit():
        return int(value)
    return None


class UpstreamSession:
    """
    One provider's text-completion endpoint over plain HTTPS.

    Subclasses describe the wire format (`_build_request` / `_parse_response`);
    this class owns the client, retries, backoff and the circuit breaker.
    Failures are raised as typed `ProviderError`s for the adapter to normalize.
    """

    kind: ProviderKind
    credential_env: str
    default_base_url: str

    def __init__(
        self,
        api_key: str | None,
        *,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        timeout_seconds: float = 60,
        max_attempts: int = 1,
        backoff_initial_seconds: float = 0.5,
        backoff_max_seconds: float = 8.0,
        circuit_breaker_failures: int = 5,
        circuit_breaker_reset_seconds: float = 30.0,
        sleeper: Callable[[float], Awaitable[None]] | None = None,
        clock: Callable[[], float] | None = None,
    ):
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._base_url = (base_url or self.default_base_url).rstrip("/")
        self._max_attempts = max(1, max_attempts)
        self._backoff_initial_seconds = max(0.0, backoff_initial_seconds)
        self._backoff_max_seconds = max(self._backoff_initial_seconds, backoff_max_seconds)
        self._sleep: Callable[[float], Awaitable[None]] = sleeper or asyncio.sleep
        self._clock: Callable[[], float] = clock or time.monotonic

        # Circuit breaker: open after N consecutive retryable failures, probe again after the reset window.
        self._cb_threshold = max(0, int(circuit_breaker_failures))
        self._cb_reset_seconds = max(0.0, float(circuit_breaker_reset_seconds))
        self._cb_failures = 0
        self._cb_open_until: float | None = None

    def has_credential(self) -> bool:
        return bool(self.api_key)

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def _breaker_enabled(self) -> bool:
        return self._cb_threshold > 0

    def _breaker_event(self, event: str) -> None:
        upstream_circuit_breaker_events_total.labels(provider=self.kind.value, event=event).inc()

    def _breaker_check(self) -> None:
        if not self._breaker_enabled or self._cb_open_until is None:
            return
        remaining = self._cb_open_until - self._clock()
        if remaining <= 0:
            return
        self._breaker_event("short_circuit")
        raise CircuitBreakerOpenError(retry_after_seconds=int(remaining) + 1)

    def _breaker_record(self, *, failed: bool) -> None:
        if not self._breaker_enabled:
            return
        if not failed:
            self._cb_failures = 0
            self._cb_open_until = None
            return
        self._cb_failures += 1
        if self._cb_failures >= self._cb_threshold and self._cb_reset_seconds > 0:
            self._cb_open_until = self._clock() + self._cb_reset_seconds
            self._breaker_event("open")

    def _retry_delay(self, fault: ProviderError, retry_index: int) -> float:
        if isinstance(fault, RateLimitError) and fault.retry_after_seconds is not None:
            return float(fault.retry_after_seconds)
        delay = min(self._backoff_max_seconds, self._backoff_initial_seconds * (2**retry_index))
        if delay <= 0:
            return 0.0
        return delay + random.uniform(0.0, min(0.25, delay * 0.1))

    async def _send(self, req: UpstreamRequest) -> httpx.Response:
        try:
            return await self._client.post(req.url, params=req.params, headers=req.headers, json=req.payload)
        except httpx.TimeoutException as e:
            raise UpstreamUnavailableError(f"{self.kind.value} request timed out.") from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(f"{self.kind.value} request failed.") from e

    def _check_status(self, resp: httpx.Response) -> None:
        status = resp.status_code
        if status < 400:
            return
        if status in (401, 403):
            raise AuthenticationError(
                f"Upstream rejected credentials (check {self.credential_env}).", status_code=status
            )
        if status == 429:
            raise RateLimitError(retry_after_seconds=retry_after_seconds(resp))
        if status >= 500:
            log.warning("upstream_5xx", provider=self.kind.value, status_code=status, body=resp.text[:500])
            raise UpstreamUnavailableError(f"Upstream error {status}.", status_code=status)
        raise UpstreamProtocolError(f"Upstream error {status}.", status_code=status)

    def _build_request(
        self, *, prompt: str, model: str, temperature: float, max_output_tokens: int
    ) -> UpstreamRequest:
        raise NotImplementedError

    def _parse_response(self, data: Any) -> RawCompletion:
        raise NotImplementedError

    async def complete(
        self,
        *,
        prompt: str,
        model: str,
        temperature: float,
        max_output_tokens: int,
    ) -> RawCompletion:
        self._breaker_check()

        if not self.api_key:
            raise AuthenticationError(f"Missing {self.credential_env} for {self.kind.value} call.")

        req = self._build_request(
            prompt=prompt, model=model, temperature=temperature, max_output_tokens=max_output_tokens
        )

        attempts = 0
        while True:
            attempts += 1
            try:
                resp = await self._send(req)
                self._check_status(resp)
            except RETRYABLE_ERRORS as e:
                self._breaker_record(failed=True)
                if attempts >= self._max_attempts:
                    raise
                delay = self._retry_delay(e, attempts - 1)
                log.info("upstream_retry", provider=self.kind.value, attempt=attempts, delay_seconds=delay)
                await self._sleep(delay)
                continue
            break

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamProtocolError("Upstream returned a non-JSON body.") from e

        self._breaker_record(failed=False)
        completion = self._parse_response(data)
        log.debug("upstream_complete_ok", provider=self.kind.value, model=model, attempts=attempts)
        return completion
