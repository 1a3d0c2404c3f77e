from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ProviderKind(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"


class ErrorKind(str, Enum):
    INVALID_CREDENTIAL = "invalid_credential"
    RATE_LIMITED = "rate_limited"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class InferenceRequest:
    prompt: str
    model_identifiers: tuple[str, ...] = ()


@dataclass(frozen=True)
class ModelResolution:
    provider: ProviderKind
    model_name: str


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class RawCompletion:
    """What an upstream session hands back on success."""

    text: str
    usage: TokenUsage = field(default_factory=TokenUsage)


@dataclass(frozen=True)
class CompletionResult:
    provider: ProviderKind
    model: str
    text: str
    response_time_ms: int
    token_usage: TokenUsage = field(default_factory=TokenUsage)
    error_kind: ErrorKind | None = None
    error_message: str | None = None
    is_fallback: bool = False

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["provider"] = self.provider.value
        out["error_kind"] = self.error_kind.value if self.error_kind is not None else None
        return out


@dataclass(frozen=True)
class BatchAggregate:
    total_response_time_ms: int
    timestamp: datetime


@dataclass(frozen=True)
class BatchResult:
    results: list[CompletionResult]
    aggregate: BatchAggregate

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "aggregate": {
                "total_response_time_ms": self.aggregate.total_response_time_ms,
                "timestamp": self.aggregate.timestamp.isoformat(),
            },
        }
