from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from .contracts import BatchResult, CompletionResult, ProviderKind
from .orchestrator import MAX_PROMPT_CHARS


class CompareRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    prompt: str
    # Identifier strings or {"provider", "model"} pairs; entries that resolve to nothing are dropped downstream.
    models: list[Any] | None = None

    @field_validator("prompt")
    @classmethod
    def _validate_prompt(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Valid prompt is required")
        if len(v) > MAX_PROMPT_CHARS:
            raise ValueError(f"Prompt cannot exceed {MAX_PROMPT_CHARS} characters")
        return v

    def selections(self) -> list[Any]:
        return list(self.models or [])


class TokenUsageModel(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class CompletionModel(BaseModel):
    provider: ProviderKind
    model: str
    response: str
    response_time_ms: int
    token_usage: TokenUsageModel
    error_kind: str | None = None
    error: str | None = None
    is_fallback: bool = False

    @classmethod
    def from_result(cls, result: CompletionResult) -> "CompletionModel":
        return cls(
            provider=result.provider,
            model=result.model,
            response=result.text,
            response_time_ms=result.response_time_ms,
            token_usage=TokenUsageModel(
                prompt_tokens=result.token_usage.prompt_tokens,
                completion_tokens=result.token_usage.completion_tokens,
                total_tokens=result.token_usage.total_tokens,
            ),
            error_kind=result.error_kind.value if result.error_kind is not None else None,
            error=result.error_message,
            is_fallback=result.is_fallback,
        )


class BatchMetadata(BaseModel):
    total_response_time_ms: int
    timestamp: datetime


class CompareResponse(BaseModel):
    success: bool = True
    prompt: str
    responses: list[CompletionModel]
    metadata: BatchMetadata


def make_compare_response(*, prompt: str, batch: BatchResult) -> CompareResponse:
    return CompareResponse(
        prompt=prompt,
        responses=[CompletionModel.from_result(r) for r in batch.results],
        metadata=BatchMetadata(
            total_response_time_ms=batch.aggregate.total_response_time_ms,
            timestamp=batch.aggregate.timestamp,
        ),
    )


class ProviderModels(BaseModel):
    provider: ProviderKind
    display_name: str
    models: list[str]


class ModelsResponse(BaseModel):
    success: bool = True
    providers: list[ProviderModels]


class ApiError(BaseModel):
    message: str
    type: str = "api_error"
    param: str | None = None
    code: str | None = None


class ApiErrorResponse(BaseModel):
    error: ApiError


def make_error_response(
    *,
    message: str,
    type: str = "api_error",
    param: str | None = None,
    code: str | None = None,
) -> dict[str, Any]:
    return ApiErrorResponse(error=ApiError(message=message, type=type, param=param, code=code)).model_dump()
