from __future__ import annotations

from typing import Any

from .config import ANTHROPIC_API_BASE
from .contracts import ProviderKind, RawCompletion, TokenUsage
from .errors import UpstreamProtocolError
from .upstream import UpstreamRequest, UpstreamSession, usage_count

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicSession(UpstreamSession):
    """Messages API (`POST /messages`, `x-api-key` header)."""

    kind = ProviderKind.ANTHROPIC
    credential_env = "ANTHROPIC_API_KEY"
    default_base_url = ANTHROPIC_API_BASE

    def _build_request(
        self, *, prompt: str, model: str, temperature: float, max_output_tokens: int
    ) -> UpstreamRequest:
        return UpstreamRequest(
            url=f"{self._base_url}/messages",
            headers={
                "x-api-key": self.api_key or "",
                "anthropic-version": ANTHROPIC_VERSION,
            },
            payload={
                "model": model,
                "max_tokens": max_output_tokens,
                "temperature": temperature,
                "messages": [{"role": "user", "content": prompt}],
            },
        )

    def _parse_response(self, data: Any) -> RawCompletion:
        blocks = data.get("content") if isinstance(data, dict) else None
        if not isinstance(blocks, list) or not blocks:
            raise UpstreamProtocolError("Missing content in upstream response.")

        texts = [
            b["text"]
            for b in blocks
            if isinstance(b, dict) and b.get("type", "text") == "text" and isinstance(b.get("text"), str)
        ]
        if not texts:
            raise UpstreamProtocolError("Missing text block in upstream response.")

        # The Messages API reports no total; derive it.
        usage = data.get("usage")
        input_tokens = usage_count(usage, "input_tokens")
        output_tokens = usage_count(usage, "output_tokens")
        return RawCompletion(
            text="".join(texts),
            usage=TokenUsage(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            ),
        )
