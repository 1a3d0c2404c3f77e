from __future__ import annotations

from typing import Any

from .config import GOOGLE_API_BASE
from .contracts import ProviderKind, RawCompletion, TokenUsage
from .errors import UpstreamProtocolError
from .upstream import UpstreamRequest, UpstreamSession, usage_count


class GeminiSession(UpstreamSession):
    """
    Gemini Developer API (`POST /models/{model}:generateContent`).

    The API key travels as the `key` query parameter.
    """

    kind = ProviderKind.GOOGLE
    credential_env = "GOOGLE_API_KEY"
    default_base_url = GOOGLE_API_BASE

    def _build_request(
        self, *, prompt: str, model: str, temperature: float, max_output_tokens: int
    ) -> UpstreamRequest:
        return UpstreamRequest(
            url=f"{self._base_url}/models/{model}:generateContent",
            params={"key": self.api_key or ""},
            payload={
                "contents": [{"role": "user", "parts": [{"text": prompt}]}],
                "generationConfig": {
                    "temperature": temperature,
                    "maxOutputTokens": max_output_tokens,
                },
            },
        )

    def _parse_response(self, data: Any) -> RawCompletion:
        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not isinstance(candidates, list) or not candidates:
            raise UpstreamProtocolError("Missing candidates in upstream response.")

        content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
        if not isinstance(content, dict):
            raise UpstreamProtocolError("Missing content in upstream response.")

        parts = content.get("parts")
        if not isinstance(parts, list) or not parts:
            raise UpstreamProtocolError("Missing parts in upstream response.")

        texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
        if not texts:
            raise UpstreamProtocolError("Missing text in upstream response.")

        usage = data.get("usageMetadata")
        return RawCompletion(
            text="".join(texts),
            usage=TokenUsage(
                prompt_tokens=usage_count(usage, "promptTokenCount"),
                completion_tokens=usage_count(usage, "candidatesTokenCount"),
                total_tokens=usage_count(usage, "totalTokenCount"),
            ),
        )
