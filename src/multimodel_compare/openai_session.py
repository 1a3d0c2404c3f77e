from __future__ import annotations

from typing import Any

from .config import OPENAI_API_BASE
from .contracts import ProviderKind, RawCompletion, TokenUsage
from .errors import UpstreamProtocolError
from .upstream import UpstreamRequest, UpstreamSession, usage_count


class OpenAISession(UpstreamSession):
    """Chat Completions API (`POST /chat/completions`, bearer auth)."""

    kind = ProviderKind.OPENAI
    credential_env = "OPENAI_API_KEY"
    default_base_url = OPENAI_API_BASE

    def _build_request(
        self, *, prompt: str, model: str, temperature: float, max_output_tokens: int
    ) -> UpstreamRequest:
        return UpstreamRequest(
            url=f"{self._base_url}/chat/completions",
            headers={"Authorization": f"Bearer {self.api_key}"},
            payload={
                "model": model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": temperature,
                "max_tokens": max_output_tokens,
            },
        )

    def _parse_response(self, data: Any) -> RawCompletion:
        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices:
            raise UpstreamProtocolError("Missing choices in upstream response.")

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            raise UpstreamProtocolError("Missing message in upstream response.")

        text = message.get("content")
        if not isinstance(text, str):
            raise UpstreamProtocolError("Missing content in upstream response.")

        usage = data.get("usage")
        return RawCompletion(
            text=text,
            usage=TokenUsage(
                prompt_tokens=usage_count(usage, "prompt_tokens"),
                completion_tokens=usage_count(usage, "completion_tokens"),
                total_tokens=usage_count(usage, "total_tokens"),
            ),
        )
