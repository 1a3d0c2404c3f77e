"""
Placeholder completions for providers that have no configured credential.

The text is clearly labeled as synthetic. Its opening line is picked at random from a
per-model style, while the body is chosen deterministically from the prompt's keywords.
Token counts use a rough four-characters-per-token estimate, not a real tokenizer.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass

from .contracts import CompletionResult, ProviderKind, TokenUsage

FALLBACK_DISCLAIMER = "This is a demo response. Configure API keys for real AI responses."

MIN_SIMULATED_LATENCY_MS = 500
MAX_SIMULATED_LATENCY_MS = 2000

CHARS_PER_TOKEN = 4


@dataclass(frozen=True)
class ResponseStyle:
    style: str
    openings: tuple[str, ...]


RESPONSE_STYLES: dict[ProviderKind, dict[str, ResponseStyle]] = {
    ProviderKind.OPENAI: {
        "gpt-4o-mini": ResponseStyle(
            style="concise and helpful",
            openings=(
                "I'd be happy to help you with that. Here's a comprehensive approach to your question:",
                "Great question! Let me break this down for you step by step.",
                "Based on your query, here are the key points to consider:",
                "I understand what you're looking for. Here's my analysis:",
            ),
        ),
        "gpt-4o": ResponseStyle(
            style="detailed and analytical",
            openings=(
                "This is an excellent question that requires careful consideration of multiple factors.",
                "Let me provide you with a thorough analysis of this topic.",
                "I'll approach this systematically to give you the most helpful response.",
                "This is a nuanced topic that benefits from exploring several perspectives.",
            ),
        ),
    },
    ProviderKind.ANTHROPIC: {
        "claude-3-haiku-20240307": ResponseStyle(
            style="thoughtful and precise",
            openings=(
                "I appreciate you asking about this. Let me share some thoughts that might be helpful.",
                "This is an interesting topic. Here's how I would approach it:",
                "Thank you for the question. I'll do my best to provide a clear and useful response.",
                "I'd like to help you think through this carefully.",
            ),
        ),
        "claude-3-sonnet-20240229": ResponseStyle(
            style="balanced and thorough",
            openings=(
                "I'd be happy to explore this topic with you. Let me consider the various aspects:",
                "This raises some important considerations. Here's my perspective:",
                "I think there are several ways to look at this question.",
                "Let me walk you through my thinking on this topic.",
            ),
        ),
    },
    ProviderKind.GOOGLE: {
        "gemini-pro": ResponseStyle(
            style="informative and structured",
            openings=(
                "Here's what I can tell you about this topic, organized clearly:",
                "Let me provide you with some structured information about this:",
                "I'll organize my response to cover the key aspects you're asking about:",
                "Here's a systematic breakdown of this topic:",
            ),
        ),
        "gemini-1.5-flash": ResponseStyle(
            style="quick and direct",
            openings=(
                "Quick answer: Here's what you need to know:",
                "Direct response to your question:",
                "Here's the straightforward answer:",
                "To address your question directly:",
            ),
        ),
    },
}

CODE_BODY = (
    "Here's a code example that demonstrates the concept:\n\n"
    "```python\n"
    "def example_function():\n"
    '    print("This is a demo response!")\n'
    '    return "Replace with real implementation"\n'
    "```\n\n"
    "This approach would work well for your use case."
)

EXPLAIN_BODY = (
    "The concept you're asking about involves several key components:\n\n"
    "1. **First aspect**: This is an important foundational element\n"
    "2. **Second aspect**: This builds on the first point\n"
    "3. **Third aspect**: This brings everything together\n\n"
    "These elements work together to create the complete picture."
)

ADVICE_BODY = (
    "Here are some practical suggestions:\n\n"
    "• **Option 1**: This would be a straightforward approach\n"
    "• **Option 2**: This offers more flexibility\n"
    "• **Option 3**: This might be the most comprehensive solution\n\n"
    "I'd recommend starting with Option 1 and then considering the others based on your specific needs."
)

COMPARE_BODY = (
    "Here's a comparison of the key differences:\n\n"
    "**Aspect A:**\n"
    "- Advantage: Better for specific use cases\n"
    "- Drawback: More complex setup\n\n"
    "**Aspect B:**\n"
    "- Advantage: Simpler to implement\n"
    "- Drawback: Less customizable\n\n"
    "The choice between them depends on your specific requirements and constraints."
)

GENERIC_BODY = (
    "This is a comprehensive topic that touches on several important areas. The key considerations "
    "include practical implementation, best practices, and potential challenges you might encounter.\n\n"
    "Based on current industry standards and common approaches, I'd recommend focusing on the core "
    "principles first, then building out from there as needed."
)

# Order matters: a prompt mentioning both code and comparison gets the code body.
BODY_CATEGORIES: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("code", ("code", "programming", "function"), CODE_BODY),
    ("explain", ("explain", "what is", "how"), EXPLAIN_BODY),
    ("advice", ("help", "advice", "suggest"), ADVICE_BODY),
    ("compare", ("compare", "difference", "vs"), COMPARE_BODY),
)


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def select_style(provider: ProviderKind, model: str) -> ResponseStyle:
    """The model's own style, else the first one listed for its provider."""
    styles = RESPONSE_STYLES[provider]
    return styles.get(model) or next(iter(styles.values()))


def select_category(prompt: str) -> tuple[str, str]:
    """Return ``(category, body)`` for the first keyword category the prompt matches."""
    lowered = prompt.lower()
    for name, keywords, body in BODY_CATEGORIES:
        if any(k in lowered for k in keywords):
            return name, body
    return "generic", GENERIC_BODY


def generate_fallback(
    provider: ProviderKind,
    model: str,
    prompt: str,
    *,
    rng: random.Random | None = None,
) -> CompletionResult:
    rng = rng or random.Random()
    style = select_style(provider, model)
    opening = rng.choice(style.openings)
    _, body = select_category(prompt)

    prompt_tokens = estimate_tokens(prompt)
    completion_tokens = estimate_tokens(opening + body)

    return CompletionResult(
        provider=provider,
        model=model,
        text=f"{opening}\n\n{body}\n\n---\n*{FALLBACK_DISCLAIMER}*",
        response_time_ms=rng.randrange(MIN_SIMULATED_LATENCY_MS, MAX_SIMULATED_LATENCY_MS),
        token_usage=TokenUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        ),
        is_fallback=True,
    )
