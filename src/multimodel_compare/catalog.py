from __future__ import annotations

from .contracts import ProviderKind

PROVIDER_DISPLAY_NAMES: dict[ProviderKind, str] = {
    ProviderKind.OPENAI: "OpenAI",
    ProviderKind.ANTHROPIC: "Anthropic",
    ProviderKind.GOOGLE: "Google",
}

AVAILABLE_MODELS: dict[ProviderKind, tuple[str, ...]] = {
    ProviderKind.OPENAI: (
        "gpt-4o",
        "gpt-4o-mini",
        "gpt-4-turbo",
        "gpt-3.5-turbo",
        "o1-preview",
        "o1-mini",
    ),
    ProviderKind.ANTHROPIC: (
        "claude-3-5-sonnet-20241022",
        "claude-3-5-haiku-20241022",
        "claude-3-opus-20240229",
        "claude-3-sonnet-20240229",
        "claude-3-haiku-20240307",
    ),
    ProviderKind.GOOGLE: (
        "gemini-pro",
        "gemini-pro-vision",
        "gemini-1.5-pro",
        "gemini-1.5-flash",
    ),
}

# Used when a caller selects no models at all.
DEFAULT_MODELS: tuple[str, ...] = (
    "gpt-4o-mini",
    "claude-3-haiku-20240307",
    "gemini-pro",
)


def available_models() -> dict[str, list[str]]:
    return {kind.value: list(models) for kind, models in AVAILABLE_MODELS.items()}


def catalog_listing() -> list[dict[str, object]]:
    return [
        {
            "provider": kind.value,
            "display_name": PROVIDER_DISPLAY_NAMES[kind],
            "models": list(models),
        }
        for kind, models in AVAILABLE_MODELS.items()
    ]
