from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .contracts import ModelResolution, ProviderKind

# Checked in order; the first matching rule wins.
PREFIX_RULES: tuple[tuple[tuple[str, ...], ProviderKind], ...] = (
    (("gpt-", "o1"), ProviderKind.OPENAI),
    (("claude-",), ProviderKind.ANTHROPIC),
    (("gemini-",), ProviderKind.GOOGLE),
)


def classify(identifier: str) -> ModelResolution | None:
    """Map a model identifier to its provider by naming convention.

    Matching is case-sensitive. Returns ``None`` for identifiers no rule recognizes.
    """
    if not isinstance(identifier, str) or not identifier:
        return None
    for prefixes, kind in PREFIX_RULES:
        if identifier.startswith(prefixes):
            return ModelResolution(provider=kind, model_name=identifier)
    return None


def resolve_selection(selection: Any) -> ModelResolution | None:
    """Resolve either an identifier string or an explicit provider/model pair."""
    if isinstance(selection, ModelResolution):
        return selection if selection.model_name else None
    if isinstance(selection, str):
        return classify(selection)
    if isinstance(selection, Mapping):
        provider = selection.get("provider")
        model = selection.get("model")
        if not isinstance(model, str) or not model:
            return None
        try:
            kind = ProviderKind(provider)
        except ValueError:
            return None
        return ModelResolution(provider=kind, model_name=model)
    return None
