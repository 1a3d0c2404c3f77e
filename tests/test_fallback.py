import random

import pytest

from multimodel_compare.contracts import ProviderKind
from multimodel_compare.fallback import (
    ADVICE_BODY,
    CODE_BODY,
    COMPARE_BODY,
    EXPLAIN_BODY,
    FALLBACK_DISCLAIMER,
    GENERIC_BODY,
    RESPONSE_STYLES,
    estimate_tokens,
    generate_fallback,
    select_category,
    select_style,
)


@pytest.mark.parametrize(
    ("prompt", "category", "body"),
    [
        ("Write a Python FUNCTION to sort a list", "code", CODE_BODY),
        ("Explain recursion", "explain", EXPLAIN_BODY),
        ("What is a monad?", "explain", EXPLAIN_BODY),
        ("I need some advice on hiring", "advice", ADVICE_BODY),
        ("Compare tea and coffee", "compare", COMPARE_BODY),
        ("hi", "generic", GENERIC_BODY),
    ],
)
def test_select_category_by_keyword(prompt, category, body):
    assert select_category(prompt) == (category, body)


def test_select_category_respects_category_order():
    # Mentions both code and comparison; code is checked first.
    assert select_category("compare these two code snippets")[0] == "code"


def test_select_style_falls_back_to_provider_then_generic():
    assert select_style(ProviderKind.OPENAI, "gpt-4o") is RESPONSE_STYLES[ProviderKind.OPENAI]["gpt-4o"]
    first_google = next(iter(RESPONSE_STYLES[ProviderKind.GOOGLE].values()))
    assert select_style(ProviderKind.GOOGLE, "gemini-1.5-pro") is first_google


def test_every_provider_has_a_response_style():
    for kind in ProviderKind:
        assert RESPONSE_STYLES[kind]
        assert select_style(kind, "not-a-listed-model").openings


def test_generate_fallback_shape_and_usage():
    prompt = "Explain recursion"
    result = generate_fallback(ProviderKind.OPENAI, "gpt-4o-mini", prompt, rng=random.Random(7))

    assert result.is_fallback is True
    assert result.error_kind is None
    assert result.error_message is None
    assert result.provider is ProviderKind.OPENAI
    assert result.model == "gpt-4o-mini"
    assert 500 <= result.response_time_ms < 2000

    opening, rest = result.text.split("\n\n", 1)
    assert opening in RESPONSE_STYLES[ProviderKind.OPENAI]["gpt-4o-mini"].openings
    assert rest == f"{EXPLAIN_BODY}\n\n---\n*{FALLBACK_DISCLAIMER}*"

    usage = result.token_usage
    assert usage.prompt_tokens == estimate_tokens(prompt) == 5
    assert usage.completion_tokens == estimate_tokens(opening + EXPLAIN_BODY)
    assert usage.total_tokens == usage.prompt_tokens + usage.completion_tokens


def test_generate_fallback_body_is_stable_across_calls():
    bodies = {
        generate_fallback(ProviderKind.GOOGLE, "gemini-pro", "compare A vs B").text.split("\n\n", 1)[1]
        for _ in range(10)
    }
    assert len(bodies) == 1


def test_estimate_tokens_rounds_up():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2
