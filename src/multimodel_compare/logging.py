from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping, MutableMapping
from typing import Any, TypeAlias, cast

import structlog

_SENSITIVE_KEYS = {
    "authorization",
    "x-api-key",
    "x-goog-api-key",
    "api_key",
    "apikey",
    "token",
    "secret",
    "password",
    "fernet_key",
    "credentials",
}

_SENSITIVE_FRAGMENTS = ("key", "token", "secret", "password")

# Key-shaped strings that can leak through exception messages or URLs.
_BEARER_RE = re.compile(r"(?i)\bBearer\s+([A-Za-z0-9._-]{6,})")
_QUERY_KEY_RE = re.compile(r"([?&]key=)[^&\s]+")

ProcessorReturn: TypeAlias = Mapping[str, Any] | str | bytes | bytearray | tuple[Any, ...]
Processor: TypeAlias = Callable[[Any, str, MutableMapping[str, Any]], ProcessorReturn]


def redact_text(value: str, *, secrets: list[str]) -> str:
    for secret in secrets:
        if secret and secret in value:
            value = value.replace(secret, "[REDACTED]")
    value = _BEARER_RE.sub("Bearer [REDACTED]", value)
    return _QUERY_KEY_RE.sub(r"\1[REDACTED]", value)


def _is_sensitive(key: Any) -> bool:
    name = str(key).lower()
    if name.endswith("_tokens"):
        return False
    return name in _SENSITIVE_KEYS or any(f in name for f in _SENSITIVE_FRAGMENTS)


def _redact(obj: Any, *, secrets: list[str]) -> Any:
    if isinstance(obj, str):
        return redact_text(obj, secrets=secrets)
    if isinstance(obj, (list, tuple)):
        return type(obj)(_redact(v, secrets=secrets) for v in obj)
    if isinstance(obj, dict):
        return {
            k: "[REDACTED]" if _is_sensitive(k) else _redact(v, secrets=secrets)
            for k, v in obj.items()
        }
    return obj


def _redaction_processor(secrets: list[str]) -> Processor:
    known = [s for s in secrets if isinstance(s, str) and s]

    def _processor(_logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]) -> ProcessorReturn:
        return cast(dict[str, Any], _redact(event_dict, secrets=known))

    return _processor


def shorten_prompt(_logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]) -> ProcessorReturn:
    """Never log prompt text, only its size."""
    prompt = event_dict.pop("prompt", None)
    if isinstance(prompt, str):
        event_dict["prompt_chars"] = len(prompt)
    return event_dict


def configure_logging(level: str = "INFO", fmt: str = "json", *, secrets: list[str] | None = None) -> None:
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric_level)

    processors: list[Processor] = [
        cast(Processor, structlog.contextvars.merge_contextvars),
        cast(Processor, structlog.processors.add_log_level),
        cast(Processor, structlog.processors.TimeStamper(fmt="iso")),
        shorten_prompt,
    ]
    if secrets:
        processors.append(_redaction_processor(secrets))

    if fmt == "json":
        processors.append(cast(Processor, structlog.processors.JSONRenderer()))
    else:
        processors.append(cast(Processor, structlog.dev.ConsoleRenderer()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )
