from __future__ import annotations

import os

from pydantic import BaseModel, Field

from .contracts import ProviderKind

OPENAI_API_BASE = "https://api.openai.com/v1"
ANTHROPIC_API_BASE = "https://api.anthropic.com/v1"
GOOGLE_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


def _parse_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


class OrchestratorConfig(BaseModel):
    # Provider credentials; a provider without one is answered with fallback content
    openai_api_key: str | None = Field(default_factory=lambda: os.getenv("OPENAI_API_KEY"))
    anthropic_api_key: str | None = Field(default_factory=lambda: os.getenv("ANTHROPIC_API_KEY"))
    google_api_key: str | None = Field(default_factory=lambda: os.getenv("GOOGLE_API_KEY"))

    openai_base_url: str = Field(default_factory=lambda: os.getenv("OPENAI_BASE_URL", OPENAI_API_BASE))
    anthropic_base_url: str = Field(default_factory=lambda: os.getenv("ANTHROPIC_BASE_URL", ANTHROPIC_API_BASE))
    google_base_url: str = Field(default_factory=lambda: os.getenv("GOOGLE_BASE_URL", GOOGLE_API_BASE))

    # Encrypted credential file, consulted for keys missing from the environment
    credentials_path: str = Field(default_factory=lambda: os.getenv("CREDENTIALS_PATH", "credentials.enc"))
    fernet_key: str | None = Field(default_factory=lambda: os.getenv("CREDENTIALS_FERNET_KEY"))

    # Upstream behavior
    upstream_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "60"))
    )
    provider_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "60"))
    )
    upstream_max_attempts: int = Field(default_factory=lambda: int(os.getenv("UPSTREAM_MAX_ATTEMPTS", "1")))
    upstream_backoff_initial_seconds: float = Field(
        default_factory=lambda: float(os.getenv("UPSTREAM_BACKOFF_INITIAL_SECONDS", "0.5"))
    )
    upstream_backoff_max_seconds: float = Field(
        default_factory=lambda: float(os.getenv("UPSTREAM_BACKOFF_MAX_SECONDS", "8.0"))
    )
    upstream_circuit_breaker_failures: int = Field(
        default_factory=lambda: int(os.getenv("UPSTREAM_CIRCUIT_BREAKER_FAILURES", "5"))
    )
    upstream_circuit_breaker_reset_seconds: float = Field(
        default_factory=lambda: float(os.getenv("UPSTREAM_CIRCUIT_BREAKER_RESET_SECONDS", "30"))
    )

    fallback_simulate_latency: bool = Field(default_factory=lambda: _env_flag("FALLBACK_SIMULATE_LATENCY", "true"))

    # Observability
    enable_metrics: bool = Field(default_factory=lambda: _env_flag("ENABLE_METRICS"))
    metrics_bind: str = Field(default_factory=lambda: os.getenv("METRICS_BIND", "127.0.0.1"))
    metrics_port: int = Field(default_factory=lambda: int(os.getenv("METRICS_PORT", "9109")))
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_format: str = Field(default_factory=lambda: os.getenv("LOG_FORMAT", "json"))

    # Server hardening
    server_auth_token: str | None = Field(default_factory=lambda: os.getenv("SERVER_AUTH_TOKEN"))
    enable_api_docs: bool = Field(default_factory=lambda: _env_flag("ENABLE_API_DOCS"))
    allowed_hosts: list[str] = Field(default_factory=lambda: _parse_csv(os.getenv("ALLOWED_HOSTS")))
    cors_allow_origins: list[str] = Field(default_factory=lambda: _parse_csv(os.getenv("CORS_ALLOW_ORIGINS")))
    cors_allow_credentials: bool = Field(default_factory=lambda: _env_flag("CORS_ALLOW_CREDENTIALS"))
    max_request_body_bytes: int = Field(
        default_factory=lambda: int(os.getenv("MAX_REQUEST_BODY_BYTES", str(64 * 1024)))
    )
    max_inflight_requests: int = Field(default_factory=lambda: int(os.getenv("MAX_INFLIGHT_REQUESTS", "32")))
    max_models_per_request: int = Field(default_factory=lambda: int(os.getenv("MAX_MODELS_PER_REQUEST", "16")))

    def api_key_for(self, kind: ProviderKind) -> str | None:
        return {
            ProviderKind.OPENAI: self.openai_api_key,
            ProviderKind.ANTHROPIC: self.anthropic_api_key,
            ProviderKind.GOOGLE: self.google_api_key,
        }[kind]

    def base_url_for(self, kind: ProviderKind) -> str:
        return {
            ProviderKind.OPENAI: self.openai_base_url,
            ProviderKind.ANTHROPIC: self.anthropic_base_url,
            ProviderKind.GOOGLE: self.google_base_url,
        }[kind]

    def resolved_api_key(self, kind: ProviderKind) -> str | None:
        """Environment key first, then the encrypted credential file if one is configured."""
        key = self.api_key_for(kind)
        if key:
            return key
        if not self.fernet_key:
            return None
        from .credentials import EncryptedCredentialStore

        store = EncryptedCredentialStore(self.credentials_path, self.fernet_key)
        if not store.exists():
            return None
        return store.api_key_for(kind)

    def secrets(self) -> list[str]:
        """Values to redact from logs, including provider keys loaded from the encrypted file."""
        values = [self.resolved_api_key(kind) for kind in ProviderKind]
        values += [self.fernet_key, self.server_auth_token]
        return list(dict.fromkeys(v for v in values if v))
