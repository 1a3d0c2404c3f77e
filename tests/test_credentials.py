import pytest
from cryptography.fernet import Fernet

from multimodel_compare.config import OrchestratorConfig
from multimodel_compare.contracts import ProviderKind
from multimodel_compare.credentials import EncryptedCredentialStore
from multimodel_compare.errors import ConfigurationError


def test_store_roundtrip_keeps_only_known_providers(tmp_path):
    key = Fernet.generate_key().decode("utf-8")
    path = tmp_path / "credentials.enc"
    store = EncryptedCredentialStore(str(path), key)
    assert store.exists() is False

    store.save({ProviderKind.OPENAI: "sk-123", ProviderKind.GOOGLE: ""})

    assert store.exists()
    assert b"sk-123" not in path.read_bytes()
    assert store.load() == {ProviderKind.OPENAI: "sk-123"}
    assert store.api_key_for(ProviderKind.ANTHROPIC) is None


def test_store_wrong_key_raises_configuration_error(tmp_path):
    path = tmp_path / "credentials.enc"
    EncryptedCredentialStore(str(path), Fernet.generate_key().decode()).save({ProviderKind.OPENAI: "sk"})

    with pytest.raises(ConfigurationError):
        EncryptedCredentialStore(str(path), Fernet.generate_key().decode()).load()


def test_store_rejects_malformed_fernet_key(tmp_path):
    with pytest.raises(ConfigurationError):
        EncryptedCredentialStore(str(tmp_path / "c.enc"), "not-a-key")


def test_config_prefers_environment_key_then_encrypted_file(tmp_path):
    key = Fernet.generate_key().decode("utf-8")
    path = tmp_path / "credentials.enc"
    EncryptedCredentialStore(str(path), key).save(
        {ProviderKind.ANTHROPIC: "from-file", ProviderKind.OPENAI: "file-openai"}
    )

    cfg = OrchestratorConfig(
        openai_api_key="from-env",
        anthropic_api_key=None,
        google_api_key=None,
        credentials_path=str(path),
        fernet_key=key,
    )

    assert cfg.resolved_api_key(ProviderKind.OPENAI) == "from-env"
    assert cfg.resolved_api_key(ProviderKind.ANTHROPIC) == "from-file"
    assert cfg.resolved_api_key(ProviderKind.GOOGLE) is None


def test_config_without_fernet_key_ignores_file(tmp_path):
    cfg = OrchestratorConfig(
        openai_api_key=None,
        anthropic_api_key=None,
        google_api_key=None,
        credentials_path=str(tmp_path / "missing.enc"),
        fernet_key=None,
    )
    assert all(cfg.resolved_api_key(kind) is None for kind in ProviderKind)


def test_config_reads_environment(monkeypatch):
    monkeypatch.setenv("GOOGLE_API_KEY", "gk-env")
    monkeypatch.setenv("PROVIDER_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("FALLBACK_SIMULATE_LATENCY", "false")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.test, https://b.test")

    cfg = OrchestratorConfig()

    assert cfg.api_key_for(ProviderKind.GOOGLE) == "gk-env"
    assert cfg.provider_timeout_seconds == 12.5
    assert cfg.fallback_simulate_latency is False
    assert cfg.cors_allow_origins == ["https://a.test", "https://b.test"]
    assert cfg.upstream_max_attempts >= 1


def test_secrets_include_keys_loaded_from_encrypted_file(tmp_path):
    key = Fernet.generate_key().decode("utf-8")
    path = tmp_path / "credentials.enc"
    EncryptedCredentialStore(str(path), key).save({ProviderKind.GOOGLE: "gk-from-file"})

    cfg = OrchestratorConfig(
        openai_api_key="sk-env",
        anthropic_api_key=None,
        google_api_key=None,
        credentials_path=str(path),
        fernet_key=key,
        server_auth_token=None,
    )

    assert cfg.secrets() == ["sk-env", "gk-from-file", key]
