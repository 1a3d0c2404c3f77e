from __future__ import annotations

import json
from pathlib import Path

from cryptography.fernet import Fernet, InvalidToken

from .contracts import ProviderKind
from .errors import ConfigurationError


def _fernet(key_str: str) -> Fernet:
    try:
        return Fernet(key_str.encode("utf-8"))
    except ValueError as e:
        raise ConfigurationError("CREDENTIALS_FERNET_KEY is not a valid Fernet key.") from e


class EncryptedCredentialStore:
    """
    Provider API keys encrypted at rest.

    The file at `path` holds one Fernet token wrapping a JSON object keyed by
    provider name, e.g. {"openai": "sk-...", "google": "..."}.
    """

    def __init__(self, path: str, fernet_key: str):
        self.path = Path(path)
        self._fernet = _fernet(fernet_key)

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, keys: dict[ProviderKind, str]) -> None:
        payload = {kind.value: value for kind, value in keys.items() if value}
        self.path.write_bytes(self._fernet.encrypt(json.dumps(payload).encode("utf-8")))

    def load(self) -> dict[ProviderKind, str]:
        try:
            raw = self._fernet.decrypt(self.path.read_bytes())
        except InvalidToken as e:
            raise ConfigurationError("Failed to decrypt credentials (wrong key or corrupted file).") from e
        payload = json.loads(raw.decode("utf-8"))
        if not isinstance(payload, dict):
            raise ConfigurationError("Credential payload must be a JSON object.")
        out: dict[ProviderKind, str] = {}
        for name, value in payload.items():
            try:
                kind = ProviderKind(name)
            except ValueError:
                continue
            if isinstance(value, str) and value:
                out[kind] = value
        return out

    def api_key_for(self, kind: ProviderKind) -> str | None:
        return self.load().get(kind)
