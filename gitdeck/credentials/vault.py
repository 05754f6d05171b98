"""Encrypted on-disk vault holding opaque blobs under string keys.

All entries live in a single Fernet-encrypted file. The key comes from the
``GITDECK_VAULT_KEY`` setting when present, otherwise from a key file that is
generated on first use and readable only by its owner.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from gitdeck.errors import CredentialStoreError

logger = logging.getLogger(__name__)


def load_or_create_key(key_path: Path) -> bytes:
    """Read the vault key from disk, generating it if missing."""
    if key_path.exists():
        return key_path.read_bytes().strip()

    key_path.parent.mkdir(parents=True, exist_ok=True)
    key = Fernet.generate_key()
    key_path.write_bytes(key)
    os.chmod(key_path, 0o600)
    logger.info("Generated new vault key at %s", key_path)
    return key


class EncryptedFileVault:
    """Get/set/delete of string values in one encrypted file.

    Example:
        >>> vault = EncryptedFileVault(Path("~/.gitdeck/vault.bin"), key)
        >>> vault.set("gitdeck.savedSecrets", "[]")
        >>> vault.get("gitdeck.savedSecrets")
        '[]'
    """

    def __init__(self, path: Path, key: bytes | str):
        self.path = Path(path).expanduser()
        try:
            self._fernet = Fernet(key)
        except (ValueError, TypeError) as e:
            raise CredentialStoreError("invalid vault key", e) from e

    @classmethod
    def from_settings(cls, settings) -> "EncryptedFileVault":
        """Build the vault from storage settings."""
        storage = settings.storage
        key = settings.vault_key or load_or_create_key(storage.resolved_vault_key_path)
        return cls(storage.resolved_vault_path, key)

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            plaintext = self._fernet.decrypt(self.path.read_bytes())
        except InvalidToken as e:
            raise CredentialStoreError("vault cannot be decrypted with the configured key", e) from e
        try:
            data = json.loads(plaintext.decode("utf-8"))
        except (ValueError, UnicodeDecodeError) as e:
            raise CredentialStoreError("vault contents are corrupt", e) from e
        if not isinstance(data, dict):
            raise CredentialStoreError("vault contents are corrupt")
        return data

    def _write_all(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        token = self._fernet.encrypt(json.dumps(data).encode("utf-8"))
        self.path.write_bytes(token)
        os.chmod(self.path, 0o600)

    def get(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def delete(self, key: str) -> None:
        data = self._read_all()
        if data.pop(key, None) is not None:
            self._write_all(data)
