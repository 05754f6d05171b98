"""Locally saved credentials reusable as GitHub secret values."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Optional, Protocol

from pydantic import BaseModel, Field, ValidationError

from gitdeck.errors import CredentialStoreError

logger = logging.getLogger(__name__)

STORAGE_KEY = "gitdeck.savedSecrets"
MASK_LIMIT = 20


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BlobVault(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class SavedCredential(BaseModel):
    """A named secret value kept in the local vault."""

    name: str
    value: str
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @property
    def masked(self) -> str:
        """Value hidden behind asterisks, length capped."""
        return "*" * min(len(self.value), MASK_LIMIT) + "..."


class CredentialStore:
    """Read-modify-write access to saved credentials.

    The credentials are a JSON object keyed by name, stored as one blob under
    ``STORAGE_KEY``. Writes are not atomic across processes.
    """

    def __init__(self, vault: BlobVault):
        self.vault = vault

    def _read(self) -> dict[str, SavedCredential]:
        raw = self.vault.get(STORAGE_KEY)
        if not raw:
            return {}
        try:
            entries = json.loads(raw)
            return {
                name: SavedCredential.model_validate(entry)
                for name, entry in entries.items()
            }
        except (ValueError, TypeError, AttributeError, ValidationError) as e:
            raise CredentialStoreError("saved credentials are corrupt", e) from e

    def _write(self, credentials: dict[str, SavedCredential]) -> None:
        payload = {name: c.model_dump(mode="json") for name, c in credentials.items()}
        self.vault.set(STORAGE_KEY, json.dumps(payload))

    def list(self) -> list[SavedCredential]:
        return list(self._read().values())

    def get(self, name: str) -> Optional[SavedCredential]:
        return self._read().get(name)

    def save(self, name: str, value: str, description: Optional[str] = None) -> SavedCredential:
        """Add a credential or replace an existing one, keeping its creation time."""
        credentials = self._read()
        existing = credentials.get(name)
        credential = SavedCredential(name=name, value=value, description=description)
        if existing is not None:
            credential.created_at = existing.created_at

        credentials[name] = credential
        self._write(credentials)
        logger.info("Saved credential %s", name)
        return credential

    def delete(self, name: str) -> bool:
        """Remove a credential. Returns False if it did not exist."""
        credentials = self._read()
        if credentials.pop(name, None) is None:
            return False
        self._write(credentials)
        logger.info("Deleted credential %s", name)
        return True
