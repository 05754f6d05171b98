"""GitHub Actions repository secrets."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from urllib.parse import quote

from gitdeck.github.repository import GitHubRepository
from gitdeck.github.seal import seal_secret

logger = logging.getLogger(__name__)

SECRET_NAME_PATTERN = re.compile(r"^[A-Z_][A-Z0-9_]*$")


def validate_secret_name(name: str) -> str | None:
    """Return an error message for an invalid secret name, None if valid."""
    if not name:
        return "Secret name is required"
    if not SECRET_NAME_PATTERN.match(name):
        return "Secret name must start with a letter or underscore and contain only uppercase letters, digits and underscores"
    return None


@dataclass(frozen=True)
class RepoSecret:
    name: str
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class PublicKey:
    key_id: str
    key: str


class SecretsApi(GitHubRepository):
    """Repository secrets endpoints."""

    async def list(self) -> list[RepoSecret]:
        response = await self._call(
            "GET", "/actions/secrets?per_page=100", title="Fetching secrets"
        )
        entries = (response.data or {}).get("secrets", [])
        return [
            RepoSecret(
                name=entry["name"],
                created_at=entry.get("created_at", ""),
                updated_at=entry.get("updated_at", ""),
            )
            for entry in entries
        ]

    async def public_key(self) -> PublicKey:
        response = await self._call(
            "GET", "/actions/secrets/public-key", title="Fetching repository public key"
        )
        data = response.data or {}
        return PublicKey(key_id=data["key_id"], key=data["key"])

    async def put(self, name: str, value: str) -> bool:
        """Create or update a secret.

        Returns:
            True if the secret was created, False if an existing one was updated.
        """
        key = await self.public_key()
        body = {"encrypted_value": seal_secret(value, key.key), "key_id": key.key_id}
        response = await self._call(
            "PUT",
            f"/actions/secrets/{quote(name, safe='')}",
            body=body,
            expected=(201, 204),
            title=f"Saving secret {name}",
        )
        logger.info("Secret %s %s on %s", name, "created" if response.status == 201 else "updated", self.repo.full_name)
        return response.status == 201

    async def delete(self, name: str) -> None:
        await self._call(
            "DELETE",
            f"/actions/secrets/{quote(name, safe='')}",
            expected=(204,),
            title=f"Deleting secret {name}",
        )
