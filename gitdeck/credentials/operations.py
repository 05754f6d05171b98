"""Operator workflows for the local credential vault."""

from __future__ import annotations

from gitdeck.credentials.store import CredentialStore
from gitdeck.ui.host import OperatorHost
from gitdeck.workspace import Choice


class VaultOperations:
    """Add, list and delete saved credentials."""

    def __init__(self, host: OperatorHost, store: CredentialStore):
        self.host = host
        self.store = store

    async def add(self) -> None:
        name = await self.host.ask("Credential name (e.g. NuGet API Key)")
        if not name:
            return
        value = await self.host.ask("Credential value", password=True)
        if not value:
            return
        description = await self.host.ask("Description (optional)")

        self.store.save(name, value, description)
        self.host.info(f"Saved credential {name}")

    def show(self) -> None:
        credentials = self.store.list()
        if not credentials:
            self.host.info("No saved credentials")
            return
        self.host.table(
            f"{len(credentials)} saved credential(s)",
            ["Name", "Description", "Value", "Updated"],
            [
                (c.name, c.description or "", c.masked, c.updated_at.strftime("%Y-%m-%d"))
                for c in credentials
            ],
        )

    async def delete(self) -> None:
        credentials = self.store.list()
        if not credentials:
            self.host.info("No saved credentials")
            return

        name = await self.host.choose(
            "Credential to delete",
            [Choice(label=c.name, value=c.name, description=c.description) for c in credentials],
        )
        if name is None:
            return
        if not await self.host.confirm(f"Delete credential {name}?"):
            return

        self.store.delete(name)
        self.host.info(f"Deleted credential {name}")
