"""Operator workflows against the GitHub API for the selected repository."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional
from urllib.parse import urlparse

from gitdeck.config import Settings
from gitdeck.credentials import CredentialStore, SavedCredential
from gitdeck.errors import GitCommandError, MissingTokenError, RemoteCallError, RemoteUrlError
from gitdeck.git.executor import ProcessExecutor
from gitdeck.github.actions import ActionsApi
from gitdeck.github.client import GitHubClient
from gitdeck.github.remote import RepoRef, parse_github_url
from gitdeck.github.secrets import SecretsApi, validate_secret_name
from gitdeck.invocation import Invoker
from gitdeck.ui.host import OperatorHost
from gitdeck.workspace import Choice, TargetResolver

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Settings], GitHubClient]

ACCESS_HINT = "make sure the token has admin access to the repository"
RUN_ICONS = {"success": "✅", "failure": "❌", "cancelled": "⚪"}
MANUAL_ENTRY = object()


def default_client_factory(settings: Settings) -> GitHubClient:
    """Build a client from the configured token and API URL."""
    token = settings.get_github_token()
    if not token:
        raise MissingTokenError()
    return GitHubClient(
        token,
        base_url=settings.github.api_url,
        timeout=settings.network.timeout_ms / 1000.0,
    )


def _with_hint(error: RemoteCallError, action: str) -> RemoteCallError:
    if error.status_code in (403, 404):
        return RemoteCallError(
            f"{action} failed ({error.status_code}), {ACCESS_HINT}",
            kind=error.kind,
            status_code=error.status_code,
        )
    return error


class GitHubOperations:
    """Secrets, workflow runs and web pages of the origin repository."""

    def __init__(
        self,
        host: OperatorHost,
        resolver: TargetResolver,
        executor: ProcessExecutor,
        invoker: Invoker,
        client_factory: Optional[ClientFactory] = None,
        credentials: Optional[Callable[[], CredentialStore]] = None,
    ):
        self.host = host
        self.resolver = resolver
        self.executor = executor
        self.invoker = invoker
        self.client_factory = client_factory or default_client_factory
        self.credentials = credentials

    def saved_credentials(self) -> list[SavedCredential]:
        """Open the local credential store; only secret creation needs it."""
        if self.credentials is None:
            return []
        return self.credentials().list()

    async def repository(self) -> Optional[RepoRef]:
        """Resolve the GitHub repository behind the selected target's origin."""
        target = await self.resolver.resolve(True, "Select a GitHub repository")
        if target is None:
            return None

        try:
            url = await self.executor.run(["remote", "get-url", "origin"], target)
        except GitCommandError:
            self.host.error("No remote named origin is configured")
            return None

        web_host = urlparse(self.invoker.settings().github.web_url).hostname or "github.com"
        repo = parse_github_url(url, host=web_host)
        if repo is None:
            raise RemoteUrlError(url)
        return repo

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[Optional[tuple[GitHubClient, RepoRef]]]:
        repo = await self.repository()
        if repo is None:
            yield None
            return
        client = self.client_factory(self.invoker.settings())
        async with client:
            yield client, repo

    # -- Secrets ---------------------------------------------------------

    async def list_secrets(self) -> None:
        async with self._connect() as connection:
            if connection is None:
                return
            client, repo = connection
            try:
                secrets = await SecretsApi(client, repo, self.invoker).list()
            except RemoteCallError as e:
                raise _with_hint(e, "Fetching secrets") from e

        if not secrets:
            self.host.info(f"No secrets in {repo.full_name}")
            return
        self.host.table(
            f"Secrets of {repo.full_name}",
            ["Name", "Updated"],
            [(s.name, s.updated_at[:10]) for s in secrets],
        )

    async def pick_secret_value(self) -> Optional[str]:
        """Choose a saved credential's value or type one in."""
        saved = self.saved_credentials()
        if not saved:
            if not await self.host.confirm("No saved credentials. Enter the value manually?", default=True):
                return None
            return await self.host.ask("Secret value", password=True)

        choices: list[Choice] = [
            Choice(label="Enter a new value", value=MANUAL_ENTRY, description="do not use a saved credential")
        ]
        choices += [
            Choice(label=c.name, value=c.value, description=c.description or "saved credential")
            for c in saved
        ]
        selected = await self.host.choose("Saved credential or manual entry", choices)
        if selected is MANUAL_ENTRY:
            return await self.host.ask("Secret value", password=True)
        return selected

    async def create_secret(self) -> None:
        async with self._connect() as connection:
            if connection is None:
                return
            client, repo = connection

            name = await self.host.ask(
                "Secret name", default="NUGET_API_KEY", validate=validate_secret_name
            )
            if not name:
                return
            value = await self.pick_secret_value()
            if not value:
                return

            try:
                created = await SecretsApi(client, repo, self.invoker).put(name, value)
            except RemoteCallError as e:
                raise _with_hint(e, "Saving the secret") from e

        self.host.info(f"Secret {name} {'created' if created else 'updated'} in {repo.full_name}")

    async def delete_secret(self) -> None:
        async with self._connect() as connection:
            if connection is None:
                return
            client, repo = connection
            api = SecretsApi(client, repo, self.invoker)

            try:
                secrets = await api.list()
            except RemoteCallError as e:
                raise _with_hint(e, "Fetching secrets") from e
            if not secrets:
                self.host.info(f"No secrets in {repo.full_name}")
                return

            name = await self.host.choose(
                "Secret to delete", [Choice(label=s.name, value=s.name) for s in secrets]
            )
            if name is None:
                return
            if not await self.host.confirm(f"Delete secret {name}?"):
                return

            await api.delete(name)
        self.host.info(f"Secret {name} deleted")

    # -- Workflow runs ---------------------------------------------------

    async def delete_runs(self) -> None:
        async with self._connect() as connection:
            if connection is None:
                return
            client, repo = connection
            api = ActionsApi(client, repo, self.invoker)

            try:
                runs = await api.list_runs()
            except RemoteCallError as e:
                raise _with_hint(e, "Fetching workflow runs") from e
            if not runs:
                self.host.info("No workflow runs")
                return

            choices = [
                Choice(
                    label=f"{RUN_ICONS.get(run.conclusion or run.status, '🔄')} {run.label}",
                    value=run,
                    description=f"{run.head_branch} {run.created_at}".strip(),
                )
                for run in runs
            ]
            selected = await self.host.choose_many("Workflow runs to delete", choices)
            if not selected:
                return
            if not await self.host.confirm(f"Delete {len(selected)} workflow run(s)?"):
                return

            report = await api.delete_runs(selected)

        if report.failed:
            self.host.warn(f"Deleted {report.deleted} run(s), {report.failed} failed")
        else:
            self.host.info(f"Deleted {report.deleted} run(s)")

    # -- Web pages -------------------------------------------------------

    async def open_secrets_page(self) -> None:
        repo = await self.repository()
        if repo is not None:
            self.host.open_url(repo.secrets_url(self.invoker.settings().github.web_url))

    async def open_actions_page(self) -> None:
        repo = await self.repository()
        if repo is not None:
            self.host.open_url(repo.actions_url(self.invoker.settings().github.web_url))
