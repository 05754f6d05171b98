"""CLI entry point for gitdeck."""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

import typer
from rich.console import Console
from rich.panel import Panel

from gitdeck import __version__
from gitdeck.config import create_default_config, fresh_settings, get_settings, load_settings
from gitdeck.credentials import CredentialStore, EncryptedFileVault
from gitdeck.credentials.operations import VaultOperations
from gitdeck.errors import ConfigurationError, GitDeckError, OperationCancelled
from gitdeck.git.executor import ProcessExecutor
from gitdeck.git.operations import (
    BranchOperations,
    CommitOperations,
    GitWorkflow,
    RemoteOperations,
    RepositoryOperations,
    TagOperations,
)
from gitdeck.github.operations import GitHubOperations
from gitdeck.invocation import Invoker, ProgressSurface, cancel_on_interrupt
from gitdeck.ui import ConsoleHost
from gitdeck.utils.logging import LOG_DIR, setup_logging
from gitdeck.workspace import TargetProbe, TargetResolver

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="gitdeck",
    help="Resilient git and GitHub housekeeping for one or more local repositories",
    add_completion=True,
    no_args_is_help=True,
)
tag_app = typer.Typer(help="Create and delete tags", no_args_is_help=True)
branches_app = typer.Typer(help="Branch housekeeping", no_args_is_help=True)
commits_app = typer.Typer(help="Reset, drop and recover commits", no_args_is_help=True)
remote_app = typer.Typer(help="Manage remotes", no_args_is_help=True)
secrets_app = typer.Typer(help="GitHub Actions secrets", no_args_is_help=True)
runs_app = typer.Typer(help="GitHub Actions workflow runs", no_args_is_help=True)
open_app = typer.Typer(help="Open GitHub pages in the browser", no_args_is_help=True)
vault_app = typer.Typer(help="Locally saved credentials", no_args_is_help=True)

app.add_typer(tag_app, name="tag")
app.add_typer(branches_app, name="branches")
app.add_typer(commits_app, name="commits")
app.add_typer(remote_app, name="remote")
app.add_typer(secrets_app, name="secrets")
app.add_typer(runs_app, name="runs")
app.add_typer(open_app, name="open")
app.add_typer(vault_app, name="vault")

console = Console()


@dataclass
class CliState:
    """Global options shared by every command."""

    workspace: List[Path] = field(default_factory=list)
    active: Optional[Path] = None


@dataclass
class Services:
    """Collaborators for one command invocation."""

    host: ConsoleHost
    executor: ProcessExecutor
    invoker: Invoker
    resolver: TargetResolver

    def git(self, workflow: type) -> GitWorkflow:
        return workflow(self.host, self.resolver, self.executor, self.invoker)

    def credentials(self) -> CredentialStore:
        return CredentialStore(EncryptedFileVault.from_settings(self.invoker.settings()))

    def github(self) -> GitHubOperations:
        return GitHubOperations(
            self.host,
            self.resolver,
            self.executor,
            self.invoker,
            credentials=self.credentials,
        )


def build_services(state: CliState) -> Services:
    settings = get_settings()
    folders = state.workspace or settings.workspace.resolved_folders
    host = ConsoleHost(console=console, folders=folders, active=state.active)
    executor = ProcessExecutor(settings_loader=fresh_settings)
    invoker = Invoker(
        settings_loader=fresh_settings,
        surface=ProgressSurface(console=Console(stderr=True)),
    )
    resolver = TargetResolver(host=host, probe=TargetProbe(executor))
    return Services(host=host, executor=executor, invoker=invoker, resolver=resolver)


def run_action(ctx: typer.Context, action: Callable[[Services], Awaitable[None]]) -> None:
    """Run one operator action behind the error boundary.

    Ctrl+C cancels the action's token for its whole run, so batches stop
    between steps. Cancellation ends the command quietly. Every other
    gitdeck failure is shown as a single line and exits with status 1.
    """
    state: CliState = ctx.obj or CliState()
    services = build_services(state)
    token = services.invoker.token
    token.on_cancel(lambda: services.host.warn("Cancelling after the current step"))

    async def main() -> None:
        with cancel_on_interrupt(token):
            await action(services)

    try:
        asyncio.run(main())
    except OperationCancelled:
        logger.debug("Operation cancelled")
    except GitDeckError as e:
        logger.debug("Operation failed: %s", e.to_dict())
        services.host.error(e.message)
        raise typer.Exit(1)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]gitdeck[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    workspace: Optional[List[Path]] = typer.Option(
        None,
        "--workspace",
        "-w",
        help="Candidate repository directory (repeatable); overrides workspace.folders",
    ),
    active: Optional[Path] = typer.Option(
        None,
        "--active",
        help="Path to prefer when choosing between workspace folders (default: current directory)",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
    log: bool = typer.Option(
        False,
        "--log",
        help=f"Also write debug logs to {LOG_DIR / 'gitdeck.log'}",
    ),
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """gitdeck - git and GitHub housekeeping with retries and cancellation."""
    setup_logging(verbose=verbose, log_file=LOG_DIR / "gitdeck.log" if log else None)
    create_default_config()
    try:
        load_settings(config_path=config, force_reload=True)
    except ConfigurationError as e:
        console.print(f"[red]✗[/red] {e.message}")
        raise typer.Exit(1)

    ctx.obj = CliState(workspace=list(workspace or []), active=active)


# =============================================================================
# Tags
# =============================================================================

@tag_app.command("create")
def tag_create(ctx: typer.Context) -> None:
    """Create a tag, optionally pushing it to origin."""
    run_action(ctx, lambda s: s.git(TagOperations).create())


@tag_app.command("delete-latest")
def tag_delete_latest(ctx: typer.Context) -> None:
    """Delete the most recent tag locally, or locally and on origin."""
    run_action(ctx, lambda s: s.git(TagOperations).delete_latest())


@tag_app.command("delete-local")
def tag_delete_local(ctx: typer.Context) -> None:
    """Delete selected local tags."""
    run_action(ctx, lambda s: s.git(TagOperations).delete_local())


@tag_app.command("delete-remote")
def tag_delete_remote(ctx: typer.Context) -> None:
    """Delete selected tags from origin."""
    run_action(ctx, lambda s: s.git(TagOperations).delete_remote())


# =============================================================================
# Pull / push / branches
# =============================================================================

@app.command()
def pull(ctx: typer.Context) -> None:
    """Pull the current branch."""
    run_action(ctx, lambda s: s.git(BranchOperations).pull())


@app.command()
def push(
    ctx: typer.Context,
    tags: bool = typer.Option(False, "--tags", help="Also push annotated tags (--follow-tags)"),
) -> None:
    """Push the current branch."""
    run_action(ctx, lambda s: s.git(BranchOperations).push(tags=tags))


@branches_app.command("clean")
def branches_clean(ctx: typer.Context) -> None:
    """Delete selected branches already merged into the current one."""
    run_action(ctx, lambda s: s.git(BranchOperations).clean_merged())


# =============================================================================
# Commits
# =============================================================================

@commits_app.command("reset")
def commits_reset(ctx: typer.Context) -> None:
    """Reset the current branch to one of the recent commits."""
    run_action(ctx, lambda s: s.git(CommitOperations).reset())


@commits_app.command("reset-remote")
def commits_reset_remote(ctx: typer.Context) -> None:
    """Hard reset to a recent commit and force push."""
    run_action(ctx, lambda s: s.git(CommitOperations).reset_remote())


@commits_app.command("drop")
def commits_drop(ctx: typer.Context) -> None:
    """Drop the last N local commits."""
    run_action(ctx, lambda s: s.git(CommitOperations).drop())


@commits_app.command("drop-remote")
def commits_drop_remote(ctx: typer.Context) -> None:
    """Drop the last N commits and force push."""
    run_action(ctx, lambda s: s.git(CommitOperations).drop_remote())


@commits_app.command("recover")
def commits_recover(ctx: typer.Context) -> None:
    """Hard reset to a recent reflog entry."""
    run_action(ctx, lambda s: s.git(CommitOperations).recover())


# =============================================================================
# Remotes
# =============================================================================

@remote_app.command("list")
def remote_list(ctx: typer.Context) -> None:
    """List remotes and their push URLs."""
    run_action(ctx, lambda s: s.git(RemoteOperations).show())


@remote_app.command("add")
def remote_add(ctx: typer.Context) -> None:
    """Add a remote."""
    run_action(ctx, lambda s: s.git(RemoteOperations).add())


@remote_app.command("set-url")
def remote_set_url(ctx: typer.Context) -> None:
    """Change the URL of a remote."""
    run_action(ctx, lambda s: s.git(RemoteOperations).set_url())


@remote_app.command("remove")
def remote_remove(ctx: typer.Context) -> None:
    """Remove a remote other than origin."""
    run_action(ctx, lambda s: s.git(RemoteOperations).remove())


@app.command()
def sync(ctx: typer.Context) -> None:
    """Push all branches and tags to one or all remotes."""
    run_action(ctx, lambda s: s.git(RemoteOperations).sync())


# =============================================================================
# Repository bootstrap
# =============================================================================

@app.command()
def init(ctx: typer.Context) -> None:
    """Initialise a git repository with an optional .gitignore."""
    run_action(ctx, lambda s: s.git(RepositoryOperations).init())


@app.command()
def publish(ctx: typer.Context) -> None:
    """Add origin if needed, make an initial commit and push."""
    run_action(ctx, lambda s: s.git(RepositoryOperations).publish())


@app.command()
def gitignore(ctx: typer.Context) -> None:
    """Create or extend .gitignore from built-in templates."""
    run_action(ctx, lambda s: s.git(RepositoryOperations).gitignore())


# =============================================================================
# GitHub
# =============================================================================

@secrets_app.command("list")
def secrets_list(ctx: typer.Context) -> None:
    """List repository secrets."""
    run_action(ctx, lambda s: s.github().list_secrets())


@secrets_app.command("create")
def secrets_create(ctx: typer.Context) -> None:
    """Create or update a repository secret."""
    run_action(ctx, lambda s: s.github().create_secret())


@secrets_app.command("delete")
def secrets_delete(ctx: typer.Context) -> None:
    """Delete a repository secret."""
    run_action(ctx, lambda s: s.github().delete_secret())


@runs_app.command("delete")
def runs_delete(ctx: typer.Context) -> None:
    """Delete selected workflow runs."""
    run_action(ctx, lambda s: s.github().delete_runs())


@open_app.command("secrets")
def open_secrets(ctx: typer.Context) -> None:
    """Open the repository's Actions secrets settings."""
    run_action(ctx, lambda s: s.github().open_secrets_page())


@open_app.command("actions")
def open_actions(ctx: typer.Context) -> None:
    """Open the repository's Actions page."""
    run_action(ctx, lambda s: s.github().open_actions_page())


# =============================================================================
# Vault
# =============================================================================

@vault_app.command("add")
def vault_add(ctx: typer.Context) -> None:
    """Save a credential locally."""
    run_action(ctx, lambda s: VaultOperations(s.host, s.credentials()).add())


@vault_app.command("list")
def vault_list(ctx: typer.Context) -> None:
    """List saved credentials with masked values."""

    async def show(s: Services) -> None:
        VaultOperations(s.host, s.credentials()).show()

    run_action(ctx, show)


@vault_app.command("delete")
def vault_delete(ctx: typer.Context) -> None:
    """Delete a saved credential."""
    run_action(ctx, lambda s: VaultOperations(s.host, s.credentials()).delete())


# =============================================================================
# Config
# =============================================================================

@app.command()
def config() -> None:
    """Show current configuration."""
    settings = get_settings()

    console.print(Panel("[bold]Current Configuration[/bold]", border_style="blue"))

    console.print("\n[bold]GitHub:[/bold]")
    console.print(f"  Token:   {'✓ Set' if settings.get_github_token() else '✗ Not set'}")
    console.print(f"  API URL: {settings.github.api_url}")
    console.print(f"  Web URL: {settings.github.web_url}")

    console.print("\n[bold]Network:[/bold]")
    console.print(f"  Attempts: {settings.network.retry_count}")
    console.print(f"  Retry delay: {settings.network.retry_delay_ms} ms")
    console.print(f"  Request timeout: {settings.network.timeout_ms} ms")

    console.print("\n[bold]Git:[/bold]")
    console.print(f"  Executable: {settings.git.executable}")
    console.print(f"  Command timeout: {settings.git.command_timeout_ms} ms")

    console.print("\n[bold]Workspace:[/bold]")
    folders = settings.workspace.resolved_folders
    if folders:
        for folder in folders:
            console.print(f"  {folder}")
    else:
        console.print("  (current directory)")

    console.print("\n[bold]Storage:[/bold]")
    console.print(f"  Vault: {settings.storage.resolved_vault_path}")
    console.print(f"  Vault key: {'environment' if settings.vault_key else settings.storage.resolved_vault_key_path}")


if __name__ == "__main__":
    app()
