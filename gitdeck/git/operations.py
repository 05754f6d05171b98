"""Operator workflows built on git commands.

Each public coroutine is one operator action: it resolves a target, prompts
for whatever it needs and runs git through the invoker. Dismissing a prompt
ends the workflow silently. Failures propagate to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from gitdeck.errors import GitCommandError, OperationFailure
from gitdeck.git.executor import ProcessExecutor
from gitdeck.git.ignore import GITIGNORE_TEMPLATES, write_gitignore
from gitdeck.git.utils import (
    PROTECTED_BRANCHES,
    CommitEntry,
    parse_merged_branches,
    parse_oneline_log,
    parse_reflog,
    parse_remote_tags,
    parse_remotes,
    split_lines,
)
from gitdeck.invocation import Invoker, OperationClass
from gitdeck.ui.host import OperatorHost
from gitdeck.workspace import Choice, Target, TargetResolver

logger = logging.getLogger(__name__)

DEFAULT_PROMPT = "Select a git repository"
LOG_LIMIT = 20
REFLOG_LIMIT = 20
MAX_DROP = 10

RESET_MODES = (
    ("--soft", "Soft", "keep changes staged"),
    ("--mixed", "Mixed", "keep changes unstaged"),
    ("--hard", "Hard", "discard all changes"),
)

PUSH_REJECTION_MARKERS = ("[rejected]", "non-fast-forward", "fetch first")


def validate_ref_name(value: str) -> Optional[str]:
    """Reject names git would refuse or read as an option."""
    if not value.strip():
        return "Name cannot be empty"
    if value.startswith("-"):
        return "Name cannot start with '-'"
    if any(ch.isspace() for ch in value):
        return "Name cannot contain spaces"
    return None


def is_push_rejection(message: str) -> bool:
    """Whether git refused a push because the remote history diverged."""
    lowered = message.lower()
    return any(marker in lowered for marker in PUSH_REJECTION_MARKERS)


@dataclass
class SyncReport:
    """Per-remote results of a sync."""

    succeeded: list[str]
    failed: dict[str, str]

    @property
    def ok(self) -> bool:
        return not self.failed


class GitWorkflow:
    """Shared plumbing: target selection and git invocation."""

    def __init__(
        self,
        host: OperatorHost,
        resolver: TargetResolver,
        executor: ProcessExecutor,
        invoker: Invoker,
    ):
        self.host = host
        self.resolver = resolver
        self.executor = executor
        self.invoker = invoker

    async def select(
        self, require_working_copy: bool = True, prompt: str = DEFAULT_PROMPT
    ) -> Optional[Target]:
        return await self.resolver.resolve(require_working_copy, prompt)

    async def git(self, target: Target, *args: str, title: Optional[str] = None) -> str:
        """Run one git command as a retried unit of work.

        Commands given a title are shown on the progress surface.
        """
        policy = self.invoker.policy(OperationClass.GIT)

        async def attempt() -> str:
            return await self.executor.run(list(args), target, timeout=policy.timeout)

        return await self.invoker.run(attempt, policy, title=title)

    async def succeeds(self, target: Target, *args: str) -> bool:
        try:
            await self.executor.run(list(args), target)
        except GitCommandError:
            return False
        return True

    async def has_head(self, target: Target) -> bool:
        return await self.succeeds(target, "rev-parse", "HEAD")

    async def has_origin(self, target: Target) -> bool:
        return await self.succeeds(target, "remote", "get-url", "origin")

    async def recent_commits(self, target: Target) -> list[CommitEntry]:
        return parse_oneline_log(await self.git(target, "log", "--oneline", f"-{LOG_LIMIT}"))

    async def choose_reset_mode(self) -> Optional[str]:
        choices = [
            Choice(label=f"{label} ({flag})", value=flag, description=text)
            for flag, label, text in RESET_MODES
        ]
        return await self.host.choose("Reset mode", choices)


class TagOperations(GitWorkflow):
    """Create and delete tags locally and on origin."""

    async def create(self) -> None:
        target = await self.select()
        if target is None:
            return

        if not await self.has_head(target):
            self.host.error("No commits yet, cannot create a tag")
            return

        name = await self.host.ask("Tag name (e.g. v1.0.0)", validate=validate_ref_name)
        if not name:
            return
        message = await self.host.ask("Tag message (empty for a lightweight tag)")

        if message:
            await self.git(target, "tag", "-a", name, "-m", message)
        else:
            await self.git(target, "tag", name)

        if not await self.host.confirm("Push the tag to origin?", default=True):
            self.host.info(f"Created local tag {name}")
            return

        try:
            await self.git(target, "push", "origin", name, title=f"Pushing tag {name}")
        except OperationFailure as e:
            self.host.warn(f"Tag created, but push failed: {e.message}")
            return
        self.host.info(f"Created and pushed tag {name}")

    async def delete_latest(self) -> None:
        target = await self.select()
        if target is None:
            return

        try:
            latest = await self.git(target, "describe", "--tags", "--abbrev=0")
        except GitCommandError:
            latest = ""
        if not latest:
            self.host.warn("No tags found")
            return

        scope = await self.host.choose(
            f"Delete the latest tag {latest}?",
            [
                Choice(label="Delete local tag", value="local"),
                Choice(label="Delete local and remote tag", value="both"),
            ],
        )
        if scope is None:
            return

        await self.git(target, "tag", "-d", latest)
        if scope == "both":
            await self.git(
                target, "push", "origin", f":refs/tags/{latest}", title=f"Deleting remote tag {latest}"
            )
            self.host.info(f"Deleted local and remote tag {latest}")
        else:
            self.host.info(f"Deleted local tag {latest}")

    async def delete_local(self) -> None:
        target = await self.select()
        if target is None:
            return

        tags = split_lines(await self.git(target, "tag", "-l"))
        if not tags:
            self.host.warn("No local tags")
            return

        selected = await self.host.choose_many(
            "Local tags to delete", [Choice(label=tag, value=tag) for tag in tags]
        )
        if not selected:
            return

        for tag in selected:
            await self.git(target, "tag", "-d", tag)
        self.host.info(f"Deleted {len(selected)} local tag(s)")

    async def delete_remote(self) -> None:
        target = await self.select()
        if target is None:
            return

        output = await self.git(
            target, "ls-remote", "--tags", "origin", title="Fetching remote tags"
        )
        tags = parse_remote_tags(output)
        if not tags:
            self.host.warn("No remote tags")
            return

        selected = await self.host.choose_many(
            "Remote tags to delete", [Choice(label=tag, value=tag) for tag in tags]
        )
        if not selected:
            return
        if not await self.host.confirm(
            f"Delete {len(selected)} remote tag(s)? This cannot be undone."
        ):
            return

        for index, tag in enumerate(selected, 1):
            await self.git(
                target,
                "push",
                "origin",
                f":refs/tags/{tag}",
                title=f"Deleting remote tag {tag} ({index}/{len(selected)})",
            )
        self.host.info(f"Deleted {len(selected)} remote tag(s)")


class CommitOperations(GitWorkflow):
    """Reset, drop and recover commits."""

    async def _require_origin(self, target: Target) -> bool:
        if await self.has_origin(target):
            return True
        self.host.error("No remote named origin is configured")
        return False

    async def _choose_commit(self, target: Target, prompt: str) -> Optional[CommitEntry]:
        commits = await self.recent_commits(target)
        if not commits:
            self.host.warn("No commits")
            return None
        return await self.host.choose(
            prompt,
            [Choice(label=c.subject, value=c, description=c.hash) for c in commits],
        )

    async def _choose_count(self, target: Target) -> Optional[int]:
        try:
            total = int(await self.git(target, "rev-list", "--count", "HEAD"))
        except (GitCommandError, ValueError):
            total = 0
        if total == 0:
            self.host.warn("No commits")
            return None
        return await self.host.choose(
            f"{total} commit(s) on the current branch",
            [
                Choice(label=f"Drop the last {n} commit(s)", value=n)
                for n in range(1, min(total, MAX_DROP) + 1)
            ],
        )

    async def reset(self) -> None:
        target = await self.select()
        if target is None:
            return

        commit = await self._choose_commit(target, "Commit to reset to")
        if commit is None:
            return
        mode = await self.choose_reset_mode()
        if mode is None:
            return

        warning = " All uncommitted changes will be lost." if mode == "--hard" else ""
        if not await self.host.confirm(f"Reset to '{commit.subject}'?{warning}"):
            return

        await self.git(target, "reset", mode, commit.hash)
        self.host.info(f"Reset to {commit.one_line()}")

    async def reset_remote(self) -> None:
        target = await self.select()
        if target is None or not await self._require_origin(target):
            return

        commit = await self._choose_commit(target, "Commit to reset local and remote to")
        if commit is None:
            return
        if not await self.host.confirm(
            f"Dangerous: reset local and remote to '{commit.subject}' and force push?"
        ):
            return

        await self.git(target, "reset", "--hard", commit.hash)
        await self.git(target, "push", "--force", title="Force pushing")
        self.host.info(f"Local and remote reset to {commit.one_line()}")

    async def drop(self) -> None:
        target = await self.select()
        if target is None:
            return

        count = await self._choose_count(target)
        if count is None:
            return
        mode = await self.choose_reset_mode()
        if mode is None:
            return

        warning = " All changes will be lost." if mode == "--hard" else ""
        if not await self.host.confirm(f"Drop the last {count} local commit(s)?{warning}"):
            return

        await self.git(target, "reset", mode, f"HEAD~{count}")
        self.host.info(f"Dropped {count} local commit(s)")

    async def drop_remote(self) -> None:
        target = await self.select()
        if target is None or not await self._require_origin(target):
            return

        count = await self._choose_count(target)
        if count is None:
            return
        mode = await self.host.choose(
            "Local working tree",
            [
                Choice(label="Keep local changes", value="--soft", description="changes stay staged"),
                Choice(label="Drop local changes too", value="--hard", description="files are restored"),
            ],
        )
        if mode is None:
            return
        if not await self.host.confirm(
            f"Dangerous: drop the last {count} commit(s) from the remote and force push?"
        ):
            return

        await self.git(target, "reset", mode, f"HEAD~{count}")
        await self.git(target, "push", "--force", title="Force pushing")
        if mode == "--soft":
            self.host.info(f"Dropped {count} remote commit(s), local changes kept staged")
        else:
            self.host.info(f"Dropped {count} commit(s) locally and remotely")

    async def recover(self) -> None:
        target = await self.select()
        if target is None:
            return

        entries = parse_reflog(
            await self.git(target, "reflog", f"-{REFLOG_LIMIT}", "--format=%h %gd %gs")
        )
        if not entries:
            self.host.warn("Nothing to recover")
            return

        entry = await self.host.choose(
            "State to recover",
            [
                Choice(label=e.action, value=e, description=f"{e.hash} ({e.ref})")
                for e in entries
            ],
        )
        if entry is None:
            return
        if not await self.host.confirm(f"Recover to '{entry.action}'?"):
            return

        await self.git(target, "reset", "--hard", entry.hash)
        self.host.info(f"Recovered to {entry.hash} {entry.action}")


class BranchOperations(GitWorkflow):
    """Pull, push and branch cleanup."""

    async def pull(self) -> None:
        target = await self.select()
        if target is None:
            return
        output = await self.git(target, "pull", title="Pulling")
        self.host.info(output or "Pull complete")

    async def push(self, tags: bool = False) -> None:
        target = await self.select()
        if target is None:
            return
        if tags:
            await self.git(target, "push", "--follow-tags", title="Pushing with tags")
        else:
            await self.git(target, "push", title="Pushing")
        self.host.info("Push complete")

    async def clean_merged(self) -> None:
        target = await self.select()
        if target is None:
            return

        branches = parse_merged_branches(await self.git(target, "branch", "--merged"))
        if not branches:
            self.host.info("No merged branches to clean up")
            return

        selected = await self.host.choose_many(
            f"Merged branches to delete ({', '.join(PROTECTED_BRANCHES)} excluded)",
            [Choice(label=b, value=b) for b in branches],
        )
        if not selected:
            return

        for branch in selected:
            await self.git(target, "branch", "-d", branch)
        self.host.info(f"Deleted {len(selected)} local branch(es)")


class RemoteOperations(GitWorkflow):
    """Manage remotes and mirror to them."""

    async def remotes(self, target: Target) -> dict[str, str]:
        try:
            return parse_remotes(await self.git(target, "remote", "-v"))
        except GitCommandError:
            return {}

    async def _choose_remote(
        self, target: Target, prompt: str, exclude: Sequence[str] = ()
    ) -> Optional[tuple[str, str]]:
        remotes = {n: u for n, u in (await self.remotes(target)).items() if n not in exclude}
        if not remotes:
            return None
        return await self.host.choose(
            prompt,
            [Choice(label=name, value=(name, url), description=url) for name, url in remotes.items()],
        )

    async def show(self) -> None:
        target = await self.select()
        if target is None:
            return
        remotes = await self.remotes(target)
        if not remotes:
            self.host.info("No remotes configured")
            return
        self.host.table("Remotes", ["Name", "URL"], list(remotes.items()))

    async def add(self) -> None:
        target = await self.select()
        if target is None:
            return

        def validate(value: str) -> Optional[str]:
            if value == "origin":
                return "origin is already in use, choose another name"
            return validate_ref_name(value)

        name = await self.host.ask("Remote name (e.g. gitee, backup)", validate=validate)
        if not name:
            return
        url = await self.host.ask("Remote URL")
        if not url:
            return

        await self.git(target, "remote", "add", name, url)
        self.host.info(f"Added remote {name}")

    async def set_url(self) -> None:
        target = await self.select()
        if target is None:
            return

        selected = await self._choose_remote(target, "Remote to edit")
        if selected is None:
            if not await self.remotes(target):
                self.host.warn("No remotes to edit")
            return
        name, url = selected

        new_url = await self.host.ask(f"New URL for {name}", default=url)
        if not new_url:
            return
        await self.git(target, "remote", "set-url", name, new_url)
        self.host.info(f"Updated URL of {name}")

    async def remove(self) -> None:
        target = await self.select()
        if target is None:
            return

        remotes = await self.remotes(target)
        if not [name for name in remotes if name != "origin"]:
            self.host.warn("No removable remotes (origin cannot be removed)")
            return

        selected = await self._choose_remote(target, "Remote to remove", exclude=("origin",))
        if selected is None:
            return
        name = selected[0]
        if not await self.host.confirm(f"Remove remote {name}?"):
            return

        await self.git(target, "remote", "remove", name)
        self.host.info(f"Removed remote {name}")

    async def _sync_one(self, target: Target, remote: str, label: str) -> None:
        await self.git(target, "push", remote, "--all", title=f"Syncing branches to {label}")
        await self.git(target, "push", remote, "--tags", title=f"Syncing tags to {label}")

    async def sync_all(self, target: Target, remotes: Sequence[str]) -> SyncReport:
        """Push branches and tags to each remote, continuing past failures."""
        report = SyncReport(succeeded=[], failed={})
        for index, remote in enumerate(remotes, 1):
            try:
                await self._sync_one(target, remote, f"{remote} ({index}/{len(remotes)})")
            except OperationFailure as e:
                logger.warning("Sync to %s failed: %s", remote, e.message)
                report.failed[remote] = e.message
            else:
                report.succeeded.append(remote)
        return report

    async def sync(self) -> None:
        target = await self.select()
        if target is None:
            return

        remotes = await self.remotes(target)
        if not remotes:
            self.host.warn("No remotes configured")
            return

        if len(remotes) == 1:
            remote = next(iter(remotes))
        else:
            choices = [Choice(label="All remotes", value="*")]
            choices += [Choice(label=name, value=name, description=url) for name, url in remotes.items()]
            remote = await self.host.choose("Sync to", choices)
            if remote is None:
                return

        if remote != "*":
            await self._sync_one(target, remote, remote)
            self.host.info(f"Synced to {remote}")
            return

        report = await self.sync_all(target, list(remotes))
        if report.ok:
            self.host.info(f"Synced to all {len(report.succeeded)} remotes")
        else:
            self.host.warn(
                f"Sync finished: {len(report.succeeded)} succeeded, {len(report.failed)} failed"
            )


class RepositoryOperations(GitWorkflow):
    """Bootstrap repositories: init, publish and .gitignore."""

    async def _choose_templates(self, prompt: str) -> Optional[list[str]]:
        return await self.host.choose_many(
            prompt, [Choice(label=name, value=name) for name in GITIGNORE_TEMPLATES]
        )

    async def init(self) -> None:
        target = await self.select(False, "Select a project to initialise")
        if target is None:
            return
        await self._init(target)

    async def _init(self, target: Target) -> bool:
        if await self.resolver.probe.is_working_copy(target):
            self.host.info(f"{target.name} is already a git repository")
            return True

        branch = await self.host.choose(
            "Default branch", [Choice(label=name, value=name) for name in PROTECTED_BRANCHES]
        )
        if branch is None:
            return False

        await self.git(target, "init", "-b", branch)

        if await self.host.confirm("Create a .gitignore?", default=True):
            names = await self._choose_templates(".gitignore templates")
            if names:
                write_gitignore(target.path, names)

        self.host.info(f"Initialised git repository in {target}")
        return True

    async def publish(self) -> None:
        target = await self.select(False, "Select a project to publish")
        if target is None:
            return

        if not await self.resolver.probe.is_working_copy(target):
            if not await self.host.confirm(f"{target.name} is not a git repository. Initialise it?"):
                return
            if not await self._init(target):
                return

        if "origin" not in split_lines(await self.git(target, "remote")):
            url = await self.host.ask(
                "Remote URL (https://github.com/user/repo.git or git@github.com:user/repo.git)"
            )
            if not url:
                return
            await self.git(target, "remote", "add", "origin", url)
            self.host.info("Added remote origin")

        if not await self.has_head(target):
            message = await self.host.ask("Initial commit message", default="Initial commit")
            if not message:
                return
            await self.git(target, "add", "-A")
            await self.git(target, "commit", "-m", message)

        try:
            await self.git(target, "push", "-u", "origin", "HEAD", title="Pushing to origin")
        except GitCommandError as e:
            if e.is_transient or not is_push_rejection(e.message):
                raise
            logger.warning("Push rejected, retrying with --force: %s", e.message)
            await self.git(
                target, "push", "-u", "origin", "HEAD", "--force", title="Force pushing to origin"
            )
        self.host.info("Published")

    async def gitignore(self) -> None:
        target = await self.select(False, "Select a project for .gitignore")
        if target is None:
            return

        exists = (target.path / ".gitignore").exists()
        prompt = "Templates to append to .gitignore" if exists else ".gitignore templates"
        names = await self._choose_templates(prompt)
        if not names:
            return

        appended = write_gitignore(target.path, names)

        if await self.resolver.probe.is_working_copy(target):
            if await self.host.confirm("Untrack files that are now ignored? Files stay on disk."):
                await self.untrack_ignored(target)

        self.host.info("Appended to .gitignore" if appended else "Created .gitignore")

    async def untrack_ignored(self, target: Target) -> None:
        files = split_lines(
            await self.git(target, "ls-files", "-ci", "--exclude-standard")
        )
        if not files:
            self.host.info("No tracked files are ignored")
            return

        preview = "\n".join(files[:5]) + ("\n..." if len(files) > 5 else "")
        if not await self.host.confirm(
            f"Remove {len(files)} ignored file(s) from git and commit?\n{preview}"
        ):
            return

        for path in files:
            try:
                await self.git(target, "rm", "--cached", "--", path)
            except GitCommandError as e:
                logger.warning("Could not untrack %s: %s", path, e.message)
        await self.git(target, "commit", "-m", "Remove ignored files from tracking")
        self.host.info(f"Removed {len(files)} file(s) from git")
