"""Line-oriented helpers for git command output."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

PROTECTED_BRANCHES = ("main", "master")

_REMOTE_LINE = re.compile(r"^(\S+)\s+(\S+)\s+\(push\)$")
_REPO_NAME = re.compile(r"[/:]([^/:]+?)(?:\.git)?/?$")


@dataclass
class CommitEntry:
    """One line of `git log --oneline`."""

    hash: str
    subject: str

    def one_line(self) -> str:
        return f"{self.hash} {self.subject}"


@dataclass
class ReflogEntry:
    """One line of `git reflog --format=%h %gd %gs`."""

    hash: str
    ref: str
    action: str


def split_lines(output: str) -> list[str]:
    """Split command output into non-empty, stripped lines."""
    return [line.strip() for line in output.splitlines() if line.strip()]


def parse_remotes(output: str) -> dict[str, str]:
    """Parse `git remote -v` output.

    Args:
        output: Output from 'git remote -v'.

    Returns:
        Dictionary of remote names to push URLs, in listing order.
    """
    remotes: dict[str, str] = {}
    for line in split_lines(output):
        match = _REMOTE_LINE.match(line)
        if match:
            remotes[match.group(1)] = match.group(2)
    return remotes


def parse_remote_tags(output: str) -> list[str]:
    """Parse `git ls-remote --tags <remote>` output into tag names.

    Peeled entries (``^{}``) are skipped.
    """
    tags = []
    for line in split_lines(output):
        if "^{}" in line or "refs/tags/" not in line:
            continue
        name = line.split("refs/tags/", 1)[1]
        if name:
            tags.append(name)
    return tags


def parse_oneline_log(output: str) -> list[CommitEntry]:
    """Parse `git log --oneline` output."""
    commits = []
    for line in split_lines(output):
        hash_, _, subject = line.partition(" ")
        commits.append(CommitEntry(hash=hash_, subject=subject))
    return commits


def parse_reflog(output: str) -> list[ReflogEntry]:
    """Parse `git reflog --format="%h %gd %gs"` output."""
    entries = []
    for line in split_lines(output):
        parts = line.split(" ", 2)
        if len(parts) < 2:
            continue
        entries.append(ReflogEntry(
            hash=parts[0],
            ref=parts[1],
            action=parts[2] if len(parts) > 2 else "",
        ))
    return entries


def parse_merged_branches(output: str) -> list[str]:
    """Parse `git branch --merged`, excluding the current and protected branches."""
    branches = []
    for line in output.splitlines():
        name = line.strip()
        if not name or name.startswith("*") or name.startswith("+"):
            continue
        if name in PROTECTED_BRANCHES:
            continue
        branches.append(name)
    return branches


def repo_name_from_url(url: str) -> Optional[str]:
    """Extract the repository name from a remote URL.

    Works for both ``https://host/owner/repo.git`` and ``git@host:owner/repo``.
    """
    match = _REPO_NAME.search(url.strip())
    if match:
        return match.group(1)
    return None
