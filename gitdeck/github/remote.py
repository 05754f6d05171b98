"""Mapping git remotes to GitHub repositories."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

DEFAULT_HOST = "github.com"


@dataclass(frozen=True)
class RepoRef:
    """A GitHub repository identified by owner and name."""

    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def api_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    def web_url(self, base: str = "https://github.com") -> str:
        return f"{base.rstrip('/')}/{self.owner}/{self.repo}"

    def secrets_url(self, base: str = "https://github.com") -> str:
        return f"{self.web_url(base)}/settings/secrets/actions"

    def actions_url(self, base: str = "https://github.com") -> str:
        return f"{self.web_url(base)}/actions"


def _patterns(host: str) -> tuple[re.Pattern, re.Pattern]:
    escaped = re.escape(host)
    https_form = re.compile(rf"{escaped}/([^/\s]+)/([^/\s]+?)(?:\.git)?/?$")
    ssh_form = re.compile(rf"{escaped}:([^/\s]+)/([^/\s]+?)(?:\.git)?/?$")
    return https_form, ssh_form


def parse_github_url(remote_url: str, host: str = DEFAULT_HOST) -> Optional[RepoRef]:
    """Resolve a remote URL to an owner/repo pair.

    Supports ``https://github.com/owner/repo(.git)`` and
    ``git@github.com:owner/repo(.git)``.

    Args:
        remote_url: URL as printed by ``git remote get-url``.
        host: Hostname to match.

    Returns:
        RepoRef, or None if the URL does not point at the host.
    """
    url = remote_url.strip()
    for pattern in _patterns(host):
        match = pattern.search(url)
        if match:
            return RepoRef(owner=match.group(1), repo=match.group(2))
    return None
