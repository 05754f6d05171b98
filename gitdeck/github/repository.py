"""Retried GitHub API calls scoped to one repository."""

from __future__ import annotations

import logging
from typing import Any, Optional

from gitdeck.github.client import ApiResponse, GitHubClient
from gitdeck.github.remote import RepoRef
from gitdeck.invocation import CancellationToken, Invoker, OperationClass

logger = logging.getLogger(__name__)


class GitHubRepository:
    """Base for repository-scoped API groups.

    Each call is one unit of work retried by the invoker. Statuses outside
    ``expected`` become RemoteCallErrors inside the attempt, so 5xx responses
    are retried like transport failures and 4xx responses stop immediately.
    """

    def __init__(self, client: GitHubClient, repo: RepoRef, invoker: Invoker):
        self.client = client
        self.repo = repo
        self.invoker = invoker

    async def _call(
        self,
        method: str,
        path: str,
        body: Optional[dict[str, Any]] = None,
        expected: tuple[int, ...] = (200,),
        title: Optional[str] = None,
        token: Optional[CancellationToken] = None,
    ) -> ApiResponse:
        policy = self.invoker.policy(OperationClass.HTTP)
        url = f"{self.repo.api_path}{path}"

        async def attempt() -> ApiResponse:
            response = await self.client.request(method, url, body=body, timeout=policy.timeout)
            return response.raise_for_status(*expected)

        return await self.invoker.run(attempt, policy, title=title, token=token)
