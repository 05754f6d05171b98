"""GitHub Actions workflow runs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from gitdeck.errors import OperationFailure
from gitdeck.github.repository import GitHubRepository
from gitdeck.invocation import CancellationToken

logger = logging.getLogger(__name__)

RUNS_PAGE_SIZE = 30


@dataclass(frozen=True)
class WorkflowRun:
    id: int
    name: str
    run_number: Optional[int] = None
    status: str = ""
    conclusion: Optional[str] = None
    head_branch: str = ""
    created_at: str = ""

    @property
    def label(self) -> str:
        outcome = self.conclusion or self.status
        return f"#{self.run_number or self.id} {self.name} ({outcome})"


@dataclass
class DeletionReport:
    deleted: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.deleted + self.failed


class ActionsApi(GitHubRepository):
    """Workflow run endpoints."""

    async def list_runs(self, limit: int = RUNS_PAGE_SIZE) -> list[WorkflowRun]:
        response = await self._call(
            "GET", f"/actions/runs?per_page={limit}", title="Fetching workflow runs"
        )
        runs = (response.data or {}).get("workflow_runs", [])
        return [
            WorkflowRun(
                id=int(run["id"]),
                name=run.get("name") or run.get("display_title") or "workflow",
                run_number=run.get("run_number"),
                status=run.get("status", ""),
                conclusion=run.get("conclusion"),
                head_branch=run.get("head_branch") or "",
                created_at=run.get("created_at", ""),
            )
            for run in runs
        ]

    async def delete_run(
        self,
        run_id: int,
        title: Optional[str] = None,
        token: Optional[CancellationToken] = None,
    ) -> None:
        await self._call(
            "DELETE", f"/actions/runs/{run_id}", expected=(204,), title=title, token=token
        )

    async def delete_runs(
        self, runs: list[WorkflowRun], token: Optional[CancellationToken] = None
    ) -> DeletionReport:
        """Delete runs one by one, counting successes.

        A run that fails to delete is logged and counted; the rest continue.
        Cancellation, by default through the action's token, stops the batch
        before the next run.
        """
        token = token or self.invoker.token
        report = DeletionReport()
        for index, run in enumerate(runs, 1):
            token.raise_if_cancelled()
            try:
                await self.delete_run(run.id, title=f"Deleting run {index}/{len(runs)}", token=token)
                report.deleted += 1
            except OperationFailure as e:
                logger.warning("Failed to delete run %s: %s", run.id, e.message)
                report.failed += 1
        return report
