"""Single entry point for running units of work resiliently."""

from __future__ import annotations

from typing import Callable, Optional, TypeVar

from gitdeck.config import Settings, fresh_settings
from gitdeck.invocation.progress import CancellationToken, ProgressSurface
from gitdeck.invocation.retry import OperationClass, RetryOrchestrator, RetryPolicy, UnitOfWork

T = TypeVar("T")

SettingsLoader = Callable[[], Settings]


class Invoker:
    """Binds configuration, retry orchestration and the progress surface.

    The retry policy is rebuilt from a fresh settings load on every call.
    Calls with a title go through the progress surface; calls without one run
    the orchestrator directly.

    One Invoker serves one operator action. Its token is shared by every call
    that does not pass its own, so cancelling it stops all remaining steps.
    """

    def __init__(
        self,
        settings_loader: Optional[SettingsLoader] = None,
        orchestrator: Optional[RetryOrchestrator] = None,
        surface: Optional[ProgressSurface] = None,
        token: Optional[CancellationToken] = None,
    ):
        self.settings_loader = settings_loader or fresh_settings
        self.orchestrator = orchestrator or RetryOrchestrator()
        self.surface = surface
        self.token = token or CancellationToken()

    def settings(self) -> Settings:
        return self.settings_loader()

    def policy(self, operation: OperationClass = OperationClass.GIT) -> RetryPolicy:
        """Read the retry policy for an operation class from current config."""
        return RetryPolicy.from_settings(self.settings_loader(), operation)

    async def call(
        self,
        work: UnitOfWork[T],
        operation: OperationClass = OperationClass.GIT,
        title: Optional[str] = None,
        token: Optional[CancellationToken] = None,
    ) -> T:
        """Run a unit of work with retries.

        Args:
            work: Zero-argument coroutine function performing one attempt.
            operation: Which timeout knob applies.
            title: Status text; enables the progress surface when set.
            token: Cancellation token; defaults to the action's token.
        """
        return await self.run(work, self.policy(operation), title, token)

    async def run(
        self,
        work: UnitOfWork[T],
        policy: RetryPolicy,
        title: Optional[str] = None,
        token: Optional[CancellationToken] = None,
    ) -> T:
        """Run a unit of work under an already-read policy.

        Used when the unit of work itself needs the policy's timeout.
        """
        token = token or self.token
        if title and self.surface is not None:
            return await self.surface.run(title, work, policy, token)
        return await self.orchestrator.run(work, policy, token)
