"""Cancellable progress surface around retried units of work."""

from __future__ import annotations

import asyncio
import logging
import signal
from contextlib import contextmanager
from enum import Enum
from typing import Callable, Iterator, Optional, TypeVar

from rich.console import Console
from rich.status import Status

from gitdeck.errors import OperationCancelled, OperationFailure
from gitdeck.invocation.retry import RetryOrchestrator, RetryPolicy, UnitOfWork

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """Cooperative cancellation flag.

    Checked before each attempt; an attempt already in flight always runs to
    completion or to its own timeout.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Request cancellation. Idempotent."""
        if self._cancelled:
            return
        self._cancelled = True
        for callback in self._callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Register a callback invoked once when cancellation is requested."""
        self._callbacks.append(callback)

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelled()


@contextmanager
def cancel_on_interrupt(token: CancellationToken) -> Iterator[bool]:
    """Bind Ctrl+C to a token for the duration of an operator action.

    Must be entered while an event loop is running. Yields False when the
    platform or thread has no signal support, in which case Ctrl+C keeps its
    default behaviour.
    """
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
        bound = True
    except (NotImplementedError, RuntimeError, ValueError):
        logger.debug("Ctrl+C not bound to the cancellation token")
        bound = False
    try:
        yield bound
    finally:
        if bound:
            loop.remove_signal_handler(signal.SIGINT)


class OperationState(str, Enum):
    """Lifecycle of one progress-wrapped invocation."""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ProgressSurface:
    """Shows a status line while a retried unit of work runs.

    The token passed in is shared by every unit of work of one operator
    action; once it is cancelled no further attempt starts.
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        orchestrator: Optional[RetryOrchestrator] = None,
    ):
        self.console = console or Console(stderr=True)
        self.orchestrator = orchestrator or RetryOrchestrator()
        self.state = OperationState.IDLE
        self.history: list[OperationState] = [OperationState.IDLE]

    def _transition(self, state: OperationState) -> None:
        self.state = state
        self.history.append(state)

    @staticmethod
    def describe(title: str, attempt: int, max_attempts: int) -> str:
        """Format the status text for an attempt."""
        if attempt <= 1:
            return title
        return f"{title} (attempt {attempt}/{max_attempts})"

    async def run(
        self,
        title: str,
        work: UnitOfWork[T],
        policy: RetryPolicy,
        token: Optional[CancellationToken] = None,
    ) -> T:
        """Run a unit of work under a retry policy with a visible status.

        Args:
            title: Text shown while the operation runs.
            work: Zero-argument coroutine function performing one attempt.
            policy: Retry policy for this invocation.
            token: Cancellation token; a fresh one is created if omitted.

        Returns:
            The value produced by the successful attempt.

        Raises:
            OperationFailure: The last failure observed.
            OperationCancelled: If the operator cancelled between attempts.
        """
        token = token or CancellationToken()
        self.state = OperationState.IDLE
        self.history = [OperationState.IDLE]
        status: Status = self.console.status(title)

        def on_attempt(attempt: int, max_attempts: int) -> None:
            self._transition(OperationState.ATTEMPTING)
            status.update(self.describe(title, attempt, max_attempts))

        try:
            with status:
                result = await self.orchestrator.run(work, policy, token, on_attempt)
        except OperationCancelled:
            self._transition(OperationState.CANCELLED)
            logger.info("%s cancelled", title)
            raise
        except OperationFailure:
            self._transition(OperationState.FAILED)
            raise

        self._transition(OperationState.SUCCEEDED)
        return result
