"""Fixed-delay retry orchestration for units of work.

A unit of work is a zero-argument coroutine function performing exactly one
git process run or one GitHub API exchange. It either returns a value or
raises an ``OperationFailure`` tagged Transient or Fatal at its origin.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

from gitdeck.errors import FailureKind, OperationCancelled, OperationFailure

if TYPE_CHECKING:
    from gitdeck.config.settings import Settings
    from gitdeck.invocation.progress import CancellationToken

logger = logging.getLogger(__name__)

T = TypeVar("T")

UnitOfWork = Callable[[], Awaitable[T]]
AttemptCallback = Callable[[int, int], None]
Sleeper = Callable[[float], Awaitable[Any]]

# Substrings that gate a retry of a failed attempt
RETRYABLE_MARKERS: tuple[str, ...] = ("timeout", "ssl", "network", "unable to access")

# Substrings in raw error text that mark a failure as transient at its origin
TRANSIENT_PATTERNS: tuple[str, ...] = (
    "timeout",
    "timed out",
    "ssl",
    "tls",
    "handshake",
    "network",
    "unable to access",
    "could not resolve host",
    "name or service not known",
    "temporary failure in name resolution",
    "connection refused",
    "connection reset",
    "host unreachable",
    "no route to host",
    "unreachable",
)


def classify_message(text: str) -> FailureKind:
    """Classify raw error text as transient or fatal.

    Args:
        text: Error text as produced by git or the transport layer.

    Returns:
        FailureKind.TRANSIENT for timeouts, TLS and connectivity problems,
        FailureKind.FATAL for everything else.
    """
    lowered = (text or "").lower()
    if any(pattern in lowered for pattern in TRANSIENT_PATTERNS):
        return FailureKind.TRANSIENT
    return FailureKind.FATAL


def is_retryable_message(text: str) -> bool:
    """Check whether a failure message passes the retry gate."""
    lowered = (text or "").lower()
    return any(marker in lowered for marker in RETRYABLE_MARKERS)


class OperationClass(str, Enum):
    """Kinds of units of work, each with its own timeout knob."""

    GIT = "git"
    HTTP = "http"


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry policy for one logical operation.

    Attributes:
        max_attempts: Upper bound on attempts, at least 1.
        delay: Fixed delay between attempts, in seconds.
        timeout: Per-attempt timeout, in seconds.
    """

    max_attempts: int = 3
    delay: float = 1.5
    timeout: float = 30.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("delay cannot be negative")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        operation: OperationClass = OperationClass.GIT,
    ) -> "RetryPolicy":
        """Build a policy from the current configuration."""
        if operation is OperationClass.HTTP:
            timeout_ms = settings.network.timeout_ms
        else:
            timeout_ms = settings.git.command_timeout_ms
        return cls(
            max_attempts=settings.network.retry_count,
            delay=settings.network.retry_delay_ms / 1000.0,
            timeout=timeout_ms / 1000.0,
        )


@dataclass(frozen=True)
class Success(Generic[T]):
    """A unit of work that produced a value."""

    output: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """A unit of work that failed after its retry budget."""

    kind: FailureKind
    message: str

    @property
    def ok(self) -> bool:
        return False


Outcome = Union[Success[T], Failure]


class RetryOrchestrator:
    """Runs a unit of work with a bounded number of fixed-delay attempts.

    Attempts are strictly sequential. A Fatal failure, or a failure whose
    message does not look retryable, is raised on first occurrence. A
    cancellation token, when given, is checked before every attempt and never
    interrupts an attempt in flight.

    Example:
        >>> orchestrator = RetryOrchestrator()
        >>> output = await orchestrator.run(lambda: executor.run(["push"], target), policy)
    """

    def __init__(self, sleep: Optional[Sleeper] = None):
        self._sleep = sleep or asyncio.sleep

    async def run(
        self,
        work: UnitOfWork[T],
        policy: RetryPolicy,
        token: Optional["CancellationToken"] = None,
        on_attempt: Optional[AttemptCallback] = None,
    ) -> T:
        """Run a unit of work under a retry policy.

        Args:
            work: Zero-argument coroutine function performing one attempt.
            policy: Retry policy for this invocation.
            token: Optional cooperative cancellation token.
            on_attempt: Called with (attempt, max_attempts) before each attempt.

        Returns:
            The value produced by the first successful attempt.

        Raises:
            OperationFailure: The last failure observed.
            OperationCancelled: If cancellation was requested before an attempt.
        """
        attempt = 0
        while True:
            attempt += 1
            if token is not None and token.cancelled:
                logger.debug("Cancelled before attempt %d/%d", attempt, policy.max_attempts)
                raise OperationCancelled()

            if on_attempt is not None:
                on_attempt(attempt, policy.max_attempts)

            try:
                return await work()
            except OperationFailure as e:
                if e.kind is FailureKind.FATAL or attempt >= policy.max_attempts:
                    logger.debug(
                        "Giving up after attempt %d/%d: %s",
                        attempt,
                        policy.max_attempts,
                        e.message,
                    )
                    raise
                if not is_retryable_message(e.message):
                    logger.debug("Failure not retryable: %s", e.message)
                    raise

                logger.warning(
                    "Attempt %d/%d failed: %s. Retrying in %.1fs",
                    attempt,
                    policy.max_attempts,
                    e.message,
                    policy.delay,
                )
                await self._sleep(policy.delay)

    async def outcome(
        self,
        work: UnitOfWork[T],
        policy: RetryPolicy,
        token: Optional["CancellationToken"] = None,
        on_attempt: Optional[AttemptCallback] = None,
    ) -> Outcome:
        """Run a unit of work and return a tagged outcome instead of raising.

        Cancellation still propagates as ``OperationCancelled``.
        """
        try:
            return Success(await self.run(work, policy, token, on_attempt))
        except OperationFailure as e:
            return Failure(kind=e.kind, message=e.message)
