"""Resilient invocation layer for gitdeck.

Every git command and GitHub API call passes through this package: fixed-delay
retries gated by failure classification, cooperative cancellation and a
visible progress status.
"""

from gitdeck.invocation.invoker import Invoker
from gitdeck.invocation.progress import (
    CancellationToken,
    OperationState,
    ProgressSurface,
    cancel_on_interrupt,
)
from gitdeck.invocation.retry import (
    Failure,
    OperationClass,
    Outcome,
    RetryOrchestrator,
    RetryPolicy,
    Success,
    classify_message,
    is_retryable_message,
)

__all__ = [
    "Invoker",
    "CancellationToken",
    "OperationState",
    "ProgressSurface",
    "cancel_on_interrupt",
    "Failure",
    "OperationClass",
    "Outcome",
    "RetryOrchestrator",
    "RetryPolicy",
    "Success",
    "classify_message",
    "is_retryable_message",
]
