"""Centralized exception hierarchy for gitdeck.

Every failure that can reach the operator is a ``GitDeckError``. Failures
produced by a unit of work (a git process run or a GitHub API exchange) are
``OperationFailure`` instances and carry a ``FailureKind`` tag that is fixed at
the point the failure is produced.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class FailureKind(str, Enum):
    """Retry eligibility of a failed unit of work."""

    TRANSIENT = "transient"
    FATAL = "fatal"


class GitDeckError(Exception):
    """Base exception for all gitdeck errors.

    Attributes:
        message: Human-readable error message.
        code: Optional error code for programmatic handling.
        details: Optional dictionary with additional error context.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(GitDeckError):
    """Raised when there's a configuration problem."""
    pass


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid."""

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            message=f"Invalid configuration for '{field}': {reason}",
            code="INVALID_CONFIG",
            details={"field": field, "value": str(value)[:100], "reason": reason},
        )


class MissingTokenError(ConfigurationError):
    """Raised when no GitHub token is configured."""

    def __init__(self):
        super().__init__(
            message="No GitHub token configured. Set GITHUB_TOKEN or github.token in config.yaml",
            code="MISSING_TOKEN",
        )


# =============================================================================
# Target Resolution Errors
# =============================================================================

class TargetError(GitDeckError):
    """Base exception for target resolution errors."""
    pass


class NoWorkspaceError(TargetError):
    """Raised when the host exposes no candidate directories."""

    def __init__(self):
        super().__init__(
            message="No workspace folder is open",
            code="NO_WORKSPACE",
        )


class NoGitRepositoryError(TargetError):
    """Raised when no candidate directory is a git working copy."""

    def __init__(self):
        super().__init__(
            message="No git repository found in the workspace",
            code="NO_GIT_REPOSITORY",
        )


# =============================================================================
# Operation Errors
# =============================================================================

class OperationFailure(GitDeckError):
    """Raised when a unit of work fails.

    Attributes:
        kind: Whether the failure may be retried.
    """

    def __init__(
        self,
        message: str,
        kind: FailureKind = FailureKind.FATAL,
        code: str = "OPERATION_FAILED",
        details: Optional[dict[str, Any]] = None,
    ):
        details = details or {}
        details["kind"] = kind.value
        super().__init__(message, code, details)
        self.kind = kind

    @property
    def is_transient(self) -> bool:
        return self.kind is FailureKind.TRANSIENT


class GitCommandError(OperationFailure):
    """Raised when a git command fails."""

    def __init__(
        self,
        message: str,
        kind: FailureKind = FailureKind.FATAL,
        returncode: Optional[int] = None,
        stderr: Optional[str] = None,
    ):
        details: dict[str, Any] = {}
        if returncode is not None:
            details["returncode"] = returncode
        if stderr:
            details["stderr"] = stderr[:500]  # Truncate for safety
        super().__init__(message, kind, "GIT_ERROR", details)
        self.returncode = returncode
        self.stderr = stderr


class RemoteCallError(OperationFailure):
    """Raised when a GitHub API exchange fails or returns an unexpected status."""

    def __init__(
        self,
        message: str,
        kind: FailureKind = FailureKind.FATAL,
        status_code: Optional[int] = None,
    ):
        details: dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, kind, "REMOTE_ERROR", details)
        self.status_code = status_code


class CredentialSealError(OperationFailure):
    """Raised when a secret cannot be encrypted for the remote API."""

    def __init__(self, reason: str):
        super().__init__(
            message=f"Encryption failed: {reason}",
            kind=FailureKind.FATAL,
            code="SEAL_ERROR",
        )


class OperationCancelled(GitDeckError):
    """Raised when the operator cancels a running operation.

    Cancellation is not an error and is never surfaced as one.
    """

    def __init__(self, message: str = "Cancelled"):
        super().__init__(message, "CANCELLED")


# =============================================================================
# Remote / Credential Errors
# =============================================================================

class RemoteUrlError(GitDeckError):
    """Raised when a remote URL does not point at a GitHub repository."""

    def __init__(self, url: str):
        super().__init__(
            message=f"Not a GitHub repository: {url}",
            code="NOT_GITHUB",
            details={"url": url},
        )


class CredentialStoreError(GitDeckError):
    """Raised when the local credential vault cannot be read or written."""

    def __init__(self, reason: str, original_error: Optional[Exception] = None):
        details = {"reason": reason}
        if original_error:
            details["original_error"] = str(original_error)
        super().__init__(
            message=f"Credential vault error: {reason}",
            code="VAULT_ERROR",
            details=details,
        )
