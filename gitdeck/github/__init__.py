"""GitHub REST API integration for gitdeck."""

from gitdeck.github.actions import ActionsApi, DeletionReport, WorkflowRun
from gitdeck.github.client import ApiResponse, GitHubClient
from gitdeck.github.remote import RepoRef, parse_github_url
from gitdeck.github.seal import seal_secret
from gitdeck.github.secrets import RepoSecret, SecretsApi, validate_secret_name

__all__ = [
    "ActionsApi",
    "DeletionReport",
    "WorkflowRun",
    "ApiResponse",
    "GitHubClient",
    "RepoRef",
    "parse_github_url",
    "seal_secret",
    "RepoSecret",
    "SecretsApi",
    "validate_secret_name",
]
