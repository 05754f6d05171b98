"""Git integration for gitdeck.

This package runs git commands against a workspace target and parses
their output. Higher-level operations live in ``gitdeck.git.operations``.
"""

from gitdeck.git.utils import (
    PROTECTED_BRANCHES,
    CommitEntry,
    ReflogEntry,
    parse_merged_branches,
    parse_oneline_log,
    parse_reflog,
    parse_remote_tags,
    parse_remotes,
    repo_name_from_url,
)
from gitdeck.git.executor import TIMEOUT_MESSAGE, ProcessExecutor

__all__ = [
    # Executor
    "ProcessExecutor",
    "TIMEOUT_MESSAGE",
    # Parsing
    "PROTECTED_BRANCHES",
    "CommitEntry",
    "ReflogEntry",
    "parse_merged_branches",
    "parse_oneline_log",
    "parse_reflog",
    "parse_remote_tags",
    "parse_remotes",
    "repo_name_from_url",
]
