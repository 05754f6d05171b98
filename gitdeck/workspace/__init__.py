"""Workspace targets for gitdeck.

This package decides which local directory an operation runs against when
several are available.
"""

from gitdeck.workspace.resolver import (
    Choice,
    TargetCache,
    TargetProbe,
    TargetResolver,
    WorkspaceHost,
)
from gitdeck.workspace.target import FOLDER_ICON, REPO_ICON, Target, TargetInfo

__all__ = [
    "Choice",
    "TargetCache",
    "TargetProbe",
    "TargetResolver",
    "WorkspaceHost",
    "Target",
    "TargetInfo",
    "REPO_ICON",
    "FOLDER_ICON",
]
