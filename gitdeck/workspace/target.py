"""Resolved directories that operations execute against."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

REPO_ICON = "📦"
FOLDER_ICON = "📁"


@dataclass(frozen=True)
class Target:
    """An absolute directory an operation runs against."""

    path: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path).expanduser().resolve())

    @property
    def name(self) -> str:
        return self.path.name or str(self.path)

    def contains(self, other: Path | str) -> bool:
        """Check whether a path lies inside this target's directory."""
        candidate = Path(other).expanduser().resolve()
        return candidate == self.path or self.path in candidate.parents

    def __str__(self) -> str:
        return str(self.path)


@dataclass(frozen=True)
class TargetInfo:
    """Facts about a Target computed during one resolution.

    Attributes:
        target: The directory.
        is_working_copy: Whether git recognises the directory.
        display_name: Repository name from the origin URL, else the folder name.
    """

    target: Target
    is_working_copy: bool
    display_name: str

    @property
    def label(self) -> str:
        icon = REPO_ICON if self.is_working_copy else FOLDER_ICON
        return f"{icon} {self.target.name}"

    @property
    def description(self) -> Optional[str]:
        if self.display_name and self.display_name != self.target.name:
            return self.display_name
        return None
