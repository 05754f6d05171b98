"""Target resolution: which directory an operation runs against.

When the host exposes several candidate directories the resolver decides
between them using, in order: single-candidate shortcut, the remembered
choice, the directory of the active path, and finally an operator prompt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Generic, Optional, Protocol, Sequence, TypeVar

from gitdeck.errors import GitDeckError, NoGitRepositoryError, NoWorkspaceError
from gitdeck.git.utils import repo_name_from_url
from gitdeck.workspace.target import Target, TargetInfo

if TYPE_CHECKING:
    from gitdeck.git.executor import ProcessExecutor

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Short deadline for the local probes made while resolving
PROBE_TIMEOUT = 10.0


@dataclass
class Choice(Generic[T]):
    """One entry of a pick list shown to the operator."""

    label: str
    value: T
    description: Optional[str] = None
    detail: Optional[str] = None


class WorkspaceHost(Protocol):
    """What the resolver needs from its host environment."""

    def candidates(self) -> list[Path]:
        """Directories currently exposed as candidate targets."""
        ...

    def active_path(self) -> Optional[Path]:
        """Path the operator is currently looking at, if any."""
        ...

    async def choose(self, prompt: str, choices: Sequence[Choice[Any]]) -> Optional[Any]:
        """Single-choice prompt; None when dismissed."""
        ...


@dataclass
class TargetCache:
    """Session-scoped memory of the last operator-chosen Target."""

    remembered: Optional[Target] = None

    def remember(self, target: Target) -> None:
        self.remembered = target

    def clear(self) -> None:
        self.remembered = None

    def lookup(self, candidates: Sequence[Target]) -> Optional[Target]:
        """Return the remembered Target if it is still a candidate.

        A remembered Target that is no longer a candidate is forgotten.
        """
        if self.remembered is None:
            return None
        if self.remembered in candidates:
            return self.remembered
        logger.debug("Forgetting %s, no longer in the workspace", self.remembered)
        self.remembered = None
        return None


class TargetProbe:
    """Computes the derived facts of a Target by asking git."""

    def __init__(self, executor: "ProcessExecutor"):
        self.executor = executor

    async def is_working_copy(self, target: Target) -> bool:
        try:
            await self.executor.run(["rev-parse", "--git-dir"], target, timeout=PROBE_TIMEOUT)
        except GitDeckError:
            return False
        return True

    async def display_name(self, target: Target) -> str:
        try:
            url = await self.executor.run(
                ["remote", "get-url", "origin"], target, timeout=PROBE_TIMEOUT
            )
        except GitDeckError:
            return target.name
        return repo_name_from_url(url) or target.name

    async def describe(self, target: Target) -> TargetInfo:
        is_repo = await self.is_working_copy(target)
        name = await self.display_name(target) if is_repo else target.name
        return TargetInfo(target=target, is_working_copy=is_repo, display_name=name)


@dataclass
class TargetResolver:
    """Resolves zero or one Target for an operation.

    Attributes:
        host: Source of candidates, the active path and the pick list.
        probe: Computes working-copy status and display names.
        cache: Remembered choice for this session.
    """

    host: WorkspaceHost
    probe: TargetProbe
    cache: TargetCache = field(default_factory=TargetCache)

    def candidates(self) -> list[Target]:
        targets: list[Target] = []
        for path in self.host.candidates():
            target = Target(path)
            if target not in targets:
                targets.append(target)
        return targets

    def _active_candidate(self, candidates: Sequence[Target]) -> Optional[Target]:
        active = self.host.active_path()
        if active is None:
            return None
        # Deepest match wins for nested workspace folders
        matches = [c for c in candidates if c.contains(active)]
        if not matches:
            return None
        return max(matches, key=lambda c: len(c.path.parts))

    async def resolve(
        self,
        require_working_copy: bool = True,
        prompt: str = "Select a project",
        remember: bool = False,
    ) -> Optional[Target]:
        """Pick the Target an operation runs against.

        Args:
            require_working_copy: Only offer git working copies. Not enforced
                when the workspace has a single candidate.
            prompt: Text shown on the pick list.
            remember: Reuse and update the remembered Target.

        Returns:
            The Target, or None if the operator dismissed the prompt.

        Raises:
            NoWorkspaceError: No candidates at all.
            NoGitRepositoryError: Filtering left no candidates.
        """
        candidates = self.candidates()
        if not candidates:
            raise NoWorkspaceError()

        if len(candidates) == 1:
            return candidates[0]

        if remember:
            cached = self.cache.lookup(candidates)
            if cached is not None:
                logger.debug("Using remembered target %s", cached)
                return cached

        active = self._active_candidate(candidates)
        if active is not None:
            if not require_working_copy or await self.probe.is_working_copy(active):
                logger.debug("Using target of active path: %s", active)
                return active

        infos = [await self.probe.describe(c) for c in candidates]
        if require_working_copy:
            infos = [info for info in infos if info.is_working_copy]
            if not infos:
                raise NoGitRepositoryError()

        choices = [
            Choice(
                label=info.label,
                value=info.target,
                description=info.description,
                detail=str(info.target.path),
            )
            for info in infos
        ]
        selected = await self.host.choose(prompt, choices)
        if selected is None:
            logger.debug("Target selection dismissed")
            return None

        if remember:
            self.cache.remember(selected)
        return selected
