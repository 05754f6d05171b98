"""Tests for target resolution."""

from pathlib import Path

import pytest

from gitdeck.errors import NoGitRepositoryError, NoWorkspaceError
from gitdeck.workspace import (
    FOLDER_ICON,
    REPO_ICON,
    Target,
    TargetCache,
    TargetInfo,
    TargetResolver,
)


class FakeProbe:
    """Probe answering from a fixed set of working copies."""

    def __init__(self, working_copies=(), names=None):
        self.working_copies = {Path(p).resolve() for p in working_copies}
        self.names = names or {}
        self.checked: list[Path] = []

    async def is_working_copy(self, target: Target) -> bool:
        self.checked.append(target.path)
        return target.path in self.working_copies

    async def describe(self, target: Target) -> TargetInfo:
        is_repo = target.path in self.working_copies
        return TargetInfo(
            target=target,
            is_working_copy=is_repo,
            display_name=self.names.get(target.path, target.name),
        )


@pytest.fixture
def folders(tmp_path):
    alpha = tmp_path / "alpha"
    beta = tmp_path / "beta"
    alpha.mkdir()
    beta.mkdir()
    return alpha.resolve(), beta.resolve()


class TestTarget:
    """Tests for Target and TargetInfo."""

    def test_path_is_absolute(self, tmp_path, monkeypatch):
        """Test relative paths are resolved."""
        monkeypatch.chdir(tmp_path)
        assert Target(Path(".")).path == tmp_path.resolve()

    def test_contains(self, folders):
        """Test containment of nested paths."""
        alpha, beta = folders
        target = Target(alpha)
        assert target.contains(alpha / "src" / "main.py")
        assert target.contains(alpha)
        assert not target.contains(beta)

    def test_info_label_icons(self, folders):
        """Test labels distinguish working copies from plain folders."""
        alpha, _ = folders
        repo = TargetInfo(Target(alpha), is_working_copy=True, display_name="alpha")
        plain = TargetInfo(Target(alpha), is_working_copy=False, display_name="alpha")
        assert repo.label == f"{REPO_ICON} alpha"
        assert plain.label == f"{FOLDER_ICON} alpha"

    def test_info_description_only_when_different(self, folders):
        """Test the repository name is shown only if it differs from the folder."""
        alpha, _ = folders
        assert TargetInfo(Target(alpha), True, "alpha").description is None
        assert TargetInfo(Target(alpha), True, "upstream-name").description == "upstream-name"


class TestTargetCache:
    """Tests for TargetCache."""

    def test_lookup_hit(self, folders):
        """Test a remembered target still present is returned."""
        cache = TargetCache()
        cache.remember(Target(folders[0]))
        assert cache.lookup([Target(f) for f in folders]) == Target(folders[0])

    def test_stale_entry_is_cleared(self, folders, tmp_path):
        """Test a remembered target no longer present is forgotten."""
        cache = TargetCache(remembered=Target(tmp_path / "gone"))
        assert cache.lookup([Target(f) for f in folders]) is None
        assert cache.remembered is None


class TestTargetResolver:
    """Tests for TargetResolver.resolve."""

    @pytest.mark.asyncio
    async def test_no_candidates(self, make_host):
        """Test an empty workspace raises NoWorkspaceError."""
        resolver = TargetResolver(host=make_host(), probe=FakeProbe())
        with pytest.raises(NoWorkspaceError):
            await resolver.resolve()

    @pytest.mark.asyncio
    async def test_single_candidate_not_working_copy(self, make_host, folders):
        """Test a lone candidate is returned even if it is not a working copy."""
        host = make_host(candidates=[folders[0]])
        probe = FakeProbe()
        resolver = TargetResolver(host=host, probe=probe)

        target = await resolver.resolve(require_working_copy=True)

        assert target == Target(folders[0])
        assert host.prompts == []
        assert probe.checked == []

    @pytest.mark.asyncio
    async def test_filter_leaves_one_choice(self, make_host, folders):
        """Test two candidates with one working copy present exactly one choice."""
        alpha, beta = folders
        host = make_host(candidates=[alpha, beta], choices=[0])
        resolver = TargetResolver(host=host, probe=FakeProbe(working_copies=[beta]))

        target = await resolver.resolve(require_working_copy=True)

        assert len(host.prompts) == 1
        _, choices = host.prompts[0]
        assert len(choices) == 1
        assert choices[0].value == Target(beta)
        assert choices[0].label.startswith(REPO_ICON)
        assert target == Target(beta)

    @pytest.mark.asyncio
    async def test_no_working_copies(self, make_host, folders):
        """Test filtering out every candidate raises NoGitRepositoryError."""
        host = make_host(candidates=list(folders))
        resolver = TargetResolver(host=host, probe=FakeProbe())

        with pytest.raises(NoGitRepositoryError):
            await resolver.resolve(require_working_copy=True)
        assert host.prompts == []

    @pytest.mark.asyncio
    async def test_without_filter_offers_all(self, make_host, folders):
        """Test plain folders are offered when no working copy is required."""
        host = make_host(candidates=list(folders), choices=[1])
        resolver = TargetResolver(host=host, probe=FakeProbe(working_copies=[folders[0]]))

        target = await resolver.resolve(require_working_copy=False)

        _, choices = host.prompts[0]
        assert [c.label.split(" ", 1)[0] for c in choices] == [REPO_ICON, FOLDER_ICON]
        assert target == Target(folders[1])

    @pytest.mark.asyncio
    async def test_dismissed_prompt(self, make_host, folders):
        """Test dismissing the pick list yields None."""
        host = make_host(candidates=list(folders))
        resolver = TargetResolver(host=host, probe=FakeProbe(working_copies=folders))

        assert await resolver.resolve() is None

    @pytest.mark.asyncio
    async def test_active_path_preferred(self, make_host, folders):
        """Test the candidate containing the active path wins without a prompt."""
        alpha, beta = folders
        host = make_host(candidates=[alpha, beta], active=beta / "src" / "app.py")
        resolver = TargetResolver(host=host, probe=FakeProbe(working_copies=folders))

        assert await resolver.resolve() == Target(beta)
        assert host.prompts == []

    @pytest.mark.asyncio
    async def test_active_path_must_satisfy_filter(self, make_host, folders):
        """Test an active candidate that is not a working copy falls through to the prompt."""
        alpha, beta = folders
        host = make_host(candidates=[alpha, beta], active=beta, choices=[0])
        resolver = TargetResolver(host=host, probe=FakeProbe(working_copies=[alpha]))

        assert await resolver.resolve() == Target(alpha)
        assert len(host.prompts) == 1

    @pytest.mark.asyncio
    async def test_nested_active_path_picks_deepest(self, make_host, tmp_path):
        """Test nested workspace folders resolve to the innermost match."""
        outer = tmp_path / "outer"
        inner = outer / "inner"
        inner.mkdir(parents=True)
        host = make_host(candidates=[outer, inner], active=inner / "file.txt")
        resolver = TargetResolver(host=host, probe=FakeProbe(working_copies=[outer, inner]))

        assert await resolver.resolve() == Target(inner)

    @pytest.mark.asyncio
    async def test_remembered_choice(self, make_host, folders):
        """Test a remembered choice skips the prompt on the next resolution."""
        host = make_host(candidates=list(folders), choices=[1])
        resolver = TargetResolver(host=host, probe=FakeProbe(working_copies=folders))

        first = await resolver.resolve(remember=True)
        second = await resolver.resolve(remember=True)

        assert first == second == Target(folders[1])
        assert len(host.prompts) == 1

    @pytest.mark.asyncio
    async def test_preseeded_cache(self, make_host, folders):
        """Test a resolver built with a pre-seeded cache uses it."""
        host = make_host(candidates=list(folders))
        cache = TargetCache(remembered=Target(folders[0]))
        resolver = TargetResolver(host=host, probe=FakeProbe(), cache=cache)

        assert await resolver.resolve(remember=True) == Target(folders[0])

    @pytest.mark.asyncio
    async def test_cache_ignored_without_remember(self, make_host, folders):
        """Test the cache is only consulted when asked to remember."""
        host = make_host(candidates=list(folders), choices=[1])
        cache = TargetCache(remembered=Target(folders[0]))
        resolver = TargetResolver(host=host, probe=FakeProbe(working_copies=folders), cache=cache)

        assert await resolver.resolve() == Target(folders[1])

    @pytest.mark.asyncio
    async def test_duplicate_candidates_collapse(self, make_host, folders):
        """Test the same directory listed twice counts as one candidate."""
        host = make_host(candidates=[folders[0], folders[0] / "."])
        resolver = TargetResolver(host=host, probe=FakeProbe())

        assert await resolver.resolve() == Target(folders[0])
