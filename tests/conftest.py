"""Pytest configuration and fixtures for gitdeck tests."""

import os
from pathlib import Path
from typing import Any, Generator, Optional, Sequence

import pytest

from gitdeck.config import Settings, reset_settings
from gitdeck.invocation import Invoker, RetryOrchestrator
from gitdeck.workspace import Choice


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeHost:
    """Scripted OperatorHost.

    Answers are consumed in order per prompt kind. Every prompt and
    notification is recorded for assertions.
    """

    def __init__(
        self,
        candidates: Sequence[Path] = (),
        active: Optional[Path] = None,
        choices: Sequence[Any] = (),
        many: Sequence[Any] = (),
        answers: Sequence[Optional[str]] = (),
        confirms: Sequence[bool] = (),
    ):
        self._candidates = list(candidates)
        self._active = active
        self.choices = list(choices)
        self.many = list(many)
        self.answers = list(answers)
        self.confirms = list(confirms)
        self.prompts: list[tuple[str, list[Choice]]] = []
        self.asked: list[str] = []
        self.messages: list[tuple[str, str]] = []
        self.tables: list[tuple[str, list[tuple]]] = []
        self.opened: list[str] = []

    def candidates(self) -> list[Path]:
        return list(self._candidates)

    def active_path(self) -> Optional[Path]:
        return self._active

    async def choose(self, prompt: str, choices: Sequence[Choice]) -> Optional[Any]:
        self.prompts.append((prompt, list(choices)))
        if not self.choices:
            return None
        answer = self.choices.pop(0)
        # An int picks by position, anything else is returned as the value
        if isinstance(answer, int) and not isinstance(answer, bool):
            return choices[answer].value
        return answer

    async def choose_many(self, prompt: str, choices: Sequence[Choice]) -> Optional[list[Any]]:
        self.prompts.append((prompt, list(choices)))
        if not self.many:
            return None
        indexes = self.many.pop(0)
        if indexes is None:
            return None
        return [choices[i].value for i in indexes]

    async def ask(self, prompt: str, default=None, password=False, validate=None) -> Optional[str]:
        self.asked.append(prompt)
        while self.answers:
            answer = self.answers.pop(0)
            error = validate(answer) if validate is not None and answer else None
            if error is None:
                return answer
            self.messages.append(("invalid", error))
        return None

    async def confirm(self, message: str, default: bool = False) -> bool:
        self.messages.append(("confirm", message))
        if not self.confirms:
            return False
        return self.confirms.pop(0)

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def warn(self, message: str) -> None:
        self.messages.append(("warn", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def table(self, title, columns, rows) -> None:
        self.tables.append((title, [tuple(r) for r in rows]))

    def open_url(self, url: str) -> None:
        self.opened.append(url)

    def said(self, kind: str) -> list[str]:
        return [text for k, text in self.messages if k == kind]


@pytest.fixture(autouse=True)
def clean_settings():
    """Reset the settings singleton around every test."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings() -> Settings:
    """Settings with fast retries and no delay."""
    return Settings(
        network={"retry_count": 3, "retry_delay_ms": 0, "timeout_ms": 2000},
        git={"command_timeout_ms": 5000},
        github_token="test-token",
    )


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def invoker(settings: Settings, recording_sleep: RecordingSleep) -> Invoker:
    """Invoker with a recording sleep and no progress surface."""
    return Invoker(
        settings_loader=lambda: settings,
        orchestrator=RetryOrchestrator(sleep=recording_sleep),
    )


@pytest.fixture
def make_host():
    """Factory for scripted hosts."""
    return FakeHost


@pytest.fixture
def git_repo(tmp_path: Path):
    """Create a throwaway git repository with one commit.

    Skips when git is not installed.
    """
    import shutil
    import subprocess

    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    repo = tmp_path / "repo"
    repo.mkdir()

    def git(*args: str) -> str:
        result = subprocess.run(
            ["git", *args], cwd=repo, capture_output=True, text=True, check=True
        )
        return result.stdout.strip()

    git("init", "-b", "main")
    git("config", "user.email", "test@example.com")
    git("config", "user.name", "Test User")
    git("config", "commit.gpgsign", "false")
    git("config", "tag.gpgsign", "false")
    (repo / "README.md").write_text("# Test\n")
    git("add", "README.md")
    git("commit", "-m", "Initial commit")
    return repo, git


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Clean environment variables for testing."""
    original = {}
    env_vars = [
        "GITHUB_TOKEN",
        "GH_TOKEN",
        "GITDECK_GITHUB_TOKEN",
        "GITDECK_VAULT_KEY",
    ]
    for var in env_vars:
        original[var] = os.environ.pop(var, None)

    reset_settings()

    yield

    for var, value in original.items():
        if value is not None:
            os.environ[var] = value
        else:
            os.environ.pop(var, None)
    reset_settings()


@pytest.fixture
def temp_config_file(tmp_path: Path) -> Path:
    """Create a temporary config file."""
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
github:
  token: yaml-token
  web_url: https://ghe.example.com

network:
  retry_count: 5
  retry_delay_ms: 250

workspace:
  folders:
    - ~/projects/app
    - ~/projects/lib
"""
    )
    return config_path
