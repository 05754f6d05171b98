"""What operator workflows need from their host environment."""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol, Sequence

from gitdeck.workspace import Choice, WorkspaceHost

# Returns an error message for invalid input, None when valid
InputValidator = Callable[[str], Optional[str]]


class OperatorHost(WorkspaceHost, Protocol):
    """Prompts, pick lists and notifications.

    Every prompt returns None when the operator dismisses it.
    """

    async def choose_many(
        self, prompt: str, choices: Sequence[Choice[Any]]
    ) -> Optional[list[Any]]:
        ...

    async def ask(
        self,
        prompt: str,
        default: Optional[str] = None,
        password: bool = False,
        validate: Optional[InputValidator] = None,
    ) -> Optional[str]:
        ...

    async def confirm(self, message: str, default: bool = False) -> bool:
        ...

    def info(self, message: str) -> None:
        ...

    def warn(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...

    def table(self, title: str, columns: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        ...

    def open_url(self, url: str) -> None:
        ...
