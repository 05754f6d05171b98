"""Terminal host: rich rendering with prompt_toolkit input."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Sequence

import typer
from prompt_toolkit import PromptSession
from rich.console import Console
from rich.table import Table
from rich.text import Text

from gitdeck.ui.host import InputValidator
from gitdeck.workspace import Choice

logger = logging.getLogger(__name__)

CANCEL_WORDS = ("q", "quit", "cancel")


def parse_selection(text: str, count: int) -> Optional[list[int]]:
    """Parse a multi-selection like ``1,3-5`` or ``all`` into zero-based indexes.

    Returns:
        Sorted indexes, or None if the text is not a valid selection.
    """
    text = text.strip().lower()
    if text in ("a", "all", "*"):
        return list(range(count))

    indexes: set[int] = set()
    for part in text.replace(" ", ",").split(","):
        if not part:
            continue
        start, _, end = part.partition("-")
        try:
            first = int(start)
            last = int(end) if end else first
        except ValueError:
            return None
        if first > last or first < 1 or last > count:
            return None
        indexes.update(range(first - 1, last))
    return sorted(indexes) if indexes else None


class ConsoleHost:
    """Interactive host backed by the terminal.

    Candidate targets are the configured workspace folders, or the current
    directory when none are configured. The active path defaults to the
    current directory.
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        folders: Optional[Sequence[Path]] = None,
        active: Optional[Path] = None,
        session: Optional[PromptSession] = None,
    ):
        self.console = console or Console()
        self.folders = list(folders) if folders else []
        self.active = active
        self.session = session or PromptSession()

    # -- WorkspaceHost ---------------------------------------------------

    def candidates(self) -> list[Path]:
        return self.folders or [Path.cwd()]

    def active_path(self) -> Optional[Path]:
        return self.active or Path.cwd()

    async def _input(self, text: str, password: bool = False, default: str = "") -> Optional[str]:
        try:
            return await self.session.prompt_async(text, is_password=password, default=default)
        except (EOFError, KeyboardInterrupt):
            return None

    def _render_choices(self, prompt: str, choices: Sequence[Choice[Any]]) -> None:
        table = Table(title=prompt, show_header=True, title_justify="left")
        table.add_column("#", style="dim", width=4)
        table.add_column("Name", style="cyan")
        table.add_column("Description", style="green")
        table.add_column("Detail", style="dim")
        for i, choice in enumerate(choices, 1):
            table.add_row(str(i), choice.label, choice.description or "", choice.detail or "")
        self.console.print()
        self.console.print(table)

    async def choose(self, prompt: str, choices: Sequence[Choice[Any]]) -> Optional[Any]:
        if not choices:
            return None
        self._render_choices(prompt, choices)
        self.console.print(Text("Enter a number, or 'q' to cancel", style="dim"))

        while True:
            response = await self._input("Select: ")
            if response is None:
                return None
            response = response.strip()
            if not response or response.lower() in CANCEL_WORDS:
                return None
            try:
                num = int(response)
            except ValueError:
                self.console.print(f"[red]Not a number: {response}[/red]")
                continue
            if 1 <= num <= len(choices):
                return choices[num - 1].value
            self.console.print(f"[red]Invalid number: {num}[/red]")

    # -- OperatorHost ----------------------------------------------------

    async def choose_many(
        self, prompt: str, choices: Sequence[Choice[Any]]
    ) -> Optional[list[Any]]:
        if not choices:
            return None
        self._render_choices(prompt, choices)
        self.console.print(Text("Enter numbers (1,3-5) or 'all', 'q' to cancel", style="dim"))

        while True:
            response = await self._input("Select: ")
            if response is None:
                return None
            response = response.strip()
            if not response or response.lower() in CANCEL_WORDS:
                return None
            indexes = parse_selection(response, len(choices))
            if indexes is None:
                self.console.print(f"[red]Invalid selection: {response}[/red]")
                continue
            return [choices[i].value for i in indexes]

    async def ask(
        self,
        prompt: str,
        default: Optional[str] = None,
        password: bool = False,
        validate: Optional[InputValidator] = None,
    ) -> Optional[str]:
        label = f"{prompt}: "
        while True:
            response = await self._input(label, password=password, default=default or "")
            if response is None:
                return None
            response = response.strip()
            if not response:
                return None
            if validate is not None:
                problem = validate(response)
                if problem:
                    self.console.print(f"[red]{problem}[/red]")
                    continue
            return response

    async def confirm(self, message: str, default: bool = False) -> bool:
        hint = "[Y/n]" if default else "[y/N]"
        response = await self._input(f"{message} {hint} ")
        if response is None:
            return False
        if not response.strip():
            return default
        return response.strip().lower() in ("y", "yes")

    def info(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def warn(self, message: str) -> None:
        self.console.print(f"[yellow]![/yellow] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}")

    def table(self, title: str, columns: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        table = Table(title=title, show_header=True, title_justify="left")
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*row)
        self.console.print(table)

    def open_url(self, url: str) -> None:
        self.console.print(f"Opening [cyan]{url}[/cyan]")
        typer.launch(url)
