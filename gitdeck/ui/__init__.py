"""Terminal host for gitdeck: pick lists, prompts and notifications."""

from gitdeck.ui.console import ConsoleHost, parse_selection
from gitdeck.ui.host import InputValidator, OperatorHost

__all__ = ["ConsoleHost", "InputValidator", "OperatorHost", "parse_selection"]
