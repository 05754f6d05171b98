"""Process executor for git commands.

Commands are argument vectors passed straight to the process launcher, never
through a shell, so tag names, branch names and commit messages need no
quoting.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Callable, Optional, Sequence

from gitdeck.config import Settings
from gitdeck.errors import FailureKind, GitCommandError
from gitdeck.invocation.retry import classify_message
from gitdeck.workspace.target import Target

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "operation timed out, check network connectivity"


def _format_command(cmd: Sequence[str], max_length: int = 120) -> str:
    """Format a command for logging, truncated."""
    text = " ".join(cmd)
    if len(text) > max_length:
        return text[:max_length] + "..."
    return text


class ProcessExecutor:
    """Runs one git command against one Target with a bounded deadline.

    Example:
        >>> executor = ProcessExecutor(settings_loader=fresh_settings)
        >>> head = await executor.run(["rev-parse", "HEAD"], target)
    """

    def __init__(
        self,
        settings_loader: Optional[Callable[[], Settings]] = None,
        executable: Optional[str] = None,
    ):
        """Initialize the executor.

        Args:
            settings_loader: Source of the default timeout and executable,
                called on every run.
            executable: Program to run instead of the configured git.
        """
        self.settings_loader = settings_loader or Settings
        self.executable = executable

    def _resolve(self, timeout: Optional[float]) -> tuple[str, float]:
        settings = self.settings_loader()
        executable = self.executable or settings.git.executable
        if timeout is None:
            timeout = settings.git.command_timeout_ms / 1000.0
        return executable, timeout

    async def run(
        self,
        args: Sequence[str],
        target: Target | Path | str,
        timeout: Optional[float] = None,
    ) -> str:
        """Run a command in the target directory.

        Args:
            args: Arguments after the executable, e.g. ["tag", "-d", "v1.0"].
            target: Directory to run in.
            timeout: Timeout in seconds; defaults to the configured git timeout.

        Returns:
            Trimmed standard output.

        Raises:
            GitCommandError: Transient on timeout, classified from stderr on
                non-zero exit, Fatal when the process cannot be started.
        """
        executable, timeout = self._resolve(timeout)
        cwd = target.path if isinstance(target, Target) else Path(target)
        cmd = [executable, *args]

        logger.debug("Running in %s: %s", cwd, _format_command(cmd))

        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(cwd),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except OSError as e:
            logger.error("Could not start %s: %s", executable, e)
            raise GitCommandError(
                f"Could not start {executable}: {e}",
                kind=FailureKind.FATAL,
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            logger.warning("Command timed out after %.1fs: %s", timeout, _format_command(cmd))
            raise GitCommandError(TIMEOUT_MESSAGE, kind=FailureKind.TRANSIENT)

        out_text = stdout.decode("utf-8", errors="replace")
        err_text = stderr.decode("utf-8", errors="replace")

        if process.returncode != 0:
            message = (
                err_text.strip()
                or out_text.strip()
                or f"{executable} exited with code {process.returncode}"
            )
            kind = classify_message(message)
            logger.debug("Command failed (%s, exit %d): %s", kind.value, process.returncode, message)
            raise GitCommandError(
                message,
                kind=kind,
                returncode=process.returncode,
                stderr=err_text,
            )

        return out_text.strip()
