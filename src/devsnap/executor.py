"""Command execution on the local machine."""

from __future__ import annotations

import asyncio
import shlex
from collections.abc import Sequence
from typing import Protocol

from devsnap.models import CommandResult

__all__ = [
    "Executor",
    "LocalExecutor",
]


class Executor(Protocol):
    """Protocol for command execution.

    The production adapter only ever talks to the machine it runs on, but
    going through this protocol keeps it testable with a stub executor.
    """

    async def run_command(
        self,
        cmd: str | Sequence[str],
        timeout: float | None = None,
    ) -> CommandResult:
        """Run a command and wait for completion."""
        ...


class LocalExecutor:
    """Executes commands via async subprocess."""

    def __init__(self, sudo: bool = False) -> None:
        """Initialize executor.

        Args:
            sudo: Prefix every command with non-interactive sudo ("sudo -n"), so
                a missing credential fails fast instead of prompting.
        """
        self._sudo = sudo

    def _argv(self, cmd: str | Sequence[str]) -> list[str]:
        argv = shlex.split(cmd) if isinstance(cmd, str) else list(cmd)
        if self._sudo:
            argv = ["sudo", "-n", *argv]
        return argv

    async def run_command(
        self,
        cmd: str | Sequence[str],
        timeout: float | None = None,
    ) -> CommandResult:
        """Run a command and wait for completion.

        Args:
            cmd: Command line, either a string (split with shlex) or an argv list
            timeout: Optional timeout in seconds

        Returns:
            CommandResult with exit code, stdout, and stderr

        Output is decoded as UTF-8 with undecodable bytes replaced by U+FFFD.
        If the command times out or the awaiting task is cancelled, the
        process is terminated and reaped before the error propagates.

        Raises:
            TimeoutError: If the command does not finish within timeout
            asyncio.CancelledError: If the awaiting task is cancelled
        """
        proc = await asyncio.create_subprocess_exec(
            *self._argv(cmd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(),
                timeout=timeout,
            )
        except (TimeoutError, asyncio.CancelledError):
            if proc.returncode is None:
                proc.terminate()
                await proc.wait()
            raise
        return CommandResult(
            exit_code=proc.returncode or 0,
            stdout=stdout.decode(errors="replace") if stdout else "",
            stderr=stderr.decode(errors="replace") if stderr else "",
        )
