"""
External command execution for the CI pipeline.

This module is the single place where git and nix processes are spawned.
Callers get back an exit code and the full captured output, and decide for
themselves what that output means.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from ci_common.exceptions import CommandTimeoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Exit code and captured output of a finished command."""

    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class CommandRunner:
    """
    Runs external commands to completion and captures their output.

    Commands receive no stdin. If a timeout is configured, a command that
    runs longer is killed and CommandTimeoutError is raised, so a hung tool
    cannot stall the scheduler forever.
    """

    def __init__(self, timeout: float | None = None):
        """
        Initialize the runner.

        Args:
            timeout: Seconds before a command is killed, None for no limit
        """
        self.timeout = timeout

    async def run(
        self, args: Sequence[str], cwd: Path | str | None = None
    ) -> CommandResult:
        """
        Run a command and wait for it to exit.

        Args:
            args: Program and arguments (no shell involved)
            cwd: Working directory for the command

        Returns:
            CommandResult with the exit code and decoded stdout/stderr.
            Bytes that are not valid UTF-8 are kept as surrogate escapes.

        Raises:
            CommandTimeoutError: If the command exceeded the timeout
            asyncio.CancelledError: If the caller was cancelled; the command
                is killed first
        """
        logger.debug(f"Running {' '.join(args)} in {cwd or '.'}")

        process = await asyncio.create_subprocess_exec(
            *args,
            cwd=str(cwd) if cwd is not None else None,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            await self._kill(process)
            raise CommandTimeoutError(
                f"{args[0]} did not finish within {self.timeout}s"
            )
        except asyncio.CancelledError:
            logger.warning(f"Killing {args[0]} (pid {process.pid}), run was cancelled")
            await self._kill(process)
            raise

        return CommandResult(
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="surrogateescape"),
            stderr=stderr.decode("utf-8", errors="surrogateescape"),
        )

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        """Kill a process that is still running and reap it."""
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        await process.wait()
