"""External command runners.

All hardware access on the Omega2 goes through the vendor command-line tools
(``fast-gpio``, ``i2cget``, ``i2cset``, ``stty``). This module defines the
:class:`ProcessRunner` protocol the board talks to, plus two implementations:

- :class:`SubprocessRunner`: runs real processes with asyncio / subprocess.
- :class:`SimulatedRunner`: logs commands instead of running them, for use
  off-target.
"""

from __future__ import annotations

import asyncio
import logging
import subprocess
from dataclasses import dataclass, field
from typing import Protocol, Sequence

from omega2_io.errors import ProcessFailureError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of a completed external command.

    Attributes:
        command: Command name.
        args: Arguments the command was run with.
        stdout: Captured standard output.
        stderr: Captured standard error.
        exit_code: Process exit status.
    """

    command: str
    args: tuple[str, ...]
    stdout: bytes = b""
    stderr: bytes = b""
    exit_code: int = 0

    @property
    def text(self) -> str:
        """Standard output decoded as UTF-8 with surrounding whitespace removed."""
        return self.stdout.decode("utf-8", errors="replace").strip()


class ProcessRunner(Protocol):
    """Protocol for running external commands.

    Implementations must raise :class:`ProcessFailureError` when the command
    cannot be started or exits with a non-zero status.
    """

    async def run(self, command: str, args: Sequence[str]) -> ProcessResult:
        """Run a command without blocking the event loop.

        Args:
            command: Executable name.
            args: Command arguments.

        Returns:
            The completed process result.
        """
        ...

    def run_sync(self, command: str, args: Sequence[str]) -> ProcessResult:
        """Run a command and block until it exits.

        Args:
            command: Executable name.
            args: Command arguments.

        Returns:
            The completed process result.
        """
        ...


class SubprocessRunner:
    """Runs commands as real child processes."""

    async def run(self, command: str, args: Sequence[str]) -> ProcessResult:
        argv = tuple(str(a) for a in args)
        logger.debug("run: %s %s", command, " ".join(argv))
        try:
            proc = await asyncio.create_subprocess_exec(
                command,
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ProcessFailureError(command, argv, reason=str(exc)) from exc

        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
            await proc.wait()
            raise
        exit_code = proc.returncode if proc.returncode is not None else -1
        if exit_code != 0:
            raise ProcessFailureError(command, argv, exit_code, stderr)
        return ProcessResult(command, argv, stdout, stderr, exit_code)

    def run_sync(self, command: str, args: Sequence[str]) -> ProcessResult:
        argv = tuple(str(a) for a in args)
        logger.debug("run_sync: %s %s", command, " ".join(argv))
        try:
            completed = subprocess.run(
                [command, *argv],
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            raise ProcessFailureError(command, argv, reason=str(exc)) from exc

        if completed.returncode != 0:
            raise ProcessFailureError(
                command, argv, completed.returncode, completed.stderr
            )
        return ProcessResult(
            command, argv, completed.stdout, completed.stderr, completed.returncode
        )


@dataclass
class SimulatedRunner:
    """Runner that prints commands instead of executing them.

    Every command succeeds with empty output. Issued command lines are kept
    in :attr:`history` in the order they were run.
    """

    history: list[str] = field(default_factory=list)

    def _record(self, command: str, args: Sequence[str]) -> ProcessResult:
        argv = tuple(str(a) for a in args)
        cmdline = " ".join([command, *argv])
        self.history.append(cmdline)
        logger.info("%s", cmdline)
        return ProcessResult(command, argv)

    async def run(self, command: str, args: Sequence[str]) -> ProcessResult:
        return self._record(command, args)

    def run_sync(self, command: str, args: Sequence[str]) -> ProcessResult:
        return self._record(command, args)
