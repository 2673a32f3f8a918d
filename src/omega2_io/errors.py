"""Exception types for omega2-io.

All omega2-io exceptions inherit from Omega2Error, allowing consumers to catch
every library-specific error with a single except clause.

Exception hierarchy:
    Omega2Error (base)
    +-- UnsupportedOperationError: Operations the Omega2 cannot perform
    +-- ProcessFailureError: External command failed to spawn or exited non-zero
    +-- PinError: Unknown pin index
    +-- SerialChannelError: Serial channel misuse
    +-- ConfigError: Invalid configuration or pin group table

Only UnsupportedOperationError, PinError, SerialChannelError and ConfigError are
raised synchronously. ProcessFailureError is delivered through the board's
``error`` event, because the call that started the command has already returned.
"""

from __future__ import annotations

from typing import Any, Sequence


class Omega2Error(Exception):
    """Base exception for all omega2-io errors."""


class UnsupportedOperationError(Omega2Error):
    """Raised when an operation the Omega2 does not support is called.

    Servo, stepper, one-wire, pulse I/O and analog input all fall in this
    category.
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} is not yet implemented.")


class ProcessFailureError(Omega2Error):
    """Raised when an external command fails.

    Attributes:
        command: Name of the command that was run.
        args: Arguments passed to the command.
        exit_code: Process exit status, or None if the process never started.
        stderr: Captured standard error output.
        context: Pin or bus context the command was issued for.
    """

    def __init__(
        self,
        command: str,
        args: Sequence[str],
        exit_code: int | None = None,
        stderr: bytes = b"",
        reason: str | None = None,
    ) -> None:
        self.command = command
        self.args_list = tuple(args)
        self.exit_code = exit_code
        self.stderr = stderr
        self.context: dict[str, Any] = {}
        cmdline = " ".join([command, *self.args_list])
        if reason is None:
            detail = stderr.decode(errors="replace").strip()
            reason = f"exit status {exit_code}" + (f": {detail}" if detail else "")
        super().__init__(f"'{cmdline}' failed ({reason})")

    def with_context(self, **context: Any) -> ProcessFailureError:
        """Attach pin or address context and return self."""
        self.context.update(context)
        return self


class PinError(Omega2Error):
    """Raised when a pin index does not exist on the board."""


class SerialChannelError(Omega2Error):
    """Raised when a serial operation targets a channel that is not open."""


class ConfigError(Omega2Error):
    """Raised for invalid board configuration or pin group definitions."""
