"""I2C reads and writes through the i2c-tools commands.

Two calling conventions are accepted for both writes and reads, for
compatibility with Firmata-style callers:

    i2c_write(address, register, [byte, ...])
    i2c_write(address, [register, byte, ...])

    i2c_read(address, register, length, callback)
    i2c_read(address, length, callback)

Arguments are normalized into :class:`I2cWriteRequest` / :class:`I2cReadRequest`
at the API boundary; execution only ever sees the normalized request.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Mapping

from omega2_io.errors import ProcessFailureError
from omega2_io.events import ReplyCallback, ReplyTable, i2c_reply_event

if TYPE_CHECKING:
    from omega2_io.board import Board

logger = logging.getLogger(__name__)

I2CGET = "i2cget"
I2CSET = "i2cset"


def to_hex(value: int) -> str:
    """Format an integer as an unpadded lowercase hex literal, e.g. "0xff"."""
    return hex(value)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple, bytes, bytearray))


def _noop(_: list[int]) -> None:
    return None


@dataclass(frozen=True)
class I2cWriteRequest:
    """A normalized I2C write.

    Attributes:
        address: 7-bit device address.
        register: Command or register byte.
        data: Bytes to write to ``register``.
        single: True when the call was a single register/value write.
    """

    address: int
    register: int
    data: tuple[int, ...]
    single: bool = False

    @classmethod
    def from_args(
        cls, address: int, cmd_reg_or_data: Any, in_bytes: Any = None
    ) -> I2cWriteRequest:
        """Normalize either write calling convention.

        In the two-argument form a sequence is split into register and payload,
        and a one-byte payload is collapsed to a scalar. A scalar register with
        a scalar payload becomes a single register write.

        Raises:
            TypeError: If the three-argument form is given a sequence register.
        """
        if in_bytes is None:
            if _is_sequence(cmd_reg_or_data):
                items = list(cmd_reg_or_data)
                register = items[0] if items else 0
                payload: Any = items[1:]
                if len(payload) == 1:
                    payload = payload[0]
            else:
                register = cmd_reg_or_data
                payload = []
        else:
            if _is_sequence(cmd_reg_or_data):
                raise TypeError("register must be a single byte when data is given")
            register = cmd_reg_or_data
            payload = in_bytes

        if _is_sequence(payload):
            return cls(address, int(register), tuple(int(b) for b in payload))
        return cls(address, int(register), (int(payload),), single=True)


@dataclass(frozen=True)
class I2cReadRequest:
    """A normalized I2C read.

    Attributes:
        address: 7-bit device address.
        register: Register to read (0 when the caller gave none).
        length: Number of successful reads before a continuous read stops.
        continuous: Keep reading after the first reply.
        callback: Receives each reply as a list of byte values.
    """

    address: int
    register: int
    length: int
    continuous: bool
    callback: ReplyCallback

    @property
    def key(self) -> tuple[int, int]:
        """Correlation key for replies to this request."""
        return (self.address, self.register)

    @classmethod
    def from_args(
        cls,
        continuous: bool,
        address: int,
        register: Any,
        bytes_to_read: Any = None,
        callback: Callable[[list[int]], Any] | None = None,
    ) -> I2cReadRequest:
        """Normalize either read calling convention.

        When the third positional value is a callable (or absent), the call is
        the ``(address, length, callback)`` form: what arrived as ``register``
        is the length and the register defaults to 0.
        """
        if callable(bytes_to_read) or bytes_to_read is None:
            if callback is None and callable(bytes_to_read):
                callback = bytes_to_read
            bytes_to_read = register
            register = None

        length = int(bytes_to_read)
        if length < 0:
            raise ValueError(f"bytes to read must be >= 0, got {length}")
        return cls(
            address=address,
            register=int(register or 0),
            length=length,
            continuous=continuous,
            callback=callback if callable(callback) else _noop,
        )


def parse_i2cget_output(stdout: bytes) -> list[int]:
    """Convert i2cget output such as ``b"0x1f\\n"`` to byte values.

    Output that is not hex text is returned as its raw bytes.
    """
    try:
        return [int(token, 16) for token in stdout.split()]
    except ValueError:
        logger.warning("Unexpected i2cget output: %r", stdout)
        return list(stdout)


class I2cEngine:
    """I2C operations for one board.

    The poll delay is shared by every read on the board and changes only
    through :meth:`configure`.

    Args:
        board: Board owning the process runner and event hub.
    """

    def __init__(self, board: Board) -> None:
        self._board = board
        self._replies = ReplyTable()
        self._poll_delay = 0.0

    @property
    def poll_delay(self) -> float:
        """Delay before each read, in milliseconds."""
        return self._poll_delay

    @property
    def replies(self) -> ReplyTable:
        """Pending reply callbacks."""
        return self._replies

    def configure(self, options: float | Mapping[str, Any] | Any = None) -> None:
        """Set the poll delay.

        Args:
            options: A bus frequency in Hz, or a mapping (or object) with
                ``frequency`` and/or ``delay`` in milliseconds. A non-zero
                frequency wins over ``delay``. None resets the delay to 0.
        """
        delay = 0.0
        if isinstance(options, (int, float)) and not isinstance(options, bool):
            delay = 1000 / options if options else 0.0
        elif options is not None:
            if isinstance(options, Mapping):
                frequency = options.get("frequency")
                explicit = options.get("delay")
            else:
                frequency = getattr(options, "frequency", None)
                explicit = getattr(options, "delay", None)
            if frequency:
                delay = 1000 / frequency
            elif explicit:
                delay = float(explicit)
        self._poll_delay = delay
        logger.debug("I2C poll delay set to %s ms", delay)

    def _bus(self) -> str:
        return str(self._board.config.i2c_bus)

    def write(self, request: I2cWriteRequest) -> None:
        """Execute a normalized write.

        Each payload byte is written to the register with its own blocking
        ``i2cset`` call; the first failure stops the remaining bytes. Writes
        reach the bus in the order they were requested.
        """
        if not request.data:
            logger.debug("I2C write to %s with no data", to_hex(request.address))
        for byte in request.data:
            if not self.write_reg(request.address, request.register, byte):
                break

    def write_reg(self, address: int, register: int, value: int) -> bool:
        """Write one value to one register.

        Returns:
            False if ``i2cset`` failed; the failure goes to the ``error`` event.
        """
        result = self._board.run_sync(
            I2CSET,
            ["-y", self._bus(), to_hex(address), to_hex(register), to_hex(value)],
            address=address,
            register=register,
        )
        return result is not None

    def read(self, request: I2cReadRequest) -> None:
        """Start a normalized read in the background."""
        self._board.track(self._read_loop(request))

    async def _read_loop(self, request: I2cReadRequest) -> None:
        event = i2c_reply_event(request.address, request.register)
        remaining = request.length
        while True:
            await asyncio.sleep(self._poll_delay / 1000)
            self._replies.arm(request.key, request.callback)
            try:
                result = await self._board.runner.run(
                    I2CGET,
                    ["-y", self._bus(), to_hex(request.address), to_hex(request.register)],
                )
            except ProcessFailureError as exc:
                self._board.report_error(
                    exc.with_context(address=request.address, register=request.register)
                )
                if not request.continuous:
                    return
                continue

            data = parse_i2cget_output(result.stdout)
            self._board.events.emit(event, data)
            self._replies.resolve(request.key, data)

            remaining -= 1
            if not request.continuous or remaining <= 0:
                return
