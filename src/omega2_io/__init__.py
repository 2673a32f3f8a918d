"""Onion Omega2 GPIO, I2C and serial I/O for asyncio.

The board drives the hardware through the Omega2 command-line tools
(``fast-gpio``, ``i2cget``/``i2cset``, ``stty``) and reports results through
callbacks and events.

Modules:
    board: The Board facade and its public API.
    mode: Pin mode transitions and direction queries.
    digital: Digital writes, PWM writes and polled reads.
    i2c: I2C reads and writes with both calling conventions.
    serial_port: UART channels with terminator-based message framing.
    events: Event hub and I2C reply correlation.
    process: External command runners.
    config: Board configuration and pin group tables.

Example:
    Blink the on-board LED::

        from omega2_io import Board

        async def main():
            async with Board() as board:
                board.digital_write(board.default_led, board.HIGH)
"""

from omega2_io.board import UNSUPPORTED_OPERATIONS, Board
from omega2_io.config import BoardConfig, load_config, load_pin_groups, parse_pin_groups
from omega2_io.errors import (
    ConfigError,
    Omega2Error,
    PinError,
    ProcessFailureError,
    SerialChannelError,
    UnsupportedOperationError,
)
from omega2_io.events import EventHub, ReplyTable, i2c_reply_event
from omega2_io.i2c import I2cReadRequest, I2cWriteRequest, to_hex
from omega2_io.pins import (
    HIGH,
    LOW,
    PinCapability,
    PinGroup,
    PinMode,
    PinState,
    build_capabilities,
)
from omega2_io.process import ProcessResult, ProcessRunner, SimulatedRunner, SubprocessRunner
from omega2_io.serial_port import SerialChannel
from omega2_io.timers import PeriodicTask

__all__ = [
    # Board
    "Board",
    "UNSUPPORTED_OPERATIONS",
    # Configuration
    "BoardConfig",
    "load_config",
    "load_pin_groups",
    "parse_pin_groups",
    # Errors
    "ConfigError",
    "Omega2Error",
    "PinError",
    "ProcessFailureError",
    "SerialChannelError",
    "UnsupportedOperationError",
    # Events
    "EventHub",
    "ReplyTable",
    "i2c_reply_event",
    # I2C
    "I2cReadRequest",
    "I2cWriteRequest",
    "to_hex",
    # Pins
    "HIGH",
    "LOW",
    "PinCapability",
    "PinGroup",
    "PinMode",
    "PinState",
    "build_capabilities",
    # Processes
    "ProcessResult",
    "ProcessRunner",
    "SimulatedRunner",
    "SubprocessRunner",
    # Serial
    "SerialChannel",
    # Timers
    "PeriodicTask",
]
