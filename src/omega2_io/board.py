"""Omega2 board I/O.

:class:`Board` is the entry point. It owns the pin state, the I2C poll delay,
the serial channels and the event hub, and hands them to the mode, digital,
I2C and serial engines. Hardware calls return the board immediately and run
their commands in the background; results arrive through callbacks and
events.

Example:
    async def main() -> None:
        async with Board() as board:
            board.once("ready", lambda: print("ready"))
            board.digital_write(board.default_led, board.HIGH)
            board.digital_read(2, lambda value: print("pin 2 =", value))
            await asyncio.sleep(5)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, Mapping, TypeVar

from omega2_io.config import BoardConfig, load_pin_groups
from omega2_io.digital import DigitalEngine, ValueHandler
from omega2_io.errors import Omega2Error, ProcessFailureError, UnsupportedOperationError
from omega2_io.events import CONNECT, ERROR, READY, EventHub, Listener
from omega2_io.i2c import I2cEngine, I2cReadRequest, I2cWriteRequest
from omega2_io.mode import ModeController
from omega2_io.pins import HIGH, LOW, PinGroup, PinMode, PinStateStore, build_capabilities
from omega2_io.process import ProcessResult, ProcessRunner, SimulatedRunner, SubprocessRunner
from omega2_io.serial_port import DeviceOpener, SerialChannel, SerialEngine, open_device

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Board:
    """An Onion Omega2 driven through its command-line I/O tools.

    The board must be created while an asyncio event loop is running. It
    emits ``connect`` and ``ready`` on the next loop iteration.

    Args:
        config: Board configuration. Uses defaults if None.
        runner: Process runner. Defaults to :class:`SimulatedRunner` when
            ``config.simulated`` is set, otherwise :class:`SubprocessRunner`.
        pin_groups: Pin group table. Loaded from ``config.pin_groups`` (or the
            packaged Omega2 table) if None.
        opener: Function opening serial device streams.
    """

    name = "Omega2-IO"
    MODES = PinMode
    HIGH = HIGH
    LOW = LOW

    def __init__(
        self,
        config: BoardConfig | None = None,
        *,
        runner: ProcessRunner | None = None,
        pin_groups: Mapping[str, PinGroup] | None = None,
        opener: DeviceOpener = open_device,
    ) -> None:
        self._config = config or BoardConfig()
        self._loop = asyncio.get_running_loop()

        if runner is None:
            if self._config.simulated:
                logger.info("--SIMULATED MODE--")
                runner = SimulatedRunner()
            else:
                runner = SubprocessRunner()
        self._runner = runner

        if pin_groups is None:
            pin_groups = load_pin_groups(self._config.pin_groups)
        self._capabilities = build_capabilities(pin_groups.values())
        self._pins = PinStateStore(self._capabilities)

        self._events = EventHub()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._modes = ModeController(self)
        self._digital = DigitalEngine(self, self._modes)
        self._i2c = I2cEngine(self)
        self._serial = SerialEngine(self, opener)

        self.analog_pins: list[int] = []
        self.default_led = self._config.default_led
        self.is_ready = False
        self._closed = False
        self._ready_handle = self._loop.call_soon(self._on_ready)

    # -- Lifecycle -------------------------------------------------------------

    def _on_ready(self) -> None:
        self.is_ready = True
        logger.info("%s ready with %d pins", self.name, len(self._pins))
        self._events.emit(CONNECT)
        self._events.emit(READY)

    @staticmethod
    def reset() -> None:
        """Firmata compatibility; the Omega2 has nothing to reset."""
        return None

    async def flush(self) -> None:
        """Wait until every in-flight command and I2C read has finished.

        Polling loops keep running; only the reads they have already started
        are awaited.
        """
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Stop all polling, cancel pending work and close serial channels."""
        if self._closed:
            return
        self._closed = True
        self._ready_handle.cancel()
        self._pins.cancel_all_polls()
        self._serial.close_all()
        self._i2c.replies.clear()
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    async def __aenter__(self) -> Board:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -- Shared plumbing used by the engines ------------------------------------

    @property
    def config(self) -> BoardConfig:
        """The board configuration."""
        return self._config

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        """The event loop the board runs on."""
        return self._loop

    @property
    def runner(self) -> ProcessRunner:
        """The process runner commands are issued through."""
        return self._runner

    @property
    def pins(self) -> PinStateStore:
        """Runtime state of every pin."""
        return self._pins

    @property
    def events(self) -> EventHub:
        """The board event hub."""
        return self._events

    @property
    def serial(self) -> dict[int, SerialChannel]:
        """Open serial channels by index."""
        return self._serial.channels

    @property
    def i2c_poll_delay(self) -> float:
        """Delay before each I2C read, in milliseconds."""
        return self._i2c.poll_delay

    def track(self, coro: Coroutine[Any, Any, T]) -> asyncio.Task[T]:
        """Run ``coro`` as a task that :meth:`flush` and :meth:`close` know about."""
        task = self._loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def spawn(
        self, command: str, args: list[Any], **context: Any
    ) -> asyncio.Task[ProcessResult | None]:
        """Run a command in the background.

        A failure is reported through the ``error`` event with ``context``
        attached, and the task result is None.
        """
        return self.track(self._invoke(command, [str(a) for a in args], context))

    async def _invoke(
        self, command: str, args: list[str], context: dict[str, Any]
    ) -> ProcessResult | None:
        try:
            return await self._runner.run(command, args)
        except ProcessFailureError as exc:
            self.report_error(exc.with_context(**context))
            return None

    def run_sync(self, command: str, args: list[Any], **context: Any) -> ProcessResult | None:
        """Run a command and wait for it; failures go to the ``error`` event."""
        try:
            return self._runner.run_sync(command, [str(a) for a in args])
        except ProcessFailureError as exc:
            self.report_error(exc.with_context(**context))
            return None

    def report_error(self, error: Omega2Error) -> None:
        """Log ``error`` and publish it as an ``error`` event."""
        logger.error("%s", error)
        self._events.emit(ERROR, error)

    # -- Events ----------------------------------------------------------------

    def on(self, event: str, listener: Listener) -> Board:
        """Subscribe to a board event."""
        self._events.on(event, listener)
        return self

    def once(self, event: str, listener: Listener) -> Board:
        """Subscribe to the next emission of a board event."""
        self._events.once(event, listener)
        return self

    def off(self, event: str, listener: Listener) -> Board:
        """Unsubscribe from a board event."""
        self._events.off(event, listener)
        return self

    # -- Pins ------------------------------------------------------------------

    def pin_mode(self, pin: int, mode: PinMode | str | int) -> Board:
        """Set a pin's mode; see :meth:`ModeController.set_mode`."""
        self._modes.set_mode(pin, mode)
        return self

    set_mode = pin_mode

    def digital_write(self, pin: int, value: int) -> Board:
        """Drive a pin HIGH or LOW."""
        self._digital.digital_write(pin, value)
        return self

    def digital_read(self, pin: int, handler: ValueHandler) -> Board:
        """Poll a pin, calling ``handler`` with each new value."""
        self._digital.digital_read(pin, handler)
        return self

    def analog_write(self, pin: int, value: int) -> Board:
        """Drive a pin with PWM at ``value``."""
        self._digital.analog_write(pin, value)
        return self

    pwm_write = analog_write

    def query_pin_state(
        self, pin: int, handler: Callable[[PinMode | None], Any] | None = None
    ) -> Board:
        """Refresh a pin's mode from the hardware."""
        self._modes.query_pin_state(pin, handler)
        return self

    # -- I2C -------------------------------------------------------------------

    def i2c_config(self, options: float | Mapping[str, Any] | Any = None) -> Board:
        """Set the I2C poll delay from a frequency (Hz) or ``{frequency, delay}``."""
        self._i2c.configure(options)
        return self

    def i2c_write(self, address: int, cmd_reg_or_data: Any, in_bytes: Any = None) -> Board:
        """Write to an I2C device.

        Accepts ``(address, register, [bytes])`` and ``(address, [register, bytes...])``.
        """
        self._i2c.write(I2cWriteRequest.from_args(address, cmd_reg_or_data, in_bytes))
        return self

    def i2c_write_reg(self, address: int, register: int, value: int) -> Board:
        """Write one value to one register of an I2C device."""
        self._i2c.write_reg(address, register, value)
        return self

    def i2c_read(
        self,
        address: int,
        register: Any,
        bytes_to_read: Any = None,
        callback: Callable[[list[int]], Any] | None = None,
    ) -> Board:
        """Read an I2C register repeatedly, ``bytes_to_read`` times.

        Accepts ``(address, register, length, callback)`` and
        ``(address, length, callback)``.
        """
        self._i2c.read(
            I2cReadRequest.from_args(True, address, register, bytes_to_read, callback)
        )
        return self

    def i2c_read_once(
        self,
        address: int,
        register: Any,
        bytes_to_read: Any = None,
        callback: Callable[[list[int]], Any] | None = None,
    ) -> Board:
        """Read an I2C register once. Same calling conventions as :meth:`i2c_read`."""
        self._i2c.read(
            I2cReadRequest.from_args(False, address, register, bytes_to_read, callback)
        )
        return self

    # Firmata.js compatibility
    send_i2c_config = i2c_config
    send_i2c_read_request = i2c_read_once
    send_i2c_write_request = i2c_write

    # -- Serial ----------------------------------------------------------------

    def serial_open(self, baud_rate: int | None = None, channel: int = 0) -> Board:
        """Open ``/dev/ttyS<channel>`` at ``baud_rate``."""
        self._serial.open(baud_rate, channel)
        return self

    def serial_listen(
        self,
        message_terminator: str | bytes = "\n",
        channel: int = 0,
        encoding: str = "utf-8",
    ) -> Board:
        """Publish ``serial:message`` for each terminated message received."""
        self._serial.listen(message_terminator, channel, encoding)
        return self

    def serial_on_message(self, channel: SerialChannel | int = 0) -> Board:
        """Frame and publish every complete message buffered on ``channel``."""
        self._serial.on_message(channel)
        return self

    def serial_write(
        self, message: str | bytes, encoding: str | None = None, channel: int = 0
    ) -> Board:
        """Write ``message`` to a serial channel."""
        self._serial.write(message, encoding, channel)
        return self

    def serial_close(self, channel: int = 0) -> Board:
        """Close a serial channel."""
        self._serial.close(channel)
        return self

    # -- System ----------------------------------------------------------------

    def reboot(self) -> Board:
        """Reboot the Omega2."""
        self.spawn("reboot", [])
        return self

    def upgrade(self) -> Board:
        """Start a firmware upgrade with ``oupgrade``."""
        self.spawn("oupgrade", [])
        return self


UNSUPPORTED_OPERATIONS = (
    "analog_read",
    "pulse_in",
    "pulse_out",
    "send_one_wire_write_and_read",
    "send_one_wire_delay",
    "send_one_wire_reset",
    "send_one_wire_read",
    "send_one_wire_search",
    "send_one_wire_alarms_search",
    "send_one_wire_config",
    "servo_write",
    "stepper_config",
    "stepper_step",
)


def _unsupported(name: str) -> Callable[..., Any]:
    def method(self: Board, *args: Any, **kwargs: Any) -> Any:
        raise UnsupportedOperationError(name)

    method.__name__ = name
    method.__qualname__ = f"Board.{name}"
    method.__doc__ = "Not supported on the Omega2; always raises UnsupportedOperationError."
    return method


for _name in UNSUPPORTED_OPERATIONS:
    setattr(Board, _name, _unsupported(_name))
del _name
