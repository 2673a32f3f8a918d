"""Digital and PWM pin I/O."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Callable

from omega2_io.errors import ProcessFailureError
from omega2_io.mode import FAST_GPIO, ModeController
from omega2_io.pins import PinMode, PinState
from omega2_io.timers import PeriodicTask

if TYPE_CHECKING:
    from omega2_io.board import Board

logger = logging.getLogger(__name__)

#: Handler called with a pin's new value.
ValueHandler = Callable[[Any], Any]


class DigitalEngine:
    """Digital writes, PWM writes and polled digital reads.

    Args:
        board: Board owning the pin state and the process runner.
        modes: Mode controller used to coerce pins into the needed mode.
    """

    def __init__(self, board: Board, modes: ModeController) -> None:
        self._board = board
        self._modes = modes

    def digital_write(self, pin_index: int, value: int) -> None:
        """Drive a pin high or low, switching it to OUTPUT first if needed."""
        pin = self._board.pins[pin_index]
        if pin.mode is not PinMode.OUTPUT:
            self._modes.set_mode(pin_index, PinMode.OUTPUT)
        pin.value = value
        self._board.spawn(FAST_GPIO, ["set", pin_index, value], pin=pin_index)

    def analog_write(self, pin_index: int, value: int) -> None:
        """Drive a pin with a PWM signal, switching it to PWM first if needed.

        A value of 0 drives the pin low instead of starting PWM.
        """
        pin = self._board.pins[pin_index]
        if pin.mode is not PinMode.PWM:
            self._modes.set_mode(pin_index, PinMode.PWM)
        pin.value = value
        if value == 0:
            args: list[Any] = ["set", pin_index, 0]
        else:
            args = ["pwm", pin_index, value, self._board.config.pwm_period]
        self._board.spawn(FAST_GPIO, args, pin=pin_index)

    def digital_read(self, pin_index: int, handler: ValueHandler) -> None:
        """Poll a pin and report value changes.

        The pin is switched to INPUT if needed, read immediately and then
        every ``digital_poll_interval`` seconds until its mode changes or the
        board closes. ``handler`` receives each new value; a read that returns
        the stored value again does not call it. A read that completes with
        no output reports the last known value.

        Starting a read replaces any polling loop already running on the pin.
        """
        pin = self._board.pins[pin_index]
        if pin.mode is not PinMode.INPUT:
            self._modes.set_mode(pin_index, PinMode.INPUT)
        pin.cancel_poll()

        def read() -> None:
            task = self._board.track(self._read_once(pin, handler))
            pin.reads.add(task)
            task.add_done_callback(pin.reads.discard)

        read()
        pin.poll = PeriodicTask(
            self._board.config.digital_poll_interval,
            read,
            name=f"digital-read-{pin_index}",
        ).start()

    async def _read_once(self, pin: PinState, handler: ValueHandler) -> None:
        try:
            result = await self._board.runner.run(FAST_GPIO, ["-u", "read", str(pin.index)])
        except ProcessFailureError as exc:
            self._board.report_error(exc.with_context(pin=pin.index))
            return

        if pin.mode is not PinMode.INPUT:
            return

        output = result.text
        if not output:
            _notify(handler, pin.value, pin.index)
            return

        try:
            value = int(json.loads(output)["val"])
        except (ValueError, KeyError, TypeError):
            logger.error("Unexpected read output for pin %d: %r", pin.index, output)
            return

        if pin.value != value:
            pin.value = value
            _notify(handler, value, pin.index)


def _notify(handler: ValueHandler, value: Any, pin_index: int) -> None:
    try:
        handler(value)
    except Exception:  # pylint: disable=broad-exception-caught
        logger.exception("Error in digital read handler for pin %d", pin_index)
