"""Pin mode transitions."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Callable

from omega2_io.errors import ProcessFailureError
from omega2_io.events import PIN_STATE_CHANGE
from omega2_io.pins import PinMode, PinState

if TYPE_CHECKING:
    from omega2_io.board import Board

logger = logging.getLogger(__name__)

FAST_GPIO = "fast-gpio"

_DIRECTIONS = {"input": PinMode.INPUT, "output": PinMode.OUTPUT}


class ModeController:
    """Validates and applies pin mode changes.

    The controller is the only writer of :attr:`PinState.mode`. Each accepted
    change issues exactly one ``fast-gpio`` direction command.

    Args:
        board: Board owning the pin state and the process runner.
    """

    def __init__(self, board: Board) -> None:
        self._board = board

    def set_mode(self, pin_index: int, mode: PinMode | str | int) -> None:
        """Put a pin into ``mode``.

        ANALOG is treated as PWM. SERVO is rejected with a logged error and
        leaves the pin untouched. Any polling loop on the pin is cancelled.

        Args:
            pin_index: Pin to configure.
            mode: Target mode.

        Raises:
            PinError: If the pin does not exist.
            ValueError: If ``mode`` names no mode.
        """
        pin = self._board.pins[pin_index]
        mode = PinMode.parse(mode)

        if mode is PinMode.SERVO:
            logger.error("Omega2 doesn't support servo mode (pin %d)", pin_index)
            return

        if mode is PinMode.ANALOG:
            mode = PinMode.PWM

        if pin.supported_modes and mode not in pin.supported_modes:
            logger.warning(
                "Pin %d does not list %s among its modes (%s)",
                pin_index,
                mode.name,
                ", ".join(sorted(m.name for m in pin.supported_modes)),
            )

        pin.cancel_poll()
        if pin.mode is not mode:
            pin.value = None

        command = "set-input" if mode is PinMode.INPUT else "set-output"
        pin.mode = mode
        pin.is_pwm = mode is PinMode.PWM
        self._board.spawn(FAST_GPIO, [command, pin_index], pin=pin_index)

    def query_pin_state(
        self, pin_index: int, handler: Callable[[PinMode | None], Any] | None = None
    ) -> None:
        """Ask the hardware for a pin's direction.

        If the reported direction differs from the stored mode, the pin is
        updated and ``change:pin.state`` is emitted with it. ``handler`` is
        called with the pin's mode once the query finishes, changed or not.

        Args:
            pin_index: Pin to query.
            handler: Optional callback receiving the pin's mode.
        """
        pin = self._board.pins[pin_index]
        self._board.track(self._query(pin, handler))

    async def _query(
        self, pin: PinState, handler: Callable[[PinMode | None], Any] | None
    ) -> None:
        try:
            result = await self._board.runner.run(
                FAST_GPIO, ["-u", "get-direction", str(pin.index)]
            )
        except ProcessFailureError as exc:
            self._board.report_error(exc.with_context(pin=pin.index))
        else:
            self._apply_direction(pin, result.text)

        if handler is not None:
            try:
                handler(pin.mode)
            except Exception:  # pylint: disable=broad-exception-caught
                logger.exception("Error in pin state handler for pin %d", pin.index)

    def _apply_direction(self, pin: PinState, output: str) -> None:
        if not output:
            return
        try:
            direction = str(json.loads(output)["val"]).lower()
        except (ValueError, KeyError, TypeError):
            logger.error("Unexpected get-direction output for pin %d: %r", pin.index, output)
            return

        reported = _DIRECTIONS.get(direction, PinMode.OUTPUT)
        current = PinMode.OUTPUT if pin.mode is PinMode.PWM else pin.mode
        if current is reported:
            return
        pin.mode = reported
        pin.is_pwm = False
        self._board.events.emit(PIN_STATE_CHANGE, pin)
