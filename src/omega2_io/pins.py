"""Pin modes, capability table and runtime pin state."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Mapping

from omega2_io.errors import ConfigError, PinError

if TYPE_CHECKING:
    import asyncio

    from omega2_io.timers import PeriodicTask

# Digital levels
LOW = 0
HIGH = 1


class PinMode(IntEnum):
    """Pin operating mode, numbered as in the Firmata protocol."""

    INPUT = 0
    OUTPUT = 1
    ANALOG = 2
    PWM = 3
    SERVO = 4

    @classmethod
    def parse(cls, value: str | int | PinMode) -> PinMode:
        """Convert a mode name or number to a PinMode.

        Args:
            value: Mode name (case-insensitive), Firmata number, or PinMode.

        Returns:
            The matching PinMode.

        Raises:
            ValueError: If the value names no mode.
        """
        if isinstance(value, PinMode):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"unknown pin mode: {value!r}") from None
        return cls(value)


@dataclass(frozen=True)
class PinGroup:
    """A set of pins sharing the same capabilities.

    Attributes:
        name: Group name, e.g. "GPIO" or "PWM".
        pins: Pin indices in the group.
        modes: Modes every pin in the group supports.
    """

    name: str
    pins: tuple[int, ...]
    modes: frozenset[PinMode]

    def __post_init__(self) -> None:
        for pin in self.pins:
            if pin < 0:
                raise ConfigError(f"group {self.name}: pin index must be >= 0, got {pin}")


@dataclass(frozen=True)
class PinCapability:
    """The modes a single pin supports."""

    index: int
    supported_modes: frozenset[PinMode]

    def supports(self, mode: PinMode) -> bool:
        """Return True if the pin supports ``mode``."""
        return mode in self.supported_modes


def build_capabilities(groups: Iterable[PinGroup]) -> dict[int, PinCapability]:
    """Derive per-pin capabilities from pin groups.

    A pin listed in several groups supports the union of their modes. Groups
    registered under an alias (the same PinGroup object twice) are counted once.

    Args:
        groups: Pin groups to merge.

    Returns:
        Mapping of pin index to capability, ordered by index.
    """
    modes: dict[int, set[PinMode]] = {}
    seen: set[int] = set()
    for group in groups:
        if id(group) in seen:
            continue
        seen.add(id(group))
        for pin in group.pins:
            modes.setdefault(pin, set()).update(group.modes)
    return {
        index: PinCapability(index, frozenset(modes[index])) for index in sorted(modes)
    }


@dataclass
class PinState:
    """Runtime state of one pin.

    ``mode`` is written only by the mode controller; ``value`` and ``poll`` by
    the I/O engines.

    Attributes:
        index: Pin index.
        supported_modes: Modes from the pin's capability.
        mode: Current mode, or None before the pin is configured.
        value: Last observed or written level or duty cycle; None after a
            mode change until the next read or write.
        is_pwm: True while the pin is driven as PWM.
        poll: Active digital-read polling loop, if any.
        reads: Reads started by the polling loop that have not finished.
    """

    index: int
    supported_modes: frozenset[PinMode]
    mode: PinMode | None = None
    value: int | None = 0
    is_pwm: bool = False
    poll: PeriodicTask | None = field(default=None, repr=False)
    reads: set[asyncio.Task[Any]] = field(default_factory=set, repr=False)

    @property
    def port(self) -> int:
        """Port number; identical to the index on the Omega2."""
        return self.index

    def cancel_poll(self) -> None:
        """Stop the pin's polling loop and drop any read still in flight."""
        if self.poll is not None:
            self.poll.cancel()
            self.poll = None
        for task in self.reads:
            task.cancel()
        self.reads.clear()


class PinStateStore:
    """Per-pin runtime state for one board, created from the capability table."""

    def __init__(self, capabilities: Mapping[int, PinCapability]) -> None:
        self._pins: dict[int, PinState] = {
            index: PinState(index=index, supported_modes=cap.supported_modes)
            for index, cap in capabilities.items()
        }

    def __getitem__(self, index: int) -> PinState:
        try:
            return self._pins[index]
        except KeyError:
            raise PinError(f"pin {index} does not exist on this board") from None

    def __contains__(self, index: object) -> bool:
        return index in self._pins

    def __iter__(self) -> Iterator[PinState]:
        return iter(self._pins.values())

    def __len__(self) -> int:
        return len(self._pins)

    def cancel_all_polls(self) -> None:
        """Stop every polling loop on the board."""
        for pin in self._pins.values():
            pin.cancel_poll()
