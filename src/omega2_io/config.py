"""Board configuration and pin group loading.

Board settings come from an optional YAML file:

    board:
      simulated: false
      pin_groups: /etc/omega2-io/pingroups.yaml
      digital_poll_interval: 0.05
      default_baud_rate: 115200

The pin capability table is a separate YAML document. The Omega2 table ships
with the package and is used when no ``pin_groups`` path is configured:

    groups:
      - name: GPIO
        pins: [0, 1, 2]
        modes: [INPUT, OUTPUT]
      - name: PWM
        pins: [0, 1]
        modes: [PWM]
    aliases:
      ANALOG: PWM
"""

from __future__ import annotations

import importlib.resources
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from omega2_io.errors import ConfigError
from omega2_io.pins import PinGroup, PinMode

DEFAULT_PIN_GROUPS = "pingroups_omega2.yaml"


@dataclass(frozen=True)
class BoardConfig:
    """Configuration for an Omega2 board.

    Attributes:
        simulated: Log commands instead of running them.
        pin_groups: Path to a pin group YAML file, or None for the packaged table.
        digital_poll_interval: Seconds between digital read polls.
        i2c_bus: I2C bus number passed to i2cget/i2cset.
        serial_device_prefix: Serial device path without the channel number.
        default_baud_rate: Baud rate used when serial_open gets none.
        pwm_period: Period argument passed to ``fast-gpio pwm``.
        default_led: Pin driving the on-board LED.
    """

    simulated: bool = False
    pin_groups: str | None = None
    digital_poll_interval: float = 0.05
    i2c_bus: int = 0
    serial_device_prefix: str = "/dev/ttyS"
    default_baud_rate: int = 115200
    pwm_period: int = 200
    default_led: int = 44

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.digital_poll_interval <= 0:
            raise ConfigError("digital_poll_interval must be positive")
        if self.i2c_bus < 0:
            raise ConfigError("i2c_bus must be >= 0")
        if self.default_baud_rate <= 0:
            raise ConfigError("default_baud_rate must be positive")
        if self.pwm_period <= 0:
            raise ConfigError("pwm_period must be positive")

    def serial_device(self, channel: int) -> str:
        """Return the device path for a serial channel, e.g. "/dev/ttyS0"."""
        return f"{self.serial_device_prefix}{channel}"


def load_config(path: str | Path) -> BoardConfig:
    """Load board configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Parsed board configuration.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ConfigError: If the config is invalid.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return BoardConfig()
    if not isinstance(data, dict):
        raise ConfigError("Config must be a YAML mapping")

    board = data.get("board", {})
    if not isinstance(board, dict):
        raise ConfigError("board must be a mapping")

    known = {f.name for f in fields(BoardConfig)}
    unknown = set(board) - known
    if unknown:
        raise ConfigError(f"Unknown board option(s): {', '.join(sorted(unknown))}")

    try:
        return BoardConfig(**board)
    except TypeError as exc:
        raise ConfigError(str(exc)) from exc


def _parse_group(entry: Any) -> PinGroup:
    if not isinstance(entry, dict):
        raise ConfigError("Each pin group must be a mapping")
    name = entry.get("name")
    if not name:
        raise ConfigError("Pin group missing required field: name")
    pins = entry.get("pins", [])
    modes = entry.get("modes", [])
    if not isinstance(pins, list) or not isinstance(modes, list):
        raise ConfigError(f"Pin group '{name}': pins and modes must be lists")
    try:
        parsed_modes = frozenset(PinMode.parse(m) for m in modes)
    except ValueError as exc:
        raise ConfigError(f"Pin group '{name}': {exc}") from exc
    return PinGroup(name=name, pins=tuple(int(p) for p in pins), modes=parsed_modes)


def parse_pin_groups(data: Any) -> dict[str, PinGroup]:
    """Build pin groups from an already-parsed YAML document.

    Args:
        data: Mapping with a ``groups`` list and optional ``aliases`` mapping.

    Returns:
        Mapping of group name to group. Alias names map to the same object as
        their target group.

    Raises:
        ConfigError: If the document is malformed or an alias has no target.
    """
    if not isinstance(data, dict):
        raise ConfigError("Pin group table must be a YAML mapping")

    groups: dict[str, PinGroup] = {}
    for entry in data.get("groups") or []:
        group = _parse_group(entry)
        groups[group.name] = group

    aliases = data.get("aliases") or {}
    if not isinstance(aliases, dict):
        raise ConfigError("aliases must be a mapping")
    for alias, target in aliases.items():
        if target not in groups:
            raise ConfigError(f"Alias '{alias}' refers to unknown group '{target}'")
        groups[alias] = groups[target]

    return groups


def load_pin_groups(path: str | Path | None = None) -> dict[str, PinGroup]:
    """Load a pin group table.

    Args:
        path: YAML file to read. None loads the packaged Omega2 table.

    Returns:
        Mapping of group name to group, aliases included.

    Raises:
        FileNotFoundError: If ``path`` doesn't exist.
        ConfigError: If the table is invalid.
    """
    if path is None:
        resource = importlib.resources.files("omega2_io.data").joinpath(DEFAULT_PIN_GROUPS)
        data = yaml.safe_load(resource.read_text(encoding="utf-8"))
        return parse_pin_groups(data)

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Pin group file not found: {path}")
    with open(path, encoding="utf-8") as f:
        return parse_pin_groups(yaml.safe_load(f))
