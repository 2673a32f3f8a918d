"""Unit tests for board configuration and pin group loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from omega2_io.config import BoardConfig, load_config, load_pin_groups, parse_pin_groups
from omega2_io.errors import ConfigError
from omega2_io.pins import PinMode, build_capabilities


class TestBoardConfig:
    """Tests for BoardConfig."""

    def test_defaults(self) -> None:
        """Defaults match the Omega2."""
        config = BoardConfig()
        assert config.simulated is False
        assert config.pin_groups is None
        assert config.digital_poll_interval == 0.05
        assert config.i2c_bus == 0
        assert config.default_baud_rate == 115200
        assert config.pwm_period == 200
        assert config.default_led == 44

    def test_serial_device(self) -> None:
        """Serial device paths are indexed by channel."""
        assert BoardConfig().serial_device(1) == "/dev/ttyS1"
        assert BoardConfig(serial_device_prefix="/dev/ttyUSB").serial_device(0) == "/dev/ttyUSB0"

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"digital_poll_interval": 0}, "digital_poll_interval must be positive"),
            ({"i2c_bus": -1}, "i2c_bus must be >= 0"),
            ({"default_baud_rate": 0}, "default_baud_rate must be positive"),
            ({"pwm_period": -5}, "pwm_period must be positive"),
        ],
    )
    def test_validation(self, kwargs: dict[str, object], message: str) -> None:
        """Invalid values raise ConfigError."""
        with pytest.raises(ConfigError, match=message):
            BoardConfig(**kwargs)  # type: ignore[arg-type]


class TestLoadConfig:
    """Tests for load_config."""

    def test_load(self, tmp_path: Path) -> None:
        """Board options are read from the board section."""
        path = tmp_path / "board.yaml"
        path.write_text(
            "board:\n"
            "  simulated: true\n"
            "  digital_poll_interval: 0.1\n"
            "  default_baud_rate: 9600\n",
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.simulated is True
        assert config.digital_poll_interval == 0.1
        assert config.default_baud_rate == 9600

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        """An empty file yields the default configuration."""
        path = tmp_path / "board.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(path) == BoardConfig()

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_config(tmp_path / "missing.yaml")

    def test_not_a_mapping_raises(self, tmp_path: Path) -> None:
        """A top-level list is rejected."""
        path = tmp_path / "board.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="must be a YAML mapping"):
            load_config(path)

    def test_unknown_option_raises(self, tmp_path: Path) -> None:
        """Unknown board options are rejected."""
        path = tmp_path / "board.yaml"
        path.write_text("board:\n  turbo: true\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="Unknown board option"):
            load_config(path)


class TestPinGroups:
    """Tests for pin group loading."""

    def test_packaged_table(self) -> None:
        """The packaged Omega2 table loads with the ANALOG alias."""
        groups = load_pin_groups()

        assert "GPIO" in groups
        assert groups["ANALOG"] is groups["PWM"]
        assert PinMode.PWM in groups["PWM"].modes

    def test_packaged_capabilities(self) -> None:
        """The on-board LED pin is digital only; GPIO 0 also supports PWM."""
        caps = build_capabilities(load_pin_groups().values())

        assert caps[44].supported_modes == {PinMode.INPUT, PinMode.OUTPUT}
        assert caps[0].supported_modes == {PinMode.INPUT, PinMode.OUTPUT, PinMode.PWM}

    def test_load_from_file(self, tmp_path: Path) -> None:
        """A custom table is read from disk."""
        path = tmp_path / "groups.yaml"
        path.write_text(
            "groups:\n"
            "  - name: GPIO\n"
            "    pins: [1, 2]\n"
            "    modes: [INPUT, OUTPUT]\n",
            encoding="utf-8",
        )

        groups = load_pin_groups(path)

        assert groups["GPIO"].pins == (1, 2)
        assert groups["GPIO"].modes == {PinMode.INPUT, PinMode.OUTPUT}

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """A missing table raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Pin group file not found"):
            load_pin_groups(tmp_path / "missing.yaml")

    def test_alias_to_unknown_group_raises(self) -> None:
        """Aliases must name an existing group."""
        with pytest.raises(ConfigError, match="unknown group 'PWM'"):
            parse_pin_groups({"groups": [], "aliases": {"ANALOG": "PWM"}})

    def test_unknown_mode_raises(self) -> None:
        """Unknown mode names are a configuration error."""
        data = {"groups": [{"name": "X", "pins": [0], "modes": ["TELEPORT"]}]}
        with pytest.raises(ConfigError, match="Pin group 'X'"):
            parse_pin_groups(data)

    def test_group_without_name_raises(self) -> None:
        """Groups must be named."""
        with pytest.raises(ConfigError, match="missing required field: name"):
            parse_pin_groups({"groups": [{"pins": [0], "modes": ["INPUT"]}]})

    def test_table_must_be_mapping(self) -> None:
        """The table must be a mapping."""
        with pytest.raises(ConfigError, match="must be a YAML mapping"):
            parse_pin_groups(["GPIO"])
