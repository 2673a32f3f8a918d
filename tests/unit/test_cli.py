"""Tests for the omega2-io command-line interface."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from omega2_io.cli import build_parser, main, parse_int


class TestParser:
    """Tests for argument parsing."""

    def test_parse_int_accepts_hex(self) -> None:
        """Addresses may be given in hex or decimal."""
        assert parse_int("0x48") == 0x48
        assert parse_int("72") == 72

    def test_i2c_set_arguments(self) -> None:
        """i2c-set takes address, register and value."""
        args = build_parser().parse_args(["i2c-set", "0x20", "0x01", "0xaa"])
        assert (args.address, args.register, args.value) == (0x20, 0x01, 0xAA)

    def test_global_options(self) -> None:
        """Global options come before the command."""
        args = build_parser().parse_args(["--simulated", "-c", "board.yaml", "pins"])
        assert args.simulated is True
        assert args.config == "board.yaml"
        assert args.command == "pins"


class TestMain:
    """Tests for main()."""

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Running without a command shows usage and fails."""
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_pins(self, capsys: pytest.CaptureFixture[str]) -> None:
        """pins lists every pin with its modes."""
        assert main(["--simulated", "pins"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert " 44  INPUT, OUTPUT" in lines
        assert "  0  INPUT, OUTPUT, PWM" in lines

    def test_write_runs_fast_gpio(self, caplog: pytest.LogCaptureFixture) -> None:
        """write issues fast-gpio commands through the simulated runner."""
        caplog.set_level(logging.INFO, logger="omega2_io")

        assert main(["--simulated", "write", "44", "1"]) == 0

        assert "fast-gpio set-output 44" in caplog.text
        assert "fast-gpio set 44 1" in caplog.text

    def test_pwm_write(self, caplog: pytest.LogCaptureFixture) -> None:
        """write --pwm starts PWM."""
        caplog.set_level(logging.INFO, logger="omega2_io")

        assert main(["--simulated", "write", "--pwm", "1", "30"]) == 0

        assert "fast-gpio pwm 1 30 200" in caplog.text

    def test_i2c_set(self, caplog: pytest.LogCaptureFixture) -> None:
        """i2c-set formats its arguments as hex."""
        caplog.set_level(logging.INFO, logger="omega2_io")

        assert main(["--simulated", "i2c-set", "0x20", "1", "170"]) == 0

        assert "i2cset -y 0 0x20 0x1 0xaa" in caplog.text

    def test_state(self, capsys: pytest.CaptureFixture[str]) -> None:
        """state prints the pin mode, unknown when the hardware says nothing."""
        assert main(["--simulated", "state", "0"]) == 0
        assert capsys.readouterr().out.strip() == "pin 0: unknown"

    def test_unknown_pin_fails(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Pins missing from the pin table are an error."""
        assert main(["--simulated", "write", "99", "1"]) == 1
        assert "pin 99 does not exist" in capsys.readouterr().err

    def test_bad_mode_fails(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Unknown mode names are an error."""
        assert main(["--simulated", "mode", "0", "bogus"]) == 1
        assert "unknown pin mode" in capsys.readouterr().err

    def test_missing_config(self, capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
        """A missing config file is reported."""
        assert main(["--config", str(tmp_path / "nope.yaml"), "pins"]) == 1
        assert "Config file not found" in capsys.readouterr().err

    def test_invalid_config(self, capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
        """An invalid config file is reported."""
        config_file = tmp_path / "board.yaml"
        config_file.write_text("board:\n  bogus: 1\n")

        assert main(["--config", str(config_file), "pins"]) == 1
        assert "Unknown board option(s): bogus" in capsys.readouterr().err

    def test_config_file_enables_simulation(
        self, caplog: pytest.LogCaptureFixture, tmp_path: Path
    ) -> None:
        """simulated: true in the config file is honoured."""
        config_file = tmp_path / "board.yaml"
        config_file.write_text("board:\n  simulated: true\n  i2c_bus: 1\n")
        caplog.set_level(logging.INFO, logger="omega2_io")

        assert main(["--config", str(config_file), "i2c-set", "0x20", "0", "1"]) == 0

        assert "--SIMULATED MODE--" in caplog.text
        assert "i2cset -y 1 0x20 0x0 0x1" in caplog.text
