"""Command-line interface for omega2-io.

Usage:
    # Show which modes each pin supports
    omega2-io pins

    # Drive the on-board LED high
    omega2-io write 44 1

    # Watch pin 2 for ten seconds
    omega2-io read 2 --watch 10

    # Read register 0x00 of the device at 0x48
    omega2-io i2c-get 0x48 0x00

    # Print every line arriving on /dev/ttyS1
    omega2-io serial-listen --channel 1 --baud 9600

Pass --simulated to log commands instead of running them.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from typing import Any, Awaitable, Callable

from omega2_io.board import Board
from omega2_io.config import BoardConfig, load_config
from omega2_io.errors import ConfigError, Omega2Error
from omega2_io.events import ERROR, SERIAL_MESSAGE
from omega2_io.serial_port import SerialChannel

Command = Callable[[Board, argparse.Namespace], Awaitable[int]]


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def parse_int(value: str) -> int:
    """Parse a decimal or 0x-prefixed integer."""
    return int(value, 0)


async def cmd_pins(board: Board, args: argparse.Namespace) -> int:
    """List pins and their supported modes."""
    for pin in board.pins:
        modes = ", ".join(m.name for m in sorted(pin.supported_modes))
        print(f"{pin.index:3d}  {modes}")
    return 0


async def cmd_mode(board: Board, args: argparse.Namespace) -> int:
    """Set a pin mode."""
    board.pin_mode(args.pin, args.mode)
    return 0


async def cmd_write(board: Board, args: argparse.Namespace) -> int:
    """Write a digital or PWM value."""
    if args.pwm:
        board.analog_write(args.pin, args.value)
    else:
        board.digital_write(args.pin, args.value)
    return 0


async def cmd_read(board: Board, args: argparse.Namespace) -> int:
    """Read a pin once, or print every change for --watch seconds."""
    first: asyncio.Future[Any] = board.loop.create_future()

    def on_value(value: Any) -> None:
        print(f"pin {args.pin}: {value}")
        if not first.done():
            first.set_result(value)

    board.digital_read(args.pin, on_value)
    if args.watch:
        await asyncio.sleep(args.watch)
        return 0
    try:
        await asyncio.wait_for(first, timeout=args.timeout)
    except asyncio.TimeoutError:
        print(f"Error: no value from pin {args.pin}", file=sys.stderr)
        return 1
    return 0


async def cmd_state(board: Board, args: argparse.Namespace) -> int:
    """Print a pin's direction as reported by the hardware."""
    done: asyncio.Future[Any] = board.loop.create_future()
    board.query_pin_state(args.pin, done.set_result)
    mode = await done
    print(f"pin {args.pin}: {mode.name if mode is not None else 'unknown'}")
    return 0


async def cmd_i2c_get(board: Board, args: argparse.Namespace) -> int:
    """Read one I2C register."""
    done: asyncio.Future[list[int]] = board.loop.create_future()
    board.i2c_read_once(args.address, args.register, 1, done.set_result)
    try:
        data = await asyncio.wait_for(done, timeout=args.timeout)
    except asyncio.TimeoutError:
        print(f"Error: no reply from 0x{args.address:02x}", file=sys.stderr)
        return 1
    print(" ".join(f"0x{b:02x}" for b in data))
    return 0


async def cmd_i2c_set(board: Board, args: argparse.Namespace) -> int:
    """Write one I2C register."""
    board.i2c_write_reg(args.address, args.register, args.value)
    return 0


async def cmd_serial_listen(board: Board, args: argparse.Namespace) -> int:
    """Print framed serial messages until interrupted or --duration expires."""

    def on_message(serial: SerialChannel) -> None:
        print(serial.text, end="" if serial.text and serial.text.endswith("\n") else "\n")

    board.on(SERIAL_MESSAGE, on_message)
    board.serial_open(args.baud, args.channel)
    if args.channel not in board.serial:
        return 1
    board.serial_listen(args.terminator, args.channel)
    if args.duration:
        await asyncio.sleep(args.duration)
    else:
        await asyncio.Event().wait()
    return 0


COMMANDS: dict[str, Command] = {
    "pins": cmd_pins,
    "mode": cmd_mode,
    "write": cmd_write,
    "read": cmd_read,
    "state": cmd_state,
    "i2c-get": cmd_i2c_get,
    "i2c-set": cmd_i2c_set,
    "serial-listen": cmd_serial_listen,
}


async def run_command(command: Command, config: BoardConfig, args: argparse.Namespace) -> int:
    """Create a board, run one command on it and report any hardware errors."""
    errors: list[Omega2Error] = []
    async with Board(config) as board:
        board.on(ERROR, errors.append)
        status = await command(board, args)
        await board.flush()

    for error in errors:
        print(f"Error: {error}", file=sys.stderr)
    return 1 if errors else status


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description="Onion Omega2 I/O command-line tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", "-c", help="Board configuration YAML file")
    parser.add_argument(
        "--simulated", action="store_true",
        help="Log commands instead of running them"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("pins", help="List pins and supported modes")

    mode_parser = subparsers.add_parser("mode", help="Set a pin mode")
    mode_parser.add_argument("pin", type=int, help="Pin index")
    mode_parser.add_argument("mode", help="INPUT, OUTPUT, PWM or ANALOG")

    write_parser = subparsers.add_parser("write", help="Write a pin value")
    write_parser.add_argument("pin", type=int, help="Pin index")
    write_parser.add_argument("value", type=int, help="0/1, or duty value with --pwm")
    write_parser.add_argument("--pwm", action="store_true", help="Write a PWM value")

    read_parser = subparsers.add_parser("read", help="Read a pin")
    read_parser.add_argument("pin", type=int, help="Pin index")
    read_parser.add_argument(
        "--watch", type=float, default=0.0,
        help="Print changes for this many seconds"
    )
    read_parser.add_argument(
        "--timeout", type=float, default=2.0,
        help="Seconds to wait for a single read (default: 2.0)"
    )

    state_parser = subparsers.add_parser("state", help="Query a pin direction")
    state_parser.add_argument("pin", type=int, help="Pin index")

    get_parser = subparsers.add_parser("i2c-get", help="Read an I2C register")
    get_parser.add_argument("address", type=parse_int, help="Device address")
    get_parser.add_argument("register", type=parse_int, help="Register")
    get_parser.add_argument(
        "--timeout", type=float, default=2.0,
        help="Seconds to wait for the reply (default: 2.0)"
    )

    set_parser = subparsers.add_parser("i2c-set", help="Write an I2C register")
    set_parser.add_argument("address", type=parse_int, help="Device address")
    set_parser.add_argument("register", type=parse_int, help="Register")
    set_parser.add_argument("value", type=parse_int, help="Byte value")

    serial_parser = subparsers.add_parser("serial-listen", help="Print serial messages")
    serial_parser.add_argument("--channel", type=int, default=0, help="UART channel")
    serial_parser.add_argument("--baud", type=int, default=None, help="Baud rate")
    serial_parser.add_argument(
        "--terminator", default="\n",
        help="Message terminator (default: newline)"
    )
    serial_parser.add_argument(
        "--duration", type=float, default=0.0,
        help="Stop after this many seconds (default: run until interrupted)"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    setup_logging(args.debug)

    try:
        config = load_config(args.config) if args.config else BoardConfig()
    except (FileNotFoundError, ConfigError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.simulated and not config.simulated:
        config = replace(config, simulated=True)

    try:
        return asyncio.run(run_command(COMMANDS[args.command], config, args))
    except KeyboardInterrupt:
        return 0
    except (Omega2Error, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
