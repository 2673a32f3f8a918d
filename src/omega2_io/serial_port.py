"""Serial ports on the Omega2 UART device nodes."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, BinaryIO, Callable

from omega2_io.errors import SerialChannelError
from omega2_io.events import SERIAL_MESSAGE

if TYPE_CHECKING:
    from omega2_io.board import Board

logger = logging.getLogger(__name__)

READ_CHUNK = 4096

#: Opens a device path in the given binary mode ("rb" or "wb").
DeviceOpener = Callable[[str, str], BinaryIO]


def open_device(path: str, mode: str) -> BinaryIO:
    """Open a serial device node unbuffered and non-blocking for reads."""
    stream: BinaryIO = open(path, mode, buffering=0)  # pylint: disable=consider-using-with
    if "r" in mode:
        os.set_blocking(stream.fileno(), False)
    return stream


@dataclass
class SerialChannel:
    """State of one open serial channel.

    Attributes:
        address: Device path, e.g. "/dev/ttyS0".
        baud_rate: Configured line speed.
        channel: Channel index.
        message_terminator: Byte sequence ending each message.
        encoding: Encoding used for text terminators, writes and :attr:`text`.
        buffer: Received bytes not yet framed into a message.
        message: The most recently framed message, terminator included.
        read_stream: Stream the device is read from.
        write_stream: Stream the device is written to.
    """

    address: str
    baud_rate: int
    channel: int
    message_terminator: bytes = b"\n"
    encoding: str = "utf-8"
    buffer: bytearray = field(default_factory=bytearray)
    message: bytes | None = None
    read_stream: BinaryIO | None = field(default=None, repr=False)
    write_stream: BinaryIO | None = field(default=None, repr=False)
    listening: bool = False

    @property
    def text(self) -> str | None:
        """The current message decoded with :attr:`encoding`."""
        if self.message is None:
            return None
        return self.message.decode(self.encoding, errors="replace")


class SerialEngine:
    """Opens, frames, writes and closes serial channels.

    Args:
        board: Board owning the process runner and event hub.
        opener: Function used to open device streams.
    """

    def __init__(self, board: Board, opener: DeviceOpener = open_device) -> None:
        self._board = board
        self._opener = opener
        self._channels: dict[int, SerialChannel] = {}

    @property
    def channels(self) -> dict[int, SerialChannel]:
        """Open channels by index."""
        return self._channels

    def get(self, channel: int) -> SerialChannel:
        """Return an open channel.

        Raises:
            SerialChannelError: If the channel has not been opened.
        """
        try:
            return self._channels[channel]
        except KeyError:
            raise SerialChannelError(f"serial channel {channel} is not open") from None

    def open(self, baud_rate: int | None = None, channel: int = 0) -> SerialChannel | None:
        """Configure the line speed and open read and write streams.

        Reopening a channel closes its previous streams first.

        Returns:
            The new channel, or None if the device could not be opened.
        """
        baud_rate = baud_rate or self._board.config.default_baud_rate
        address = self._board.config.serial_device(channel)

        if channel in self._channels:
            self.close(channel)

        self._board.run_sync("stty", ["-F", address, baud_rate], device=address)

        try:
            read_stream = self._opener(address, "rb")
        except OSError as exc:
            self._board.report_error(SerialChannelError(f"cannot open {address}: {exc}"))
            return None
        try:
            write_stream = self._opener(address, "wb")
        except OSError as exc:
            read_stream.close()
            self._board.report_error(SerialChannelError(f"cannot open {address}: {exc}"))
            return None

        serial = SerialChannel(
            address=address,
            baud_rate=baud_rate,
            channel=channel,
            read_stream=read_stream,
            write_stream=write_stream,
        )
        self._channels[channel] = serial
        logger.info("Opened %s at %d baud", address, baud_rate)
        return serial

    def listen(
        self,
        message_terminator: str | bytes = "\n",
        channel: int = 0,
        encoding: str = "utf-8",
    ) -> None:
        """Start collecting incoming bytes and framing them into messages.

        Each framed message is published as a ``serial:message`` event carrying
        the channel, whose :attr:`SerialChannel.message` holds the message.
        """
        serial = self.get(channel)
        serial.encoding = encoding
        if isinstance(message_terminator, str):
            message_terminator = message_terminator.encode(encoding)
        if not message_terminator:
            raise ValueError("message terminator must not be empty")
        serial.message_terminator = message_terminator

        if serial.listening or serial.read_stream is None:
            return
        self._board.loop.add_reader(serial.read_stream.fileno(), self._on_readable, serial)
        serial.listening = True

    def _on_readable(self, serial: SerialChannel) -> None:
        if serial.read_stream is None:
            return
        try:
            chunk = serial.read_stream.read(READ_CHUNK)
        except BlockingIOError:
            return
        except OSError as exc:
            self._stop_listening(serial)
            self._board.report_error(
                SerialChannelError(f"read from {serial.address} failed: {exc}")
            )
            return

        if chunk is None:
            return
        if not chunk:
            logger.info("End of stream on %s", serial.address)
            self._stop_listening(serial)
            return

        serial.buffer.extend(chunk)
        self.on_message(serial)

    def on_message(self, serial: SerialChannel | int) -> None:
        """Split every complete message off the channel buffer and publish it.

        Bytes after the last terminator stay buffered for the next chunk.
        """
        if isinstance(serial, int):
            serial = self.get(serial)
        terminator = serial.message_terminator
        while True:
            index = serial.buffer.find(terminator)
            if index < 0:
                break
            end = index + len(terminator)
            serial.message = bytes(serial.buffer[:end])
            del serial.buffer[:end]
            self._board.events.emit(SERIAL_MESSAGE, serial)

    def write(self, message: str | bytes, encoding: str | None = None, channel: int = 0) -> None:
        """Write a message to the channel.

        Text is encoded with ``encoding``, defaulting to the channel encoding.
        """
        serial = self.get(channel)
        if isinstance(message, str):
            message = message.encode(encoding or serial.encoding)
        if serial.write_stream is None:
            raise SerialChannelError(f"serial channel {channel} has no write stream")
        try:
            serial.write_stream.write(message)
            serial.write_stream.flush()
        except OSError as exc:
            self._board.report_error(
                SerialChannelError(f"write to {serial.address} failed: {exc}")
            )

    def close(self, channel: int = 0) -> None:
        """Close a channel's streams. Closing an unopened channel does nothing."""
        serial = self._channels.pop(channel, None)
        if serial is None:
            return
        self._stop_listening(serial)
        for stream in (serial.read_stream, serial.write_stream):
            if stream is not None:
                try:
                    stream.close()
                except OSError as exc:
                    logger.warning("Error closing %s: %s", serial.address, exc)
        serial.read_stream = None
        serial.write_stream = None
        logger.info("Closed %s", serial.address)

    def close_all(self) -> None:
        """Close every open channel."""
        for channel in list(self._channels):
            self.close(channel)

    def _stop_listening(self, serial: SerialChannel) -> None:
        if not serial.listening or serial.read_stream is None:
            serial.listening = False
            return
        self._board.loop.remove_reader(serial.read_stream.fileno())
        serial.listening = False
