"""Event publication for board state changes and I2C replies.

Two mechanisms live here:

- :class:`EventHub`: string-keyed publish/subscribe for the public board
  events (``connect``, ``ready``, ``change:pin.state``, ``serial:message``,
  ``error`` and the ``I2C-reply<address>-<register>`` notifications).
- :class:`ReplyTable`: typed correlation of I2C read results to the caller
  waiting for them, at most one pending callback per (address, register).
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

#: Public event names.
CONNECT = "connect"
READY = "ready"
ERROR = "error"
PIN_STATE_CHANGE = "change:pin.state"
SERIAL_MESSAGE = "serial:message"

Listener = Callable[..., Any]
ReplyKey = tuple[int, int]
ReplyCallback = Callable[[list[int]], Any]


def i2c_reply_event(address: int, register: int) -> str:
    """Return the public event name for replies from ``address``/``register``."""
    return f"I2C-reply{address}-{register}"


class EventHub:
    """Minimal publish/subscribe hub.

    Listeners run synchronously inside :meth:`emit`, in registration order.
    A listener that raises is logged and does not prevent the others from
    running.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[tuple[Listener, bool]]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> None:
        """Register ``listener`` for every emission of ``event``."""
        self._listeners[event].append((listener, False))

    def once(self, event: str, listener: Listener) -> None:
        """Register ``listener`` for the next emission of ``event`` only."""
        self._listeners[event].append((listener, True))

    def off(self, event: str, listener: Listener) -> None:
        """Remove ``listener`` from ``event``. Unknown listeners are ignored."""
        entries = self._listeners.get(event)
        if not entries:
            return
        self._listeners[event] = [e for e in entries if e[0] is not listener]

    def listener_count(self, event: str) -> int:
        """Return the number of listeners registered for ``event``."""
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> bool:
        """Call every listener of ``event`` with ``args``.

        Returns:
            True if the event had listeners.
        """
        entries = self._listeners.get(event)
        if not entries:
            return False
        self._listeners[event] = [e for e in entries if not e[1]]
        for listener, _ in entries:
            try:
                listener(*args)
            except Exception:  # pylint: disable=broad-exception-caught
                logger.exception("Error in %r listener", event)
        return True


class ReplyTable:
    """Pending I2C reply callbacks keyed by (address, register).

    Arming a key replaces any callback already waiting on it, so a stale
    listener from an earlier read never fires.
    """

    def __init__(self) -> None:
        self._pending: dict[ReplyKey, ReplyCallback] = {}

    def arm(self, key: ReplyKey, callback: ReplyCallback) -> None:
        """Wait for the next reply on ``key`` with ``callback``."""
        self._pending[key] = callback

    def pending(self, key: ReplyKey) -> ReplyCallback | None:
        """Return the callback waiting on ``key``, if any."""
        return self._pending.get(key)

    def resolve(self, key: ReplyKey, data: list[int]) -> bool:
        """Deliver ``data`` to the callback waiting on ``key`` and disarm it.

        Returns:
            True if a callback was waiting.
        """
        callback = self._pending.pop(key, None)
        if callback is None:
            return False
        try:
            callback(data)
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Error in I2C reply callback for %s", key)
        return True

    def clear(self) -> None:
        """Drop every pending callback."""
        self._pending.clear()

    def __len__(self) -> int:
        return len(self._pending)
