"""Unit tests for the event hub and the I2C reply table."""

from __future__ import annotations

from unittest.mock import MagicMock

from omega2_io.events import EventHub, ReplyTable, i2c_reply_event


class TestEventHub:
    """Tests for EventHub."""

    def test_on_receives_every_emit(self) -> None:
        """Persistent listeners receive every emission with its arguments."""
        hub = EventHub()
        listener = MagicMock()
        hub.on("change:pin.state", listener)

        assert hub.emit("change:pin.state", 1) is True
        assert hub.emit("change:pin.state", 2) is True

        assert [c.args for c in listener.call_args_list] == [(1,), (2,)]

    def test_once_fires_once(self) -> None:
        """once listeners are removed after their first call."""
        hub = EventHub()
        listener = MagicMock()
        hub.once("ready", listener)

        hub.emit("ready")
        hub.emit("ready")

        listener.assert_called_once_with()
        assert hub.listener_count("ready") == 0

    def test_emit_without_listeners(self) -> None:
        """Emitting an event nobody listens to returns False."""
        assert EventHub().emit("error", RuntimeError()) is False

    def test_off(self) -> None:
        """off removes a listener and ignores unknown ones."""
        hub = EventHub()
        listener = MagicMock()
        hub.on("connect", listener)

        hub.off("connect", listener)
        hub.off("connect", listener)
        hub.off("never", listener)
        hub.emit("connect")

        listener.assert_not_called()

    def test_listener_error_does_not_stop_others(self) -> None:
        """A failing listener is logged and the rest still run."""
        hub = EventHub()
        failing = MagicMock(side_effect=RuntimeError("boom"))
        second = MagicMock()
        hub.on("serial:message", failing)
        hub.on("serial:message", second)

        hub.emit("serial:message", "msg")

        second.assert_called_once_with("msg")

    def test_listener_registered_during_emit_waits(self) -> None:
        """A once listener added while emitting waits for the next emission."""
        hub = EventHub()
        late = MagicMock()
        hub.once("tick", lambda: hub.once("tick", late))

        hub.emit("tick")
        late.assert_not_called()

        hub.emit("tick")
        late.assert_called_once_with()


class TestReplyTable:
    """Tests for ReplyTable."""

    def test_resolve_calls_and_disarms(self) -> None:
        """resolve delivers data once and removes the callback."""
        table = ReplyTable()
        callback = MagicMock()
        table.arm((0x20, 1), callback)

        assert table.resolve((0x20, 1), [0xAA]) is True
        assert table.resolve((0x20, 1), [0xBB]) is False

        callback.assert_called_once_with([0xAA])
        assert len(table) == 0

    def test_arm_replaces_stale_callback(self) -> None:
        """Arming a key discards the callback already waiting on it."""
        table = ReplyTable()
        stale = MagicMock()
        fresh = MagicMock()
        table.arm((0x20, 0), stale)
        table.arm((0x20, 0), fresh)

        table.resolve((0x20, 0), [1])

        stale.assert_not_called()
        fresh.assert_called_once_with([1])

    def test_keys_are_independent(self) -> None:
        """Different address/register pairs do not interfere."""
        table = ReplyTable()
        first = MagicMock()
        second = MagicMock()
        table.arm((0x20, 0), first)
        table.arm((0x20, 1), second)

        table.resolve((0x20, 1), [7])

        first.assert_not_called()
        assert table.pending((0x20, 0)) is first
        assert table.pending((0x20, 1)) is None

    def test_callback_error_is_contained(self) -> None:
        """A failing callback does not propagate."""
        table = ReplyTable()
        table.arm((1, 2), MagicMock(side_effect=ValueError("bad")))

        assert table.resolve((1, 2), []) is True

    def test_clear(self) -> None:
        """clear drops every pending callback."""
        table = ReplyTable()
        table.arm((1, 0), MagicMock())
        table.arm((2, 0), MagicMock())

        table.clear()

        assert len(table) == 0


def test_i2c_reply_event_name() -> None:
    """Reply event names combine address and register."""
    assert i2c_reply_event(32, 1) == "I2C-reply32-1"
