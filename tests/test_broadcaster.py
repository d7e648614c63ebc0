"""Tests for consumer fan-out and release of channel interest."""

from __future__ import annotations

from unittest.mock import Mock

from chatrelay.irc.parser import parse_irc_message
from chatrelay.relay.broadcaster import ConsumerBroadcaster
from chatrelay.relay.events import ChatEvent
from tests.helpers import RecordingConsumer


def _event(text: str = "hi") -> ChatEvent:
    return ChatEvent(parse_irc_message(f":bob!b@b PRIVMSG #chan :{text}"))


def test_broadcast_reaches_every_consumer():
    release = Mock()
    broadcaster = ConsumerBroadcaster(release)
    a, b = RecordingConsumer("a"), RecordingConsumer("b")
    broadcaster.register(a)
    broadcaster.register(b)
    assert broadcaster.broadcast(_event()) == 2
    assert len(a.events) == len(b.events) == 1


def test_failed_consumer_is_removed_without_interrupting_others():
    release = Mock()
    broadcaster = ConsumerBroadcaster(release)
    good_before = RecordingConsumer("before")
    gone = RecordingConsumer("gone", fail=True)
    gone.channel = "chan"
    good_after = RecordingConsumer("after")
    for consumer in (good_before, gone, good_after):
        broadcaster.register(consumer)

    assert broadcaster.broadcast(_event()) == 2

    assert gone not in broadcaster
    assert len(broadcaster) == 2
    assert len(good_before.events) == 1
    assert len(good_after.events) == 1
    release.assert_called_once_with("chan")


def test_consumer_deregistering_itself_mid_broadcast():
    broadcaster = ConsumerBroadcaster(Mock())
    seen = []

    class SelfRemoving(RecordingConsumer):
        def send(self, event):
            seen.append(self.name)
            broadcaster.deregister(self)

    first, second = SelfRemoving("first"), SelfRemoving("second")
    broadcaster.register(first)
    broadcaster.register(second)
    broadcaster.broadcast(_event())
    assert seen == ["first", "second"]
    assert len(broadcaster) == 0


def test_deregister_releases_channel_exactly_once():
    release = Mock()
    broadcaster = ConsumerBroadcaster(release)
    consumer = RecordingConsumer()
    consumer.channel = "chan"
    broadcaster.register(consumer)
    broadcaster.deregister(consumer)
    broadcaster.deregister(consumer)
    release.assert_called_once_with("chan")
    assert consumer.channel is None


def test_deregister_without_channel_releases_nothing():
    release = Mock()
    broadcaster = ConsumerBroadcaster(release)
    consumer = RecordingConsumer()
    broadcaster.register(consumer)
    broadcaster.deregister(consumer)
    release.assert_not_called()


def test_register_is_idempotent():
    broadcaster = ConsumerBroadcaster(Mock())
    consumer = RecordingConsumer()
    broadcaster.register(consumer)
    broadcaster.register(consumer)
    assert len(broadcaster) == 1


def test_deliver_to_unregistered_consumer_is_refused():
    broadcaster = ConsumerBroadcaster(Mock())
    consumer = RecordingConsumer()
    assert broadcaster.deliver(consumer, _event()) is False
    assert consumer.events == []
