"""Tests for the console consumer rendering through the merge."""

from __future__ import annotations

from unittest.mock import patch

from chatrelay.console import ConsoleConsumer
from chatrelay.irc.models import Identity
from chatrelay.irc.parser import parse_irc_message
from chatrelay.relay.events import BackfillBatch, ChatEvent, IdentityInfo, ProfileResult


def _msg(msg_id: str, text: str):
    return parse_irc_message(f"@id={msg_id} :bob!bob@bob PRIVMSG #chan :{text}")


def test_duplicate_between_backfill_and_live_is_logged_once():
    consumer = ConsoleConsumer("chan", message_cap=100)
    with patch("chatrelay.console.logger") as mock_logger:
        consumer.send(BackfillBatch("chan", (_msg("abc", "hello"),)))
        consumer.send(ChatEvent(_msg("abc", "hello")))
        consumer.send(ChatEvent(_msg("def", "again")))
    texts = [c.kwargs["text"] for c in mock_logger.log_event.call_args_list]
    assert texts == ["bob: hello", "bob: again"]
    assert mock_logger.log_event.call_args.kwargs["channel"] == "chan"


def test_identity_and_profile_events_are_not_chat_lines():
    consumer = ConsoleConsumer("chan")
    with patch("chatrelay.console.logger") as mock_logger:
        consumer.send(IdentityInfo(Identity("bob", "t")))
        consumer.send(IdentityInfo(None))
        consumer.send(ProfileResult("bob", None))
    mock_logger.log_event.assert_not_called()


def test_other_channel_traffic_is_ignored():
    consumer = ConsoleConsumer("chan")
    with patch("chatrelay.console.logger") as mock_logger:
        consumer.send(ChatEvent(parse_irc_message(":bob!b@b PRIVMSG #elsewhere :hi")))
    mock_logger.log_event.assert_not_called()
