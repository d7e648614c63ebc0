"""Tests for the recent-messages backfill client."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from chatrelay.api.backfill import RecentMessagesClient, parse_backfill, wait_retry_after
from chatrelay.errors.internal import NetworkError, ParsingError, RateLimitError
from tests.helpers import FakeResponse, FakeSession

LINES = [
    "@id=1 :bob!bob@bob PRIVMSG #chan :hello",
    ":bob!bob@bob JOIN #chan",
    "@target-msg-id=1 :tmi.twitch.tv CLEARMSG #chan :hello",
    ":tmi.twitch.tv CLEARCHAT #chan :bob",
    "@msg-id=sub :tmi.twitch.tv USERNOTICE #chan :resub",
    "",
]


def make_client(session: FakeSession) -> RecentMessagesClient:
    return RecentMessagesClient(
        session, base_url="https://backfill.test/api/", max_attempts=3, retry_base_delay=0
    )


def test_parse_backfill_keeps_chat_and_clears():
    commands = [m.command for m in parse_backfill(LINES)]
    assert commands == ["PRIVMSG", "CLEARMSG", "CLEARCHAT"]


@pytest.mark.asyncio
async def test_fetch_returns_string_lines():
    session = FakeSession(FakeResponse(payload={"messages": ["a", 5, "b"], "error": None}))
    lines = await make_client(session).fetch("#Chan")
    assert lines == ["a", "b"]
    url, _ = session.calls[0]
    assert url == "https://backfill.test/api/chan"


@pytest.mark.asyncio
async def test_fetch_retries_transient_failures():
    session = FakeSession(
        FakeResponse(status=503),
        OSError("connection reset"),
        FakeResponse(payload={"messages": ["a"]}),
    )
    assert await make_client(session).fetch("chan") == ["a"]
    assert len(session.calls) == 3


@pytest.mark.asyncio
async def test_fetch_gives_up_after_max_attempts():
    session = FakeSession(*[FakeResponse(status=502) for _ in range(3)])
    with pytest.raises(NetworkError):
        await make_client(session).fetch("chan")
    assert len(session.calls) == 3


@pytest.mark.asyncio
async def test_client_error_is_not_retried():
    session = FakeSession(FakeResponse(status=404), FakeResponse(payload={"messages": []}))
    with pytest.raises(ParsingError):
        await make_client(session).fetch("chan")
    assert len(session.calls) == 1


@pytest.mark.asyncio
async def test_payload_without_messages_is_rejected():
    session = FakeSession(FakeResponse(payload={"error": "channel banned"}))
    with pytest.raises(ParsingError):
        await make_client(session).fetch("chan")


def test_session_required():
    with pytest.raises(ValueError):
        RecentMessagesClient(None)  # type: ignore[arg-type]


def _failed_attempt(error: BaseException) -> Mock:
    retry_state = Mock()
    retry_state.outcome.failed = True
    retry_state.outcome.exception.return_value = error
    return retry_state


def test_wait_uses_retry_after_hint():
    fallback = Mock(return_value=0.25)
    wait = wait_retry_after(fallback, cap=30)
    assert wait(_failed_attempt(RateLimitError(retry_after=7.0))) == 7.0
    fallback.assert_not_called()


def test_wait_caps_retry_after_hint():
    wait = wait_retry_after(Mock(return_value=0.25), cap=5)
    assert wait(_failed_attempt(RateLimitError(retry_after=120.0))) == 5


@pytest.mark.parametrize("error", [RateLimitError(), NetworkError("down")])
def test_wait_without_hint_uses_fallback(error):
    fallback = Mock(return_value=0.25)
    wait = wait_retry_after(fallback, cap=30)
    retry_state = _failed_attempt(error)
    assert wait(retry_state) == 0.25
    fallback.assert_called_once_with(retry_state)


@pytest.mark.asyncio
async def test_fetch_retries_after_rate_limit():
    session = FakeSession(
        FakeResponse(status=429, headers={"Retry-After": "2"}),
        FakeResponse(payload={"messages": ["a"]}),
    )
    client = RecentMessagesClient(
        session,
        base_url="https://backfill.test/api/",
        max_attempts=3,
        retry_base_delay=0,
        retry_after_cap=0,
    )
    assert await client.fetch("chan") == ["a"]
    assert len(session.calls) == 2
