"""Shared fakes for driving the supervisor without a socket or a clock."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from unittest.mock import MagicMock

import aiohttp

from chatrelay.irc.transport import (
    EventSink,
    TransportClosed,
    TransportMessage,
    TransportOpened,
)
from chatrelay.relay.broadcaster import ConsumerGone


class FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def fire(self) -> None:
        assert self.pending, "timer already fired or cancelled"
        self.fired = True
        self.callback()


class FakeScheduler:
    """Records ``call_later`` requests; tests fire them explicitly."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if t.pending]


class FakeTransport:
    """In-memory transport; ``close`` reports the close synchronously."""

    def __init__(self, on_event: EventSink) -> None:
        self.on_event = on_event
        self.sent: list[str] = []
        self.opened = False
        self.closed = False

    def open(self) -> None:
        self.opened = True

    def send(self, line: str) -> None:
        self.sent.append(line)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.on_event(TransportClosed(1000, "closed"))

    # Server-side helpers

    def accept(self) -> None:
        self.on_event(TransportOpened())

    def feed(self, data: str) -> None:
        self.on_event(TransportMessage(data))

    def drop(self, code: int = 1006) -> None:
        self.closed = True
        self.on_event(TransportClosed(code, "dropped"))


class TransportRecorder:
    """Transport factory keeping every transport it created."""

    def __init__(self) -> None:
        self.transports: list[FakeTransport] = []

    def __call__(self, on_event: EventSink) -> FakeTransport:
        transport = FakeTransport(on_event)
        self.transports.append(transport)
        return transport

    @property
    def current(self) -> FakeTransport:
        return self.transports[-1]


class RecordingConsumer:
    def __init__(self, name: str = "consumer", fail: bool = False) -> None:
        self.name = name
        self.channel: str | None = None
        self.events: list = []
        self.fail = fail

    def send(self, event) -> None:
        if self.fail:
            raise ConsumerGone(f"{self.name} is gone")
        self.events.append(event)

    def of_type(self, kind: type) -> list:
        return [e for e in self.events if isinstance(e, kind)]


WELCOME = ":tmi.twitch.tv 001 bob :Welcome, GLHF!"


class FakeResponse:
    """Minimal stand-in for ``aiohttp.ClientResponse`` used as a context manager."""

    def __init__(self, status: int = 200, payload=None, headers=None) -> None:
        self.status = status
        self.payload = payload if payload is not None else {}
        self.headers = headers or {}

    def raise_for_status(self) -> None:
        if self.status >= 400:
            request_info = MagicMock()
            request_info.real_url = "http://test.invalid"
            raise aiohttp.ClientResponseError(
                request_info, (), status=self.status, headers=self.headers
            )

    async def json(self):
        return self.payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class FakeSession:
    """Replays queued responses (or raises queued exceptions) for ``get``."""

    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.calls: list[tuple[str, dict]] = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Poll ``predicate`` on the event loop until it holds or time runs out."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)
