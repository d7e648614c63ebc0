"""Upstream WebSocket transport and its typed events."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..constants import IRC_WS_URL


@dataclass(frozen=True, slots=True)
class TransportOpened:
    pass


@dataclass(frozen=True, slots=True)
class TransportMessage:
    data: str


@dataclass(frozen=True, slots=True)
class TransportError:
    error: BaseException


@dataclass(frozen=True, slots=True)
class TransportClosed:
    code: int | None = None
    reason: str = ""


TransportEvent = TransportOpened | TransportMessage | TransportError | TransportClosed
EventSink = Callable[[TransportEvent], None]


class Transport(Protocol):
    """What the supervisor needs from a socket.

    ``open`` starts the connection attempt; the transport reports progress only
    through the event sink, ending with exactly one ``TransportClosed``.
    """

    def open(self) -> None: ...

    def send(self, line: str) -> None: ...

    def close(self) -> None: ...


TransportFactory = Callable[[EventSink], Transport]


class WebSocketTransport:
    """IRC-over-WebSocket transport built on the ``websockets`` client.

    Attributes:
        url (str): Upstream WebSocket URL.
        ws: Active connection, None before open and after close.
    """

    def __init__(self, on_event: EventSink, url: str = IRC_WS_URL) -> None:
        self.url = url
        self.ws = None
        self._on_event = on_event
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._close_task: asyncio.Task[None] | None = None
        self._closing = False
        self._closed_emitted = False

    def open(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def send(self, line: str) -> None:
        if self._closing or self.ws is None:
            logging.debug(f"🔌 Dropping outbound line on closed socket: {line.split(' ', 1)[0]}")
            return
        self._outbox.put_nowait(line)

    def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        if self.ws is not None:
            self._close_task = asyncio.get_running_loop().create_task(self.ws.close())
        elif self._task is not None:
            self._task.cancel()
        else:
            self._emit_closed(None, "closed before open")

    async def _run(self) -> None:
        code: int | None = None
        reason = ""
        try:
            logging.info(f"🔌 Connecting to {self.url}")
            async with websockets.connect(self.url, ping_interval=None) as ws:
                self.ws = ws
                if self._closing:
                    return
                self._on_event(TransportOpened())
                writer = asyncio.create_task(self._drain_outbox(ws))
                try:
                    async for payload in ws:
                        if isinstance(payload, bytes):
                            payload = payload.decode("utf-8", errors="replace")
                        self._on_event(TransportMessage(payload))
                finally:
                    writer.cancel()
                code = ws.close_code
                reason = ws.close_reason or ""
        except ConnectionClosed as e:
            code = e.rcvd.code if e.rcvd else None
            self._on_event(TransportError(e))
        except (WebSocketException, OSError, TimeoutError) as e:
            logging.warning(f"⚠️ WebSocket error: {type(e).__name__}: {e}")
            self._on_event(TransportError(e))
        finally:
            self.ws = None
            self._emit_closed(code, reason)

    async def _drain_outbox(self, ws) -> None:
        while True:
            line = await self._outbox.get()
            try:
                await ws.send(line)
            except ConnectionClosed:
                logging.debug("🔌 Send after close ignored")
                return

    def _emit_closed(self, code: int | None, reason: str) -> None:
        if self._closed_emitted:
            return
        self._closed_emitted = True
        logging.info(f"🔌 WebSocket closed: code={code}, reason={reason}")
        self._on_event(TransportClosed(code, reason))


def websocket_transport_factory(url: str = IRC_WS_URL) -> TransportFactory:
    def factory(on_event: EventSink) -> Transport:
        return WebSocketTransport(on_event, url)

    return factory
