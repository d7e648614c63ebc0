"""Local WebSocket server: one consumer per client connection.

Clients send JSON command objects (``watch``, ``unwatch``, ``send-text``,
``request-profile``) and receive JSON event objects (``chat``,
``identity-info``, ``backfill``, ``profile``).
"""

from __future__ import annotations

import asyncio
import json
import logging

import websockets
from websockets.exceptions import ConnectionClosed

from .constants import CONSUMER_QUEUE_MAX, RELAY_SERVER_HOST, RELAY_SERVER_PORT
from .errors.handling import log_error
from .errors.internal import ParsingError
from .logs.logger import logger
from .relay.broadcaster import ConsumerGone
from .relay.events import Event, command_from_dict, event_to_dict
from .relay.hub import RelayHub


class WebSocketConsumer:
    """Consumer backed by a client connection.

    ``send`` only queues; a writer task flushes the queue to the socket. A
    closed connection or a full queue raises ``ConsumerGone`` so the
    broadcaster drops the consumer. On a full queue the socket is closed
    with 1008 as well, so the client sees the drop and can reconnect.
    """

    OVERFLOW_CLOSE_CODE = 1008

    def __init__(self, ws, queue_max: int = CONSUMER_QUEUE_MAX) -> None:
        self.ws = ws
        self.channel: str | None = None
        self.closed = False
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_max)
        self._close_task: asyncio.Task | None = None

    def send(self, event: Event) -> None:
        if self.closed:
            raise ConsumerGone("client connection closed")
        try:
            self._queue.put_nowait(json.dumps(event_to_dict(event)))
        except asyncio.QueueFull as e:
            self.abort("client is not reading")
            raise ConsumerGone("client is not reading") from e

    def abort(self, reason: str) -> None:
        """Stop accepting events and close the client connection."""
        if self.closed:
            return
        self.closed = True
        self._close_task = asyncio.get_running_loop().create_task(
            self.ws.close(code=self.OVERFLOW_CLOSE_CODE, reason=reason)
        )

    async def write_loop(self) -> None:
        while not self.closed:
            payload = await self._queue.get()
            try:
                await self.ws.send(payload)
            except ConnectionClosed:
                self.closed = True
                return


class LocalRelayServer:
    """Serves the relay hub to local WebSocket clients.

    Attributes:
        hub (RelayHub): Relay the clients are attached to.
        host (str): Bind address.
        port (int): Bind port. 0 lets the OS choose one (read it back from
            ``bound_port``); the CLI only starts a server for a non-zero
            configured port.
    """

    def __init__(
        self, hub: RelayHub, host: str = RELAY_SERVER_HOST, port: int = RELAY_SERVER_PORT
    ) -> None:
        self.hub = hub
        self.host = host
        self.port = port
        self._server = None

    @property
    def bound_port(self) -> int | None:
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        if self._server is not None:
            return
        self._server = await websockets.serve(self.handle_client, self.host, self.port)
        logging.info(f"🛰️ Local relay server listening on ws://{self.host}:{self.bound_port}")

    async def stop(self) -> None:
        if self._server is None:
            return
        server, self._server = self._server, None
        server.close()
        await server.wait_closed()
        logging.info("🛰️ Local relay server stopped")

    async def handle_client(self, ws) -> None:
        consumer = WebSocketConsumer(ws)
        self.hub.register(consumer)
        writer = asyncio.create_task(consumer.write_loop())
        try:
            async for raw in ws:
                self.handle_payload(consumer, raw)
        except ConnectionClosed as e:
            logger.log_event(
                "server", "client_closed", level=logging.DEBUG, channel=consumer.channel, code=e.code
            )
        finally:
            consumer.closed = True
            writer.cancel()
            self.hub.deregister(consumer)

    def handle_payload(self, consumer: WebSocketConsumer, raw: str | bytes) -> None:
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ParsingError("command must be a JSON object")
            command = command_from_dict(data)
        except (ValueError, ParsingError) as e:
            log_error("Rejected client command", e, context={"channel": consumer.channel})
            return
        logger.log_event(
            "server", "command", level=logging.DEBUG, channel=consumer.channel, command=type(command).__name__
        )
        self.hub.handle_command(consumer, command)
