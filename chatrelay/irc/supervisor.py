"""Single owner of the upstream chat connection.

The supervisor is an explicit state machine::

    DISCONNECTED --connect()--> CONNECTING --001--> READY --close/error--> DISCONNECTED

Socket callbacks arrive as typed transport events and timers are created
through an injectable scheduler, so every transition can be driven without a
real socket or clock.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections.abc import Callable

from ..constants import (
    ANONYMOUS_NICK_PREFIX,
    ANONYMOUS_PASSWORD,
    IRC_CAPABILITIES,
    IRC_PONG_HOST,
    KEEPALIVE_INTERVAL_SECONDS,
    KEEPALIVE_PING_TOKEN,
)
from ..errors.handling import log_error
from ..logs.logger import logger
from ..relay.broadcaster import ConsumerBroadcaster
from .backoff import ReconnectBackoff
from .keepalive import IRCKeepalive, Scheduler, TimerHandle
from .models import ConnectionState, Identity, normalize_channel
from .parser import ParsedMessage, is_ping, parse_irc_message, ping_argument
from .registry import ChannelRegistry
from .transport import (
    Transport,
    TransportClosed,
    TransportError,
    TransportEvent,
    TransportFactory,
    TransportMessage,
    TransportOpened,
    websocket_transport_factory,
)

FORWARDED_COMMANDS = frozenset(
    {"PRIVMSG", "CLEARCHAT", "CLEARMSG", "USERNOTICE", "NOTICE"}
)
AUTH_FAILURE_NOTICES = (
    "Login authentication failed",
    "Improperly formatted auth",
    "Login unsuccessful",
)

MessageHandler = Callable[[ParsedMessage], None]
AuthFailureHandler = Callable[[Identity], None]


def anonymous_nick() -> str:
    # 4-5 digit suffix
    return f"{ANONYMOUS_NICK_PREFIX}{1000 + secrets.randbelow(99000)}"


class ConnectionSupervisor:  # pylint: disable=too-many-instance-attributes
    """Owns the connection state, channel interest table and timers.

    Attributes:
        state (ConnectionState): Current connection state.
        identity (Identity | None): Active identity, None for guest mode.
        registry (ChannelRegistry): Channel interest refcounts.
        broadcaster (ConsumerBroadcaster): Registered local consumers; a
            departing consumer releases its channel through ``part``.
        backoff (ReconnectBackoff): Reconnect delay policy.
        keepalive (IRCKeepalive): PING/PONG dead-connection detector.
        message_handler: Receives forwarded chat messages.
        on_auth_failure: Receives the rejected identity.
    """

    def __init__(
        self,
        transport_factory: TransportFactory | None = None,
        *,
        identity: Identity | None = None,
        scheduler: Scheduler | None = None,
        registry: ChannelRegistry | None = None,
        backoff: ReconnectBackoff | None = None,
        keepalive_interval: float = KEEPALIVE_INTERVAL_SECONDS,
    ) -> None:
        self.state = ConnectionState.DISCONNECTED
        self.identity = identity
        self.registry = registry or ChannelRegistry()
        self.backoff = backoff or ReconnectBackoff()
        self.broadcaster = ConsumerBroadcaster(release_channel=self.part)
        self.keepalive = IRCKeepalive(
            send_ping=self._send_keepalive_ping,
            on_dead=lambda: self.force_close("keepalive_timeout"),
            scheduler=self._get_scheduler,
            interval=keepalive_interval,
        )
        self.message_handler: MessageHandler | None = None
        self.on_auth_failure: AuthFailureHandler | None = None
        self.nick: str | None = None
        self._transport_factory = transport_factory or websocket_transport_factory()
        self._scheduler = scheduler
        self._transport: Transport | None = None
        self._generation = 0
        self._reconnect_handle: TimerHandle | None = None
        self._auth_failure_reported = False
        self._stopped = False

    # ---- public surface ----

    @property
    def is_ready(self) -> bool:
        return self.state is ConnectionState.READY

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    @property
    def user_label(self) -> str | None:
        return self.identity.login if self.identity else self.nick

    def connect(self) -> None:
        if self.state is not ConnectionState.DISCONNECTED:
            logger.log_event(
                "irc",
                "connect_skipped",
                level=logging.DEBUG,
                user=self.user_label,
                state=self.state.name,
            )
            return
        self._stopped = False
        self._cancel_reconnect()
        self._auth_failure_reported = False
        self._generation += 1
        generation = self._generation
        self._set_state(ConnectionState.CONNECTING)
        logger.log_event("irc", "connect_start", user=self.user_label)
        self._transport = self._transport_factory(
            lambda event: self.handle_transport_event(generation, event)
        )
        self._transport.open()

    def set_identity(self, identity: Identity | None) -> None:
        """Switch identity and reconnect at once, bypassing any backoff wait."""
        self.identity = identity
        logger.log_event(
            "irc",
            "identity_changed",
            user=identity.login if identity else None,
            anonymous=identity is None,
        )
        self.reconnect_now()

    def reconnect_now(self) -> None:
        self._cancel_reconnect()
        self._detach_transport()
        self.connect()

    def force_close(self, reason: str = "forced") -> None:
        """Close the socket; the close event drives the reconnect path."""
        if self._transport is None:
            return
        logger.log_event(
            "irc", "force_close", level=logging.WARNING, user=self.user_label, reason=reason
        )
        self._transport.close()

    def close(self) -> None:
        """Shut down for good: no reconnect is scheduled afterwards."""
        self._stopped = True
        self._cancel_reconnect()
        self._detach_transport()

    def join(self, channel: str) -> None:
        channel = normalize_channel(channel)
        if self.registry.join(channel) and self.is_ready:
            self.send_line(f"JOIN #{channel}")

    def part(self, channel: str) -> None:
        channel = normalize_channel(channel)
        if self.registry.part(channel) and self.is_ready:
            self.send_line(f"PART #{channel}")

    def send_text(self, channel: str, text: str) -> bool:
        channel = normalize_channel(channel)
        # CR/LF would smuggle extra protocol lines
        text = text.replace("\r", " ").replace("\n", " ").strip()
        if self.identity is None or not self.is_ready or not channel or not text:
            logger.log_event(
                "irc",
                "send_dropped",
                level=logging.WARNING,
                user=self.user_label,
                channel=channel,
                state=self.state.name,
                anonymous=self.identity is None,
            )
            return False
        self.send_line(f"PRIVMSG #{channel} :{text}")
        return True

    def send_line(self, line: str) -> None:
        if self._transport is None:
            return
        logger.log_event(
            "irc", "send_line", level=logging.DEBUG, user=self.user_label, command=line.split(" ", 1)[0]
        )
        self._transport.send(line)

    # ---- transport events ----

    def handle_transport_event(self, generation: int, event: TransportEvent) -> None:
        if generation != self._generation:
            logger.log_event(
                "irc", "stale_event", level=logging.DEBUG, event=type(event).__name__
            )
            return
        match event:
            case TransportOpened():
                self._on_open()
            case TransportMessage(data=data):
                self._on_payload(data)
            case TransportError(error=error):
                logger.log_event(
                    "irc",
                    "transport_error",
                    level=logging.WARNING,
                    user=self.user_label,
                    error=str(error),
                    error_type=type(error).__name__,
                )
                self.force_close("transport_error")
            case TransportClosed(code=code, reason=reason):
                self._on_closed(code, reason)

    def _on_open(self) -> None:
        self.send_line(f"CAP REQ :{IRC_CAPABILITIES}")
        if self.identity is not None:
            self.nick = self.identity.login.lower()
            self.send_line(f"PASS {self.identity.oauth_password}")
        else:
            self.nick = anonymous_nick()
            self.send_line(f"PASS {ANONYMOUS_PASSWORD}")
        self.send_line(f"NICK {self.nick}")
        logger.log_event(
            "irc",
            "auth_sent",
            level=logging.DEBUG,
            user=self.nick,
            anonymous=self.identity is None,
        )

    def _on_payload(self, data: str) -> None:
        for line in data.split("\n"):
            line = line.rstrip("\r")
            if not line:
                continue
            if is_ping(line):
                self.send_line(f"PONG :{ping_argument(line) or IRC_PONG_HOST}")
                continue
            msg = parse_irc_message(line)
            if msg is None:
                logger.log_event(
                    "irc", "unparsable_line", level=logging.DEBUG, user=self.user_label
                )
                continue
            self._dispatch(msg)

    def _dispatch(self, msg: ParsedMessage) -> None:
        match msg.command:
            case "001":
                self._on_welcome()
            case "PONG":
                self.keepalive.pong()
            case "RECONNECT":
                logger.log_event("irc", "server_reconnect", level=logging.WARNING, user=self.user_label)
                self.force_close("server_reconnect")
            case "NOTICE" if not self.is_ready and self._is_auth_failure(msg):
                self._on_auth_rejected(msg)
        if msg.command in FORWARDED_COMMANDS and self.message_handler is not None:
            try:
                self.message_handler(msg)
            except Exception as e:  # noqa: BLE001
                log_error("Message handler failed", e, context={"command": msg.command})

    def _on_welcome(self) -> None:
        self._set_state(ConnectionState.READY)
        self.backoff.reset()
        channels = self.registry.active_channels()
        for channel in channels:
            self.send_line(f"JOIN #{channel}")
        self.keepalive.start()
        logger.log_event(
            "irc", "ready", user=self.user_label, channels=len(channels)
        )

    def _on_closed(self, code: int | None, reason: str) -> None:
        self._transport = None
        self.keepalive.stop()
        self._set_state(ConnectionState.DISCONNECTED)
        logger.log_event(
            "irc", "disconnected", level=logging.WARNING, user=self.user_label, code=code, reason=reason
        )
        if not self._stopped:
            self._schedule_reconnect()

    @staticmethod
    def _is_auth_failure(msg: ParsedMessage) -> bool:
        text = msg.trailing or ""
        return any(text.startswith(notice) for notice in AUTH_FAILURE_NOTICES)

    def _on_auth_rejected(self, msg: ParsedMessage) -> None:
        logger.log_event(
            "irc", "auth_rejected", level=logging.ERROR, user=self.user_label, notice=msg.trailing
        )
        if self.identity is None or self._auth_failure_reported:
            return
        self._auth_failure_reported = True
        if self.on_auth_failure is not None:
            self.on_auth_failure(self.identity)

    # ---- internals ----

    def _set_state(self, new_state: ConnectionState) -> None:
        if self.state != new_state:
            logger.log_event(
                "irc",
                "state_change",
                level=logging.DEBUG,
                user=self.user_label,
                old_state=self.state.name,
                new_state=new_state.name,
            )
            self.state = new_state

    def _get_scheduler(self) -> Scheduler:
        return self._scheduler or asyncio.get_running_loop()

    def _send_keepalive_ping(self) -> None:
        self.send_line(f"PING :{KEEPALIVE_PING_TOKEN}")

    def _schedule_reconnect(self) -> None:
        self._cancel_reconnect()
        delay = self.backoff.next_delay()
        logger.log_event(
            "irc", "reconnect_scheduled", user=self.user_label, delay=delay
        )
        self._reconnect_handle = self._get_scheduler().call_later(delay, self._reconnect_fired)

    def _reconnect_fired(self) -> None:
        self._reconnect_handle = None
        self.connect()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    def _detach_transport(self) -> None:
        # Bumping the generation makes the old socket's late events no-ops.
        self._generation += 1
        old, self._transport = self._transport, None
        self.keepalive.stop()
        self._set_state(ConnectionState.DISCONNECTED)
        if old is not None:
            old.close()
