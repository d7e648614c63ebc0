"""Relay hub: consumer commands in, relay events out."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from typing import TYPE_CHECKING, Any

from ..api.backfill import parse_backfill
from ..auth.identity import IdentityManager
from ..errors.handling import log_error
from ..irc.models import Identity, normalize_channel
from ..irc.parser import ParsedMessage
from ..logs.logger import logger
from .broadcaster import Consumer
from .events import (
    BackfillBatch,
    ChatEvent,
    Command,
    IdentityInfo,
    ProfileResult,
    RequestProfile,
    SendText,
    Unwatch,
    UserProfile,
    Watch,
)

if TYPE_CHECKING:
    from ..irc.supervisor import ConnectionSupervisor

BackfillFetcher = Callable[[str], Awaitable[list[str]]]
ProfileLookup = Callable[[str], Awaitable[UserProfile | None]]


class RelayHub:
    """Connects local consumers to the shared upstream connection.

    Attributes:
        supervisor (ConnectionSupervisor): Owner of the upstream socket.
        identities (IdentityManager): Active identity and refresh.
        broadcaster (ConsumerBroadcaster): The supervisor's consumer list.
    """

    def __init__(
        self,
        supervisor: ConnectionSupervisor,
        identities: IdentityManager,
        *,
        fetch_backfill: BackfillFetcher | None = None,
        lookup_profile: ProfileLookup | None = None,
    ) -> None:
        self.supervisor = supervisor
        self.identities = identities
        self.broadcaster = supervisor.broadcaster
        self._fetch_backfill = fetch_backfill
        self._lookup_profile = lookup_profile
        self._tasks: set[asyncio.Task[Any]] = set()

        supervisor.identity = identities.identity
        supervisor.message_handler = self._on_chat_message
        supervisor.on_auth_failure = self._on_auth_failure
        identities.add_listener(self._on_identity_changed)

    def start(self) -> None:
        self.supervisor.connect()

    async def close(self) -> None:
        self.supervisor.close()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # ---- consumer lifecycle ----

    def register(self, consumer: Consumer) -> None:
        self.broadcaster.register(consumer)

    def deregister(self, consumer: Consumer) -> None:
        self.broadcaster.deregister(consumer)

    def handle_command(self, consumer: Consumer, command: Command) -> None:
        match command:
            case Watch(channel=channel):
                self.watch(consumer, channel)
            case Unwatch(channel=channel):
                self.unwatch(consumer, channel)
            case SendText(channel=channel, text=text):
                self.supervisor.send_text(channel, text)
            case RequestProfile(login=login):
                self._spawn(self._deliver_profile(consumer, login))

    def watch(self, consumer: Consumer, channel: str) -> None:
        channel = normalize_channel(channel)
        if not channel:
            return
        self.register(consumer)
        previous = consumer.channel
        if previous == channel:
            return
        consumer.channel = channel
        self.supervisor.join(channel)
        if previous:
            self.supervisor.part(previous)
        logger.log_event("consumer", "watch", channel=channel, previous=previous)
        self.broadcaster.deliver(consumer, IdentityInfo(self.identities.identity))
        if self._fetch_backfill is not None:
            self._spawn(self._deliver_backfill(consumer, channel))

    def unwatch(self, consumer: Consumer, channel: str) -> None:
        channel = normalize_channel(channel)
        if not channel or consumer.channel != channel:
            return
        consumer.channel = None
        self.supervisor.part(channel)
        logger.log_event("consumer", "unwatch", channel=channel)

    # ---- supervisor / identity callbacks ----

    def _on_chat_message(self, message: ParsedMessage) -> None:
        self.broadcaster.broadcast(ChatEvent(message))

    def _on_auth_failure(self, identity: Identity) -> None:
        logger.log_event("auth", "refresh_requested", level=logging.WARNING, user=identity.login)
        self._spawn(self.identities.refresh())

    def _on_identity_changed(self, identity: Identity | None) -> None:
        self.supervisor.set_identity(identity)
        self.broadcaster.broadcast(IdentityInfo(identity))

    # ---- background work ----

    async def _deliver_backfill(self, consumer: Consumer, channel: str) -> None:
        try:
            lines = await self._fetch_backfill(channel)
        except Exception as e:  # noqa: BLE001
            log_error("Backfill fetch failed", e, context={"channel": channel})
            lines = []
        messages = parse_backfill(lines)
        if consumer not in self.broadcaster or consumer.channel != channel:
            logger.log_event(
                "consumer", "backfill_discarded", level=logging.DEBUG, channel=channel
            )
            return
        logger.log_event(
            "consumer", "backfill", level=logging.DEBUG, channel=channel, count=len(messages)
        )
        if messages:
            self.broadcaster.deliver(consumer, BackfillBatch(channel, messages))

    async def _deliver_profile(self, consumer: Consumer, login: str) -> None:
        profile: UserProfile | None = None
        if self._lookup_profile is not None:
            try:
                profile = await self._lookup_profile(login)
            except Exception as e:  # noqa: BLE001
                log_error("Profile lookup failed", e, context={"login": login})
        self.broadcaster.deliver(consumer, ProfileResult(login, profile))

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
