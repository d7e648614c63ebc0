"""Client-side PING/PONG keepalive."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from ..constants import KEEPALIVE_INTERVAL_SECONDS
from ..logs.logger import logger


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class IRCKeepalive:
    """Sends a PING every interval and declares the socket dead on a missed PONG.

    The PONG flag is checked at the start of each tick: a PING sent on tick N
    must be answered before tick N + 1 or ``on_dead`` fires instead of the next
    PING.
    """

    def __init__(
        self,
        send_ping: Callable[[], None],
        on_dead: Callable[[], None],
        scheduler: Callable[[], Scheduler],
        interval: float = KEEPALIVE_INTERVAL_SECONDS,
    ) -> None:
        self._send_ping = send_ping
        self._on_dead = on_dead
        self._scheduler = scheduler
        self.interval = interval
        self.pong_received = True
        self._handle: TimerHandle | None = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        self.stop()
        self.pong_received = True
        self._schedule()

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def pong(self) -> None:
        self.pong_received = True

    def _schedule(self) -> None:
        self._handle = self._scheduler().call_later(self.interval, self._tick)

    def _tick(self) -> None:
        self._handle = None
        if not self.pong_received:
            logger.log_event(
                "keepalive", "pong_timeout", level=logging.WARNING, interval=self.interval
            )
            self._on_dead()
            return
        self.pong_received = False
        self._send_ping()
        self._schedule()
