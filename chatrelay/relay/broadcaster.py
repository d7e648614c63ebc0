"""Fan-out of relay events to local consumers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

from ..logs.logger import logger

if TYPE_CHECKING:
    from .events import Event


class Consumer(Protocol):
    """A local client handle.

    ``channel`` is the single channel the consumer currently watches; the
    relay hub owns it. ``send`` raises when the client's transport is gone.
    """

    channel: str | None

    def send(self, event: Event) -> None: ...


class ConsumerGone(Exception):
    """Raised by consumers whose transport has already gone away."""


class ConsumerBroadcaster:
    """Live list of consumers with failure-tolerant delivery.

    Args:
        release_channel: Called once with a departing consumer's channel so
            the channel registry can drop its reference.
    """

    def __init__(self, release_channel: Callable[[str], None]) -> None:
        self._consumers: list[Consumer] = []
        self._release_channel = release_channel

    def __len__(self) -> int:
        return len(self._consumers)

    def __contains__(self, consumer: object) -> bool:
        return any(c is consumer for c in self._consumers)

    @property
    def consumers(self) -> list[Consumer]:
        return list(self._consumers)

    def register(self, consumer: Consumer) -> None:
        if consumer in self:
            return
        self._consumers.append(consumer)
        logger.log_event(
            "consumer", "registered", level=logging.DEBUG, total=len(self._consumers)
        )

    def deregister(self, consumer: Consumer) -> None:
        if consumer not in self:
            return
        self._consumers = [c for c in self._consumers if c is not consumer]
        channel, consumer.channel = consumer.channel, None
        logger.log_event(
            "consumer",
            "deregistered",
            level=logging.DEBUG,
            channel=channel,
            total=len(self._consumers),
        )
        if channel:
            self._release_channel(channel)

    def broadcast(self, event: Event) -> int:
        """Deliver to every registered consumer; returns the delivered count."""
        delivered = 0
        # Snapshot: a failing consumer is removed mid-pass.
        for consumer in list(self._consumers):
            if self.deliver(consumer, event):
                delivered += 1
        return delivered

    def deliver(self, consumer: Consumer, event: Event) -> bool:
        if consumer not in self:
            return False
        try:
            consumer.send(event)
        except Exception as e:  # noqa: BLE001
            logger.log_event(
                "consumer",
                "delivery_failed",
                level=logging.WARNING,
                channel=consumer.channel,
                error=str(e),
                error_type=type(e).__name__,
            )
            self.deregister(consumer)
            return False
        return True
