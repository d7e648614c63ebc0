"""Console consumer: renders one channel's merged view to the log."""

from __future__ import annotations

import logging

from .constants import DEFAULT_MESSAGE_CAP
from .logs.logger import logger
from .relay.events import Event, IdentityInfo, ProfileResult
from .relay.merge import MessageMerge


class ConsoleConsumer:
    """Local consumer that logs every newly rendered chat line.

    Live and backfilled messages share one ``MessageMerge``, so a message seen
    in both is printed once.
    """

    def __init__(self, channel: str, message_cap: int = DEFAULT_MESSAGE_CAP) -> None:
        self.channel: str | None = None
        self.merge = MessageMerge(channel, message_cap)

    def send(self, event: Event) -> None:
        match event:
            case IdentityInfo(identity=identity):
                logging.info(
                    f"👤 Relay identity: {identity.login if identity else 'anonymous'}"
                )
            case ProfileResult():
                return
            case _:
                for message in self.merge.handle_event(event):
                    logger.log_event(
                        "consumer",
                        "chat_line",
                        channel=message.channel,
                        text=f"{message.username or '?'}: {message.trailing or ''}",
                    )
