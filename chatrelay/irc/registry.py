"""Reference-counted channel interest table."""

from __future__ import annotations

import logging

from ..logs.logger import logger
from .models import normalize_channel


class ChannelRegistry:
    """Tracks how many local consumers want each channel.

    ``join``/``part`` report the 0 -> 1 and 1 -> 0 transitions; the caller
    sends the matching JOIN/PART upstream. A channel is present in the table
    only while its count is positive, so the table doubles as the rejoin set
    after a reconnect.
    """

    def __init__(self) -> None:
        self._counts: dict[str, int] = {}

    def join(self, channel: str) -> bool:
        channel = normalize_channel(channel)
        if not channel:
            return False
        count = self._counts.get(channel, 0) + 1
        self._counts[channel] = count
        logger.log_event(
            "registry", "join", level=logging.DEBUG, channel=channel, refcount=count
        )
        return count == 1

    def part(self, channel: str) -> bool:
        channel = normalize_channel(channel)
        count = self._counts.get(channel, 0)
        if count <= 0:
            logger.log_event(
                "registry", "part_unknown", level=logging.DEBUG, channel=channel
            )
            return False
        if count == 1:
            del self._counts[channel]
        else:
            self._counts[channel] = count - 1
        logger.log_event(
            "registry", "part", level=logging.DEBUG, channel=channel, refcount=count - 1
        )
        return count == 1

    def refcount(self, channel: str) -> int:
        return self._counts.get(normalize_channel(channel), 0)

    def active_channels(self) -> list[str]:
        return list(self._counts)

    def __contains__(self, channel: object) -> bool:
        return isinstance(channel, str) and normalize_channel(channel) in self._counts

    def __len__(self) -> int:
        return len(self._counts)
