"""Reconnect delay policy."""

from __future__ import annotations

from ..constants import RECONNECT_BASE_DELAY, RECONNECT_MAX_DELAY, RECONNECT_MULTIPLIER


class ReconnectBackoff:
    """Exponential reconnect delay: floor, doubling, capped until reset.

    ``next_delay`` returns the delay to wait now and advances the policy, so
    repeated failures observe ``1, 2, 4, 8, 16, 30, 30, ...`` with the default
    constants.
    """

    def __init__(
        self,
        base_delay: float = RECONNECT_BASE_DELAY,
        max_delay: float = RECONNECT_MAX_DELAY,
        multiplier: float = RECONNECT_MULTIPLIER,
    ) -> None:
        if base_delay <= 0 or max_delay < base_delay or multiplier < 1:
            raise ValueError("invalid backoff parameters")
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.multiplier = multiplier
        self._delay = base_delay

    @property
    def current_delay(self) -> float:
        return self._delay

    def next_delay(self) -> float:
        delay = self._delay
        self._delay = min(self._delay * self.multiplier, self.max_delay)
        return delay

    def reset(self) -> None:
        self._delay = self.base_delay
