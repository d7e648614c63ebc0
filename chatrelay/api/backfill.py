"""Historical chat backfill from the recent-messages service.

The service returns raw IRC lines; some of them omit the ``:`` before a
single-word trailing parameter, which the parser tolerates.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any
from urllib.parse import quote

import aiohttp
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from ..constants import (
    BACKFILL_MAX_ATTEMPTS,
    BACKFILL_RETRY_AFTER_CAP,
    BACKFILL_RETRY_BASE_DELAY,
    BACKFILL_TIMEOUT_SECONDS,
    BACKFILL_URL,
)
from ..errors.handling import handle_api_error, is_retryable_error
from ..errors.internal import ParsingError, RateLimitError
from ..irc.models import normalize_channel
from ..irc.parser import ParsedMessage, parse_irc_message

BACKFILL_COMMANDS = frozenset({"PRIVMSG", "CLEARCHAT", "CLEARMSG"})


class wait_retry_after(wait_base):
    """Wait as long as a RateLimitError's ``retry_after`` asks, up to ``cap``.

    Attempts that failed any other way (or without a hint) use ``fallback``.
    """

    def __init__(self, fallback: wait_base, cap: float) -> None:
        self.fallback = fallback
        self.cap = cap

    def __call__(self, retry_state) -> float:
        outcome = retry_state.outcome
        error = outcome.exception() if outcome is not None and outcome.failed else None
        hint = error.retry_after if isinstance(error, RateLimitError) else None
        if hint is not None:
            return min(max(hint, 0.0), self.cap)
        return self.fallback(retry_state)


def parse_backfill(lines: Iterable[str]) -> tuple[ParsedMessage, ...]:
    parsed = []
    for raw in lines:
        msg = parse_irc_message(raw)
        if msg is not None and msg.command in BACKFILL_COMMANDS:
            parsed.append(msg)
    return tuple(parsed)


class RecentMessagesClient:
    """Fetches the recent message history of a channel.

    Attributes:
        base_url (str): Service endpoint without the trailing channel segment.
        max_attempts (int): Attempts for transient failures (network, 5xx, 429).
            A 429 waits for its Retry-After hint, capped at ``retry_after_cap``.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str = BACKFILL_URL,
        max_attempts: int = BACKFILL_MAX_ATTEMPTS,
        timeout: float = BACKFILL_TIMEOUT_SECONDS,
        retry_base_delay: float = BACKFILL_RETRY_BASE_DELAY,
        retry_after_cap: float = BACKFILL_RETRY_AFTER_CAP,
    ) -> None:
        if not session:
            raise ValueError("aiohttp session required")
        self._session = session
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max_attempts
        self.timeout = timeout
        self.retry_base_delay = retry_base_delay
        self.retry_after_cap = retry_after_cap

    async def fetch(self, channel: str) -> list[str]:
        """Fetch raw history lines for a channel.

        Raises:
            InternalError subclasses: Once retries are exhausted or on a
                non-retryable failure.
        """
        channel = normalize_channel(channel)
        url = f"{self.base_url}/{quote(channel)}"

        async def _perform() -> dict[str, Any]:
            async with self._session.get(
                url, timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as resp:
                resp.raise_for_status()
                return await resp.json()

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_retry_after(
                wait_exponential(multiplier=self.retry_base_delay, max=5),
                cap=self.retry_after_cap,
            ),
            retry=retry_if_exception(is_retryable_error),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logging.info(
                        f"🔁 Retrying backfill for #{channel} "
                        f"(attempt {attempt.retry_state.attempt_number})"
                    )
                payload = await handle_api_error(_perform, f"recent-messages #{channel}")

        messages = payload.get("messages")
        if not isinstance(messages, list):
            raise ParsingError("recent-messages payload without message list", data={"channel": channel})
        lines = [m for m in messages if isinstance(m, str)]
        logging.debug(f"📜 Backfill #{channel}: {len(lines)} lines")
        return lines
