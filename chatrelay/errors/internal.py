"""Error categories raised by the relay's HTTP clients and command decoding.

Raw aiohttp, JSON and websockets failures are wrapped into one of these at
the boundary where they occur, so the retry loop and the hub only reason
about categories:

  NetworkError    upstream unreachable, timed out or answering 5xx
  OAuthError      token rejected (HTTP 401); the identity may be refreshed
  ParsingError    malformed payload, unexpected status or bad local command
  RateLimitError  HTTP 429, optionally with the server's retry hint
"""

from __future__ import annotations

from collections.abc import Mapping


class InternalError(Exception):
    """Base class for relay errors.

    Attributes:
        data: Structured context (operation name, HTTP status, channel...)
            merged into the structured error log.
    """

    data: dict[str, object]

    def __init__(
        self, message: str, *, data: Mapping[str, object] | None = None
    ) -> None:
        super().__init__(message)
        self.data = dict(data) if data else {}


class NetworkError(InternalError):
    """Transient failure talking to Twitch or the recent-messages service."""


class OAuthError(InternalError):
    """The bearer token was rejected or could not be validated."""


class ParsingError(InternalError):
    """A response or a local consumer command did not have the expected shape."""


class RateLimitError(InternalError):
    """The remote service answered HTTP 429.

    Args:
        message: Error text.
        retry_after: Seconds the server asked us to wait, when it said so.
        data: Optional structured context.
    """

    def __init__(
        self,
        message: str = "Rate limited",
        *,
        retry_after: float | None = None,
        data: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message, data=data)
        self.retry_after = retry_after
        if retry_after is not None:
            self.data["retry_after"] = retry_after


__all__ = [
    "InternalError",
    "NetworkError",
    "OAuthError",
    "ParsingError",
    "RateLimitError",
]
