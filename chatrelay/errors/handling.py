"""Map raw failures onto relay error categories and log them."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

import aiohttp

from ..logging_config import log_structured_error
from .internal import (
    InternalError,
    NetworkError,
    OAuthError,
    ParsingError,
    RateLimitError,
)

# First match wins; InternalError must stay after its subclasses.
_CATEGORIES: tuple[tuple[type[BaseException] | tuple[type[BaseException], ...], str], ...] = (
    ((NetworkError, OSError, TimeoutError), "network"),
    (OAuthError, "auth"),
    (RateLimitError, "ratelimit"),
    (ParsingError, "parsing"),
    (InternalError, "internal"),
)

_RETRYABLE = (NetworkError, RateLimitError, OSError, TimeoutError)


def error_category(error: BaseException) -> str:
    for types, name in _CATEGORIES:
        if isinstance(error, types):
            return name
    return "unknown"


def log_error(message: str, error: Exception, context: dict = None) -> None:
    """Log ``error`` under its category and count it in the error aggregator.

    Args:
        message: What the relay was doing when it failed.
        error: The exception.
        context: Extra fields (channel, operation, status...).
    """
    log_structured_error(
        error_type=error_category(error),
        message=f"{message}: {error}",
        exception=error,
        context=context,
    )


def _retry_after(error: BaseException) -> float | None:
    headers = getattr(error, "headers", None) or {}
    value = headers.get("Retry-After")
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None


def is_retryable_error(error: BaseException) -> bool:
    """Transient failures worth another attempt."""
    return isinstance(error, _RETRYABLE)


def _translate(error: Exception, context: str, data: dict[str, object]) -> InternalError:
    status = data.get("http_status")
    if status == 401:
        return OAuthError(f"{context}: token rejected ({error})", data=data)
    if status == 429:
        return RateLimitError(
            f"{context}: rate limited", retry_after=_retry_after(error), data=data
        )
    if isinstance(status, int):
        if status >= 500:
            return NetworkError(f"{context}: server error HTTP {status}", data=data)
        return ParsingError(f"{context}: unexpected HTTP {status} ({error})", data=data)
    if isinstance(error, aiohttp.ClientConnectionError | OSError | TimeoutError):
        return NetworkError(f"{context}: {error or type(error).__name__}", data=data)
    return ParsingError(f"{context}: malformed response ({error})", data=data)


T = TypeVar("T")


async def handle_api_error(operation: Callable[[], Awaitable[T]], context: str) -> T:
    """Run an HTTP ``operation``, converting its failures to InternalError.

    HTTP 401 becomes OAuthError, 429 RateLimitError, 5xx and connection
    failures NetworkError, and anything else (other statuses, bad JSON)
    ParsingError. The failure is logged once here; InternalErrors raised by
    ``operation`` itself pass through untouched.

    Args:
        operation: Coroutine function performing the request.
        context: Short label for logs, e.g. ``"Helix users"``.
    """
    try:
        return await operation()
    except InternalError:
        raise
    except (aiohttp.ClientError, ValueError, OSError, TimeoutError) as e:
        data: dict[str, object] = {"operation": context, "timestamp": time.time()}
        status = getattr(e, "status", None)
        if status is not None:
            data["http_status"] = status
        log_error(f"API operation failed in {context}", e, context=data)
        raise _translate(e, context, data) from e
