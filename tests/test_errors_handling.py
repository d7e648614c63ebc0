"""Tests for error classification and API error mapping."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock, patch

import aiohttp
import pytest
from aiohttp import ClientResponseError

from chatrelay.errors.handling import handle_api_error, is_retryable_error, log_error
from chatrelay.errors.internal import (
    InternalError,
    NetworkError,
    OAuthError,
    ParsingError,
    RateLimitError,
)
from chatrelay.logging_config import error_aggregator


def _response_error(status: int) -> ClientResponseError:
    mock_request = MagicMock()
    mock_request.real_url = "http://test.com"
    return ClientResponseError(mock_request, (), status=status)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (_response_error(401), OAuthError),
        (_response_error(429), RateLimitError),
        (_response_error(404), ParsingError),
        (_response_error(500), NetworkError),
        (OSError("Network error"), NetworkError),
        (TimeoutError(), NetworkError),
        (aiohttp.ClientConnectionError("refused"), NetworkError),
        (ValueError("bad json"), ParsingError),
    ],
)
async def test_handle_api_error_maps_exceptions(error, expected):
    """handle_api_error re-raises failures as the matching internal error."""

    async def failing_operation():
        raise error

    with pytest.raises(expected) as exc_info:
        await handle_api_error(failing_operation, "test context")
    assert exc_info.value.__cause__ is error


@pytest.mark.asyncio
async def test_handle_api_error_passes_through_internal_errors():
    async def failing_operation():
        raise ParsingError("already mapped")

    with pytest.raises(ParsingError, match="already mapped"):
        await handle_api_error(failing_operation, "test context")


@pytest.mark.asyncio
async def test_handle_api_error_returns_result():
    async def operation():
        return {"ok": True}

    assert await handle_api_error(operation, "test context") == {"ok": True}


@pytest.mark.asyncio
async def test_oauth_error_carries_status():
    async def failing_operation():
        raise _response_error(401)

    with pytest.raises(OAuthError) as exc_info:
        await handle_api_error(failing_operation, "Helix users")
    assert exc_info.value.data["http_status"] == 401
    assert exc_info.value.data["operation"] == "Helix users"


@pytest.mark.parametrize(
    ("error", "retryable"),
    [
        (NetworkError("x"), True),
        (RateLimitError(), True),
        (OSError(), True),
        (TimeoutError(), True),
        (OAuthError("x"), False),
        (ParsingError("x"), False),
        (RuntimeError(), False),
    ],
)
def test_is_retryable_error(error, retryable):
    assert is_retryable_error(error) is retryable


@pytest.mark.parametrize(
    ("error", "category"),
    [
        (NetworkError("x"), "network"),
        (OAuthError("x"), "auth"),
        (RateLimitError(), "ratelimit"),
        (ParsingError("x"), "parsing"),
        (InternalError("x"), "internal"),
        (RuntimeError("x"), "unknown"),
    ],
)
def test_log_error_categorizes(error, category):
    with patch("chatrelay.errors.handling.log_structured_error") as structured:
        log_error("Something failed", error, context={"k": "v"})
    structured.assert_called_once()
    kwargs = structured.call_args.kwargs
    assert kwargs["error_type"] == category
    assert kwargs["context"] == {"k": "v"}
    assert kwargs["message"].startswith("Something failed: ")


def test_log_error_records_in_aggregator(caplog):
    with caplog.at_level(logging.ERROR):
        log_error("Backfill fetch failed", NetworkError("down"), context={"channel": "c"})
    assert "[NETWORK] Backfill fetch failed: down" in caplog.text
    assert error_aggregator.get_error_summary()["network"]["total_count"] == 1


def test_internal_error_copies_data():
    data = {"a": 1}
    error = InternalError("x", data=data)
    data["a"] = 2
    assert error.data == {"a": 1}


def test_rate_limit_error_keeps_retry_hint():
    assert RateLimitError(retry_after=3.0).data == {"retry_after": 3.0}
    assert RateLimitError().retry_after is None


@pytest.mark.asyncio
async def test_handle_api_error_reads_retry_after_header():
    mock_request = MagicMock()
    mock_request.real_url = "http://test.com"
    error = ClientResponseError(mock_request, (), status=429, headers={"Retry-After": "7"})

    async def operation():
        raise error

    with pytest.raises(RateLimitError) as excinfo:
        await handle_api_error(operation, "recent-messages #chan")
    assert excinfo.value.retry_after == 7.0
    assert excinfo.value.data["http_status"] == 429
