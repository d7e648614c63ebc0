"""Error hierarchy and error handling helpers."""

from .handling import handle_api_error, log_error  # noqa: F401
from .internal import (  # noqa: F401
    InternalError,
    NetworkError,
    OAuthError,
    ParsingError,
    RateLimitError,
)

__all__ = [
    "InternalError",
    "NetworkError",
    "OAuthError",
    "ParsingError",
    "RateLimitError",
    "handle_api_error",
    "log_error",
]
