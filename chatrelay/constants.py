"""
Tunables for the chat relay.

Every constant below reads an environment variable of the same name and
falls back to the default shown when it is unset or unparsable.
"""

import os
from collections.abc import Callable
from typing import TypeVar

N = TypeVar("N", int, float)


def _get_env(name: str, default: N, cast: Callable[[str], N]) -> N:
    """Parse ``name`` from the environment with ``cast``.

    An unparsable value prints a warning (logging is not configured yet at
    import time) and yields ``default``.
    """
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return cast(value)
    except ValueError:
        print(f"Warning: Invalid {cast.__name__} value for {name}='{value}', using default {default}")
        return default


def _get_env_int(name: str, default: int) -> int:
    return _get_env(name, default, int)


def _get_env_float(name: str, default: float) -> float:
    return _get_env(name, default, float)


def _get_env_str(name: str, default: str) -> str:
    value = (os.getenv(name) or "").strip()
    return value or default


# Upstream chat endpoint (IRC over WebSocket)
IRC_WS_URL = _get_env_str("IRC_WS_URL", "wss://irc-ws.chat.twitch.tv:443")
IRC_CAPABILITIES = _get_env_str(
    "IRC_CAPABILITIES", "twitch.tv/tags twitch.tv/commands"
)
IRC_PONG_HOST = _get_env_str("IRC_PONG_HOST", "tmi.twitch.tv")

# Anonymous (guest) login
ANONYMOUS_PASSWORD = _get_env_str("ANONYMOUS_PASSWORD", "SCHMOOPIIE")
ANONYMOUS_NICK_PREFIX = _get_env_str("ANONYMOUS_NICK_PREFIX", "guest")

# Keepalive: client PING cadence; a missing PONG by the next tick closes the socket
KEEPALIVE_INTERVAL_SECONDS = _get_env_float("KEEPALIVE_INTERVAL_SECONDS", 60.0)
KEEPALIVE_PING_TOKEN = _get_env_str("KEEPALIVE_PING_TOKEN", "chatrelay")

# Reconnect backoff (seconds): floor doubles up to the cap, reset on welcome
RECONNECT_BASE_DELAY = _get_env_float("RECONNECT_BASE_DELAY", 1.0)
RECONNECT_MAX_DELAY = _get_env_float("RECONNECT_MAX_DELAY", 30.0)
RECONNECT_MULTIPLIER = _get_env_float("RECONNECT_MULTIPLIER", 2.0)

# Per-consumer rendered message cap (also the dedup window)
DEFAULT_MESSAGE_CAP = _get_env_int("DEFAULT_MESSAGE_CAP", 500)
MIN_MESSAGE_CAP = 100
MAX_MESSAGE_CAP = 2000

# Historical backfill (recent-messages service)
BACKFILL_URL = _get_env_str(
    "BACKFILL_URL", "https://recent-messages.robotty.de/api/v2/recent-messages"
)
BACKFILL_TIMEOUT_SECONDS = _get_env_float("BACKFILL_TIMEOUT_SECONDS", 10.0)
BACKFILL_MAX_ATTEMPTS = _get_env_int("BACKFILL_MAX_ATTEMPTS", 3)
BACKFILL_RETRY_BASE_DELAY = _get_env_float("BACKFILL_RETRY_BASE_DELAY", 0.5)
# Upper bound on a server-provided Retry-After wait
BACKFILL_RETRY_AFTER_CAP = _get_env_float("BACKFILL_RETRY_AFTER_CAP", 30.0)

# Twitch HTTP APIs
HELIX_BASE_URL = _get_env_str("HELIX_BASE_URL", "https://api.twitch.tv/helix")
OAUTH_VALIDATE_URL = _get_env_str(
    "OAUTH_VALIDATE_URL", "https://id.twitch.tv/oauth2/validate"
)
HTTP_REQUEST_TIMEOUT_SECONDS = _get_env_float("HTTP_REQUEST_TIMEOUT_SECONDS", 10.0)

# Local consumer server
RELAY_SERVER_HOST = _get_env_str("RELAY_SERVER_HOST", "127.0.0.1")
RELAY_SERVER_PORT = _get_env_int("RELAY_SERVER_PORT", 8765)
# Events queued for a client that stops reading before it is dropped
CONSUMER_QUEUE_MAX = _get_env_int("CONSUMER_QUEUE_MAX", 1000)

# Config file
CONFIG_FILE_DEFAULT = _get_env_str("CHATRELAY_CONF_FILE", "chatrelay.conf")
