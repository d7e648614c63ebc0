"""IRC connection package exports."""

from .backoff import ReconnectBackoff
from .keepalive import IRCKeepalive
from .models import ConnectionState, Identity, normalize_channel
from .parser import ParsedMessage, parse_irc_message
from .registry import ChannelRegistry
from .supervisor import ConnectionSupervisor
from .transport import WebSocketTransport

__all__ = [
    "ChannelRegistry",
    "ConnectionState",
    "ConnectionSupervisor",
    "IRCKeepalive",
    "Identity",
    "ParsedMessage",
    "ReconnectBackoff",
    "WebSocketTransport",
    "normalize_channel",
    "parse_irc_message",
]
