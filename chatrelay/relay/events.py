"""Consumer-facing commands and events.

Both are closed unions of frozen dataclasses; callers dispatch with ``match``.
The ``type`` strings are the JSON discriminators used by the local server.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..errors.internal import ParsingError
from ..irc.models import Identity
from ..irc.parser import ParsedMessage


@dataclass(frozen=True, slots=True)
class UserProfile:
    display_name: str
    profile_image_url: str | None = None
    created_at: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "displayName": self.display_name,
            "profileImageUrl": self.profile_image_url,
            "createdAt": self.created_at,
        }


# ---- commands ----


@dataclass(frozen=True, slots=True)
class Watch:
    channel: str


@dataclass(frozen=True, slots=True)
class Unwatch:
    channel: str


@dataclass(frozen=True, slots=True)
class SendText:
    channel: str
    text: str


@dataclass(frozen=True, slots=True)
class RequestProfile:
    login: str


Command = Watch | Unwatch | SendText | RequestProfile


# ---- events ----


@dataclass(frozen=True, slots=True)
class ChatEvent:
    message: ParsedMessage


@dataclass(frozen=True, slots=True)
class IdentityInfo:
    identity: Identity | None


@dataclass(frozen=True, slots=True)
class BackfillBatch:
    channel: str
    messages: tuple[ParsedMessage, ...]


@dataclass(frozen=True, slots=True)
class ProfileResult:
    login: str
    profile: UserProfile | None


Event = ChatEvent | IdentityInfo | BackfillBatch | ProfileResult


def _require_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ParsingError(f"command field '{key}' must be a non-empty string", data={"field": key})
    return value


def command_from_dict(data: Mapping[str, Any]) -> Command:
    """Build a command from its JSON object form.

    Raises:
        ParsingError: Unknown ``type`` or missing fields.
    """
    match data.get("type"):
        case "watch":
            return Watch(_require_str(data, "channel"))
        case "unwatch":
            return Unwatch(_require_str(data, "channel"))
        case "send-text":
            return SendText(_require_str(data, "channel"), _require_str(data, "text"))
        case "request-profile":
            return RequestProfile(_require_str(data, "login"))
        case other:
            raise ParsingError(f"unknown command type: {other!r}", data={"type": other})


def event_to_dict(event: Event) -> dict[str, Any]:
    match event:
        case ChatEvent(message=message):
            return {"type": "chat", "data": message.to_dict()}
        case IdentityInfo(identity=identity):
            return {
                "type": "identity-info",
                "account": identity.public_view() if identity else None,
            }
        case BackfillBatch(channel=channel, messages=messages):
            return {
                "type": "backfill",
                "channel": channel,
                "messages": [m.to_dict() for m in messages],
            }
        case ProfileResult(login=login, profile=profile):
            return {
                "type": "profile",
                "login": login,
                "profile": profile.to_dict() if profile else None,
            }
    raise TypeError(f"not an event: {event!r}")
