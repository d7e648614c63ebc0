"""IRC message parsing utilities.

Lines follow the tagged TMI grammar::

    @key=value;flag :nick!user@host COMMAND #channel :trailing text
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

TagValue = str | bool

_TAG_UNESCAPES = {"s": " ", "n": "\n", "r": "\r", "\\": "\\", ":": ";"}
_TAG_ESCAPES = {" ": "\\s", "\n": "\\n", "\r": "\\r", "\\": "\\\\", ";": "\\:"}
_UNESCAPE_RE = re.compile(r"\\(.?)", re.DOTALL)
_ESCAPE_RE = re.compile(r"[ \n\r\\;]")


@dataclass(frozen=True)
class ParsedMessage:
    tags: Mapping[str, TagValue] = field(default_factory=dict)
    prefix: str | None = None
    command: str = ""
    channel: str | None = None
    trailing: str | None = None
    username: str | None = None

    def __post_init__(self) -> None:
        # Read-only view keeps the message immutable after parsing.
        object.__setattr__(self, "tags", MappingProxyType(dict(self.tags)))

    @property
    def message_id(self) -> str | None:
        value = self.tags.get("id")
        return value if isinstance(value, str) and value else None

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ParsedMessage:
        tags = data.get("tags") or {}
        return cls(
            tags=dict(tags) if isinstance(tags, Mapping) else {},
            prefix=_opt_str(data.get("prefix")),
            command=str(data.get("command") or ""),
            channel=_opt_str(data.get("channel")),
            trailing=_opt_str(data.get("trailing")),
            username=_opt_str(data.get("username")),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "tags": dict(self.tags),
            "prefix": self.prefix,
            "command": self.command,
            "channel": self.channel,
            "trailing": self.trailing,
            "username": self.username,
        }


def _opt_str(value: object) -> str | None:
    return value if isinstance(value, str) else None


def unescape_tag_value(value: str) -> str:
    """Decode the tag escapes in one pass so ``\\\\s`` stays a backslash + ``s``."""
    # Unknown escapes drop the backslash; a dangling one is discarded.
    return _UNESCAPE_RE.sub(lambda m: _TAG_UNESCAPES.get(m.group(1), m.group(1)), value)


def escape_tag_value(value: str) -> str:
    return _ESCAPE_RE.sub(lambda m: _TAG_ESCAPES[m.group(0)], value)


def parse_tags(raw_tags: str) -> dict[str, TagValue]:
    tags: dict[str, TagValue] = {}
    for pair in raw_tags.split(";"):
        if not pair:
            continue
        key, sep, value = pair.partition("=")
        tags[key] = unescape_tag_value(value) if sep else True
    return tags


def format_tags(tags: Mapping[str, TagValue]) -> str:
    parts = []
    for key, value in tags.items():
        if value is True:
            parts.append(key)
        else:
            parts.append(f"{key}={escape_tag_value(str(value))}")
    return ";".join(parts)


def is_ping(raw_line: str) -> bool:
    return raw_line == "PING" or raw_line.startswith("PING ")


def ping_argument(raw_line: str) -> str | None:
    _, _, arg = raw_line.partition(" ")
    arg = arg.strip().removeprefix(":")
    return arg or None


def parse_irc_message(raw_line: str) -> ParsedMessage | None:
    """Parse one wire line; returns None when no command can be found."""
    if not raw_line:
        return None
    rest = raw_line
    tags: dict[str, TagValue] = {}

    if rest.startswith("@"):
        tags_part, sep, rest = rest.partition(" ")
        if not sep:
            return None
        tags = parse_tags(tags_part[1:])

    prefix: str | None = None
    username: str | None = None
    if rest.startswith(":"):
        prefix, _, rest = rest[1:].partition(" ")
        username = prefix.split("!", 1)[0]

    parts = rest.split(" ")
    command = parts[0]
    if not command:
        return None

    channel: str | None = None
    param_start = 1
    if len(parts) > 1 and parts[1].startswith("#"):
        channel = parts[1][1:]
        param_start = 2

    trailing: str | None = None
    trailing_idx = rest.find(" :", len(command))
    if trailing_idx != -1:
        trailing = rest[trailing_idx + 2 :]
    elif len(parts) > param_start:
        # Backfill feeds omit the colon on single-word trailing text.
        trailing = " ".join(parts[param_start:])

    return ParsedMessage(
        tags=tags,
        prefix=prefix,
        command=command,
        channel=channel,
        trailing=trailing,
        username=username,
    )
