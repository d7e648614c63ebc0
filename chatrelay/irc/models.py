"""Shared IRC data models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class ConnectionState(Enum):
    DISCONNECTED = auto()
    CONNECTING = auto()
    READY = auto()


@dataclass(frozen=True, slots=True)
class Identity:
    """Bearer-token identity used to authenticate the upstream connection."""

    login: str
    token: str
    user_id: str | None = None

    @property
    def oauth_password(self) -> str:
        token = self.token
        return token if token.startswith("oauth:") else f"oauth:{token}"

    def public_view(self) -> dict[str, str | None]:
        # Never hand the token to consumers.
        return {"login": self.login, "userId": self.user_id}


def normalize_channel(channel: str) -> str:
    return channel.strip().lstrip("#").lower()
