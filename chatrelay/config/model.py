from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..constants import (
    DEFAULT_MESSAGE_CAP,
    MAX_MESSAGE_CAP,
    MIN_MESSAGE_CAP,
    RELAY_SERVER_HOST,
    RELAY_SERVER_PORT,
)
from ..irc.models import Identity, normalize_channel


class AccountConfig(BaseModel):
    """Stored login for the upstream connection.

    Attributes:
        login: Twitch login name.
        token: OAuth access token, with or without the ``oauth:`` prefix.
        user_id: Numeric Twitch user id, when known.
    """

    login: str = Field(min_length=1, max_length=25)
    token: str = Field(min_length=1)
    user_id: str | None = None

    @field_validator("login", mode="before")
    @classmethod
    def validate_login(cls, v: Any) -> str:
        if not isinstance(v, str):
            raise ValueError("login must be a string")
        return v.strip().lower()

    def to_identity(self) -> Identity:
        return Identity(login=self.login, token=self.token, user_id=self.user_id)


class RelayConfig(BaseModel):
    """Top-level relay configuration.

    Attributes:
        client_id: Twitch application client id sent with Helix requests.
        account: Stored login, None to run as a guest.
        channels: Channels the console consumer watches at startup.
        message_cap: Rendered lines kept per consumer.
        server_host: Bind address of the local consumer server.
        server_port: Bind port of the local consumer server, 0 disables it.
    """

    client_id: str | None = None
    account: AccountConfig | None = None
    channels: list[str] = Field(default_factory=list)
    message_cap: int = Field(
        default=DEFAULT_MESSAGE_CAP, ge=MIN_MESSAGE_CAP, le=MAX_MESSAGE_CAP
    )
    server_host: str = RELAY_SERVER_HOST
    server_port: int = Field(default=RELAY_SERVER_PORT, ge=0, le=65535)

    @field_validator("channels", mode="before")
    @classmethod
    def validate_channels(cls, v: Any) -> list[str]:
        """Normalize channels: strip '#' and whitespace, lowercase, dedup, keep order."""
        if not isinstance(v, list):
            raise ValueError("channels must be a list")
        validated = [normalize_channel(c) for c in v if isinstance(c, str)]
        return list(dict.fromkeys(c for c in validated if c))

    def identity(self) -> Identity | None:
        return self.account.to_identity() if self.account else None
