"""OAuth token validation against the Twitch identity service."""

from __future__ import annotations

import logging

import aiohttp

from ..constants import HTTP_REQUEST_TIMEOUT_SECONDS, OAUTH_VALIDATE_URL
from ..errors.handling import handle_api_error
from ..errors.internal import OAuthError, ParsingError
from ..irc.models import Identity


class TokenValidator:
    """Resolves a bearer token to the identity that owns it.

    Attributes:
        VALIDATE_URL (str): Twitch OAuth validation endpoint.
    """

    VALIDATE_URL = OAUTH_VALIDATE_URL

    def __init__(self, session: aiohttp.ClientSession):
        if not session:
            raise ValueError("aiohttp session required")
        self._session = session

    async def validate(self, token: str) -> Identity | None:
        """Validate a token.

        Args:
            token (str): Access token, with or without the ``oauth:`` prefix.

        Returns:
            Identity | None: The owning identity, None when the token is rejected.

        Raises:
            NetworkError: If the validation service cannot be reached.
            ParsingError: If the service answers with something other than
                a JSON object.
        """
        token = token.removeprefix("oauth:")

        async def _perform() -> dict:
            async with self._session.get(
                self.VALIDATE_URL,
                headers={"Authorization": f"OAuth {token}"},
                timeout=aiohttp.ClientTimeout(total=HTTP_REQUEST_TIMEOUT_SECONDS),
            ) as resp:
                resp.raise_for_status()
                return await resp.json()

        try:
            payload = await handle_api_error(_perform, "OAuth validate")
        except OAuthError:
            logging.warning("🔑 Token rejected by validation endpoint")
            return None
        if not isinstance(payload, dict):
            raise ParsingError(
                "OAuth validate payload is not an object",
                data={"payload_type": type(payload).__name__},
            )
        login = payload.get("login")
        if not isinstance(login, str) or not login:
            logging.warning("🔑 Validation payload without login")
            return None
        user_id = payload.get("user_id")
        return Identity(login=login, token=token, user_id=str(user_id) if user_id else None)
