"""Thin asynchronous Twitch Helix API client.

Only the user lookup needed for profile cards is wrapped.
"""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from ..auth.identity import IdentityManager
from ..constants import HELIX_BASE_URL, HTTP_REQUEST_TIMEOUT_SECONDS
from ..errors.handling import handle_api_error
from ..errors.internal import OAuthError
from ..irc.models import Identity
from ..relay.events import UserProfile


class HelixClient:
    """Asynchronous client for the Helix ``users`` endpoint.

    Requests carry the active identity's token. A 401 triggers one identity
    refresh followed by one retry.

    Attributes:
        BASE_URL (str): The base URL for Twitch Helix API.
    """

    BASE_URL = HELIX_BASE_URL

    def __init__(
        self,
        session: aiohttp.ClientSession,
        client_id: str,
        identities: IdentityManager,
    ):
        if not session:
            raise ValueError("aiohttp session required")
        self._session = session
        self.client_id = client_id
        self._identities = identities

    async def get_user_profile(self, login: str) -> UserProfile | None:
        """Look up a user's public profile.

        Args:
            login (str): Login name to look up.

        Returns:
            UserProfile | None: Profile, or None for unknown users and guests.

        Raises:
            OAuthError: If the token stays rejected after a refresh.
            NetworkError: If the API cannot be reached.
        """
        identity = self._identities.identity
        if identity is None:
            return None
        try:
            data = await self._get_users(identity, login)
        except OAuthError:
            if not await self._identities.refresh() or self._identities.identity is None:
                raise
            data = await self._get_users(self._identities.identity, login)
        users = data.get("data") or []
        if not users:
            return None
        user = users[0]
        return UserProfile(
            display_name=user.get("display_name") or login,
            profile_image_url=user.get("profile_image_url"),
            created_at=user.get("created_at"),
        )

    async def _get_users(self, identity: Identity, login: str) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {identity.token.removeprefix('oauth:')}",
            "Client-Id": self.client_id,
        }
        url = f"{self.BASE_URL}/users"

        async def _perform() -> dict[str, Any]:
            async with self._session.get(
                url,
                headers=headers,
                params={"login": login},
                timeout=aiohttp.ClientTimeout(total=HTTP_REQUEST_TIMEOUT_SECONDS),
            ) as resp:
                logging.debug(f"Helix users response: status={resp.status}, login={login}")
                resp.raise_for_status()
                return await resp.json()

        return await handle_api_error(_perform, "Helix users")
