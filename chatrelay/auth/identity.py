"""Active identity holder with single-flight refresh."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from ..errors.handling import log_error
from ..errors.internal import OAuthError
from ..irc.models import Identity
from ..logs.logger import logger
from .validator import TokenValidator

IdentityListener = Callable[[Identity | None], None]
IdentityRefresher = Callable[[Identity], Awaitable[Identity | None]]


class IdentityManager:
    """Holds at most one active identity and notifies listeners on change.

    ``refresh`` collapses concurrent triggers onto one in-flight attempt; all
    callers observe its result. A failed refresh clears the identity so the
    relay continues as a guest.

    Args:
        refresher: External collaborator that re-acquires a token for an
            identity. None means refresh always fails.
        validator: Resolves a bare token to an identity for ``login_with_token``.
    """

    def __init__(
        self,
        identity: Identity | None = None,
        *,
        refresher: IdentityRefresher | None = None,
        validator: TokenValidator | None = None,
    ) -> None:
        self._identity = identity
        self._refresher = refresher
        self._validator = validator
        self._listeners: list[IdentityListener] = []
        self._refresh_task: asyncio.Task[bool] | None = None

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def refresh_in_flight(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    def add_listener(self, listener: IdentityListener) -> None:
        self._listeners.append(listener)

    def login(self, identity: Identity) -> None:
        self._set(identity, "login")

    def switch(self, identity: Identity | None) -> None:
        self._set(identity, "switch")

    def logout(self) -> None:
        self._set(None, "logout")

    async def login_with_token(self, token: str) -> Identity:
        """Validate a bare token and make its owner the active identity.

        Raises:
            OAuthError: The token was rejected or no validator is configured.
        """
        if self._validator is None:
            raise OAuthError("no token validator configured")
        identity = await self._validator.validate(token)
        if identity is None:
            raise OAuthError("token validation failed")
        self.login(identity)
        return identity

    async def refresh(self) -> bool:
        """Start (or join) the single in-flight refresh attempt and await it."""
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.get_running_loop().create_task(self._refresh())
        # A cancelled waiter must not cancel the attempt other callers share.
        return await asyncio.shield(self._refresh_task)

    async def _refresh(self) -> bool:
        current = self._identity
        if current is None:
            return False
        logger.log_event("auth", "refresh_start", user=current.login)
        refreshed: Identity | None = None
        if self._refresher is not None:
            try:
                refreshed = await self._refresher(current)
            except Exception as e:  # noqa: BLE001
                # Any refresher failure counts as a failed refresh.
                log_error("Identity refresh failed", e, context={"user": current.login})
        if self._identity is not current:
            # Switched or logged out meanwhile; that change wins.
            logger.log_event(
                "auth", "refresh_superseded", level=logging.WARNING, user=current.login
            )
            return refreshed is not None
        if refreshed is None:
            logger.log_event("auth", "refresh_failed", level=logging.ERROR, user=current.login)
            self._set(None, "refresh_failed")
            return False
        logger.log_event("auth", "refresh_success", user=refreshed.login)
        self._set(refreshed, "refresh")
        return True

    def _set(self, identity: Identity | None, reason: str) -> None:
        self._identity = identity
        logger.log_event(
            "auth",
            "identity_set",
            user=identity.login if identity else None,
            reason=reason,
        )
        for listener in list(self._listeners):
            listener(identity)
