"""Wiring of the relay from configuration."""

from __future__ import annotations

import aiohttp

from .api.backfill import RecentMessagesClient
from .api.helix import HelixClient
from .auth.identity import IdentityManager
from .auth.validator import TokenValidator
from .config.model import RelayConfig
from .irc.models import Identity
from .irc.supervisor import ConnectionSupervisor
from .relay.hub import RelayHub


def build_hub(
    config: RelayConfig,
    session: aiohttp.ClientSession,
    supervisor: ConnectionSupervisor | None = None,
) -> RelayHub:
    """Create the hub with its HTTP collaborators bound to one session."""
    validator = TokenValidator(session)

    async def revalidate(identity: Identity) -> Identity | None:
        # No interactive re-login here: a token still accepted by the
        # validation endpoint is the only way back in.
        return await validator.validate(identity.token)

    identities = IdentityManager(
        config.identity(), refresher=revalidate, validator=validator
    )
    backfill = RecentMessagesClient(session)
    lookup_profile = None
    if config.client_id:
        lookup_profile = HelixClient(session, config.client_id, identities).get_user_profile
    return RelayHub(
        supervisor or ConnectionSupervisor(),
        identities,
        fetch_backfill=backfill.fetch,
        lookup_profile=lookup_profile,
    )
